"""Capability interfaces over the two Bitbucket REST dialects.

Handlers talk to a ``PullRequestSource`` and never branch on Cloud vs
Server themselves; ``create_source()`` picks the implementation once, from
the client's mode.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Union

from ..diff.models import LineType
from ..exceptions import BitbucketError
from .client import BitbucketApiClient
from .formatters import (
    MergeInfo,
    format_cloud_comment,
    format_cloud_file_change,
    format_cloud_pull_request,
    format_server_comment,
    format_server_file_change,
    format_server_pull_request,
    format_timestamp,
)
from .pagination import collect_all_pages, paginate_cloud, paginate_server

logger = logging.getLogger(__name__)

SERVER_API = "/rest/api/1.0"


@dataclass(frozen=True)
class CloudDiffResponse:
    text: str
    dialect: str = "cloud"


@dataclass(frozen=True)
class ServerDiffResponse:
    text: str
    dialect: str = "server"


DiffResponse = Union[CloudDiffResponse, ServerDiffResponse]


@dataclass(frozen=True)
class CommentAnchor:
    """Where an inline comment lands in the diff."""

    file_path: str
    line_number: int
    line_type: LineType = LineType.CONTEXT


@dataclass(frozen=True)
class NewComment:
    text: str
    parent_id: Optional[int] = None
    anchor: Optional[CommentAnchor] = None


class DiffSource(Protocol):
    async def fetch_diff(
        self,
        workspace: str,
        repository: str,
        pull_request_id: int,
        context_lines: int = 3,
    ) -> DiffResponse: ...


class PullRequestSource(DiffSource, Protocol):
    async def fetch_pull_request(
        self, workspace: str, repository: str, pull_request_id: int
    ) -> Dict[str, Any]: ...

    async def fetch_comments(
        self, workspace: str, repository: str, pull_request_id: int
    ) -> List[Dict[str, Any]]: ...

    async def fetch_file_changes(
        self, workspace: str, repository: str, pull_request_id: int
    ) -> List[Dict[str, Any]]: ...

    async def create_comment(
        self,
        workspace: str,
        repository: str,
        pull_request_id: int,
        comment: NewComment,
    ) -> Dict[str, Any]: ...


class CloudSource:
    """Bitbucket Cloud (api.bitbucket.org/2.0)."""

    def __init__(self, client: BitbucketApiClient):
        self.client = client

    @staticmethod
    def _pr_path(workspace: str, repository: str, pull_request_id: int) -> str:
        return f"/repositories/{workspace}/{repository}/pullrequests/{pull_request_id}"

    async def _collect(self, path: str) -> List[Dict[str, Any]]:
        async def fetch_page(url: Optional[str], params: Dict[str, Any]):
            return await self.client.get_json(url or path, params=params)

        return await collect_all_pages(paginate_cloud(fetch_page))

    async def fetch_diff(self, workspace, repository, pull_request_id, context_lines=3):
        text = await self.client.get_text(
            f"{self._pr_path(workspace, repository, pull_request_id)}/diff",
            params={"context": context_lines},
        )
        return CloudDiffResponse(text=text)

    async def fetch_pull_request(self, workspace, repository, pull_request_id):
        pr = await self.client.get_json(self._pr_path(workspace, repository, pull_request_id))
        return format_cloud_pull_request(pr)

    async def fetch_comments(self, workspace, repository, pull_request_id):
        raw = await self._collect(
            f"{self._pr_path(workspace, repository, pull_request_id)}/comments"
        )
        return [
            format_cloud_comment(c)
            for c in raw
            if not c.get("deleted") and not c.get("resolution")
        ]

    async def fetch_file_changes(self, workspace, repository, pull_request_id):
        raw = await self._collect(
            f"{self._pr_path(workspace, repository, pull_request_id)}/diffstat"
        )
        return [format_cloud_file_change(c) for c in raw]

    async def create_comment(self, workspace, repository, pull_request_id, comment):
        body: Dict[str, Any] = {"content": {"raw": comment.text}}
        if comment.parent_id is not None:
            body["parent"] = {"id": comment.parent_id}
        if comment.anchor is not None:
            # Cloud anchors removed lines on the old side of the diff
            side = "from" if comment.anchor.line_type == LineType.REMOVED else "to"
            body["inline"] = {"path": comment.anchor.file_path, side: comment.anchor.line_number}

        created = await self.client.post_json(
            f"{self._pr_path(workspace, repository, pull_request_id)}/comments", body
        )
        return {
            "id": created.get("id"),
            "text": (created.get("content") or {}).get("raw"),
            "author": (created.get("user") or {}).get("display_name"),
            "created_on": created.get("created_on"),
        }


class ServerSource:
    """Bitbucket Server / Data Center (rest/api/1.0)."""

    def __init__(self, client: BitbucketApiClient):
        self.client = client

    @staticmethod
    def _repo_path(project: str, repository: str) -> str:
        return f"{SERVER_API}/projects/{project}/repos/{repository}"

    def _pr_path(self, project: str, repository: str, pull_request_id: int) -> str:
        return f"{self._repo_path(project, repository)}/pull-requests/{pull_request_id}"

    async def _collect(self, path: str) -> List[Dict[str, Any]]:
        async def fetch_page(params: Dict[str, Any]):
            return await self.client.get_json(path, params=params)

        return await collect_all_pages(paginate_server(fetch_page))

    async def fetch_diff(self, workspace, repository, pull_request_id, context_lines=3):
        text = await self.client.get_text(
            f"{self._pr_path(workspace, repository, pull_request_id)}/diff",
            params={"contextLines": context_lines},
        )
        return ServerDiffResponse(text=text)

    async def fetch_pull_request(self, workspace, repository, pull_request_id):
        pr = await self.client.get_json(self._pr_path(workspace, repository, pull_request_id))
        merge_info = None
        if pr.get("state") == "MERGED":
            merge_info = await self._fetch_merge_info(workspace, repository, pull_request_id)
        return format_server_pull_request(pr, merge_info, self.client.base_url)

    async def _fetch_merge_info(self, project, repository, pull_request_id) -> MergeInfo:
        """Look up who merged and with which commit; missing data is not fatal."""
        merge_info = MergeInfo()
        try:
            activities = await self.client.get_json(
                f"{self._pr_path(project, repository, pull_request_id)}/activities",
                params={"limit": 100},
            )
        except BitbucketError as e:
            logger.warning("Failed to fetch PR activities: %s", e)
            return merge_info

        merge_activity = next(
            (a for a in activities.get("values") or [] if a.get("action") == "MERGED"),
            None,
        )
        if merge_activity is None:
            return merge_info

        commit_id = (merge_activity.get("commit") or {}).get("id")
        merge_info.merge_commit_hash = commit_id
        merge_info.merged_by = (merge_activity.get("user") or {}).get("displayName")
        merge_info.merged_at = format_timestamp(merge_activity.get("createdDate"))

        if commit_id:
            try:
                commit = await self.client.get_json(
                    f"{self._repo_path(project, repository)}/commits/{commit_id}"
                )
                merge_info.merge_commit_message = commit.get("message")
            except BitbucketError as e:
                logger.warning("Failed to fetch merge commit message: %s", e)
        return merge_info

    async def fetch_comments(self, workspace, repository, pull_request_id):
        activities = await self._collect(
            f"{self._pr_path(workspace, repository, pull_request_id)}/activities"
        )
        comments = []
        for activity in activities:
            if activity.get("action") != "COMMENTED":
                continue
            if activity.get("commentAction", "ADDED") != "ADDED":
                continue
            comment = activity.get("comment") or {}
            if comment.get("state", "OPEN") != "OPEN":
                continue
            comments.append(format_server_comment(comment, activity.get("commentAnchor")))
        return comments

    async def fetch_file_changes(self, workspace, repository, pull_request_id):
        raw = await self._collect(
            f"{self._pr_path(workspace, repository, pull_request_id)}/changes"
        )
        return [format_server_file_change(c) for c in raw]

    async def create_comment(self, workspace, repository, pull_request_id, comment):
        body: Dict[str, Any] = {"text": comment.text}
        if comment.parent_id is not None:
            body["parent"] = {"id": comment.parent_id}
        if comment.anchor is not None:
            line_type = comment.anchor.line_type
            body["anchor"] = {
                "line": comment.anchor.line_number,
                "lineType": line_type.value,
                "fileType": "FROM" if line_type == LineType.REMOVED else "TO",
                "path": comment.anchor.file_path,
                "diffType": "EFFECTIVE",
            }

        created = await self.client.post_json(
            f"{self._pr_path(workspace, repository, pull_request_id)}/comments", body
        )
        return {
            "id": created.get("id"),
            "text": created.get("text"),
            "author": (created.get("author") or {}).get("displayName"),
            "created_on": format_timestamp(created.get("createdDate")),
        }


def create_source(client: BitbucketApiClient) -> PullRequestSource:
    if client.is_server:
        return ServerSource(client)
    return CloudSource(client)
