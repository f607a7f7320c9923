"""Reshape Cloud and Server payloads into one normalized output schema."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

NO_DESCRIPTION = "No description provided"


@dataclass
class MergeInfo:
    """Merge details of a Server PR, looked up from its activity stream."""

    merge_commit_hash: Optional[str] = None
    merged_by: Optional[str] = None
    merged_at: Optional[str] = None
    merge_commit_message: Optional[str] = None


def format_timestamp(value: Any) -> Optional[str]:
    """Server timestamps are epoch milliseconds; Cloud already sends ISO 8601."""
    if value is None:
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
    return str(value)


def format_server_pull_request(
    pr: Dict[str, Any],
    merge_info: Optional[MergeInfo] = None,
    base_url: str = "",
) -> Dict[str, Any]:
    merge_info = merge_info or MergeInfo()
    author = (pr.get("author") or {}).get("user") or {}
    from_ref = pr.get("fromRef") or {}
    to_ref = pr.get("toRef") or {}
    repository = to_ref.get("repository") or {}
    project_key = (repository.get("project") or {}).get("key", "")
    self_links = (pr.get("links") or {}).get("self") or [{}]

    return {
        "id": pr.get("id"),
        "title": pr.get("title"),
        "description": pr.get("description") or NO_DESCRIPTION,
        "state": pr.get("state"),
        "is_open": pr.get("open"),
        "is_closed": pr.get("closed"),
        "author": author.get("displayName"),
        "author_username": author.get("name"),
        "author_email": author.get("emailAddress"),
        "source_branch": from_ref.get("displayId"),
        "destination_branch": to_ref.get("displayId"),
        "source_commit": from_ref.get("latestCommit"),
        "destination_commit": to_ref.get("latestCommit"),
        "reviewers": [
            {
                "name": (r.get("user") or {}).get("displayName"),
                "approved": r.get("approved"),
                "status": r.get("status"),
            }
            for r in pr.get("reviewers") or []
        ],
        "participants": [
            {
                "name": (p.get("user") or {}).get("displayName"),
                "role": p.get("role"),
                "approved": p.get("approved"),
                "status": p.get("status"),
            }
            for p in pr.get("participants") or []
        ],
        "created_on": format_timestamp(pr.get("createdDate")),
        "updated_on": format_timestamp(pr.get("updatedDate")),
        "web_url": (
            f"{base_url}/projects/{project_key}/repos/"
            f"{repository.get('slug', '')}/pull-requests/{pr.get('id')}"
        ),
        "api_url": self_links[0].get("href", ""),
        "is_locked": pr.get("locked"),
        "is_merged": pr.get("state") == "MERGED",
        "merge_commit_hash": (
            merge_info.merge_commit_hash
            or ((pr.get("properties") or {}).get("mergeCommit") or {}).get("id")
        ),
        "merged_by": merge_info.merged_by,
        "merged_at": merge_info.merged_at,
        "merge_commit_message": merge_info.merge_commit_message,
    }


def format_cloud_pull_request(pr: Dict[str, Any]) -> Dict[str, Any]:
    links = pr.get("links") or {}
    is_merged = pr.get("state") == "MERGED"
    merge_commit = pr.get("merge_commit") or {}
    closed_by = pr.get("closed_by") or {}

    return {
        "id": pr.get("id"),
        "title": pr.get("title"),
        "description": pr.get("description") or NO_DESCRIPTION,
        "state": pr.get("state"),
        "author": (pr.get("author") or {}).get("display_name"),
        "source_branch": ((pr.get("source") or {}).get("branch") or {}).get("name"),
        "destination_branch": ((pr.get("destination") or {}).get("branch") or {}).get("name"),
        "reviewers": [r.get("display_name") for r in pr.get("reviewers") or []],
        "participants": [
            {
                "name": (p.get("user") or {}).get("display_name"),
                "role": p.get("role"),
                "approved": p.get("approved"),
            }
            for p in pr.get("participants") or []
        ],
        "created_on": pr.get("created_on"),
        "updated_on": pr.get("updated_on"),
        "web_url": (links.get("html") or {}).get("href"),
        "api_url": (links.get("self") or {}).get("href"),
        "diff_url": (links.get("diff") or {}).get("href"),
        "is_merged": is_merged,
        "merge_commit_hash": merge_commit.get("hash"),
        "merged_by": closed_by.get("display_name"),
        "merged_at": pr.get("updated_on") if is_merged else None,
        # Cloud would need an extra commit lookup for this
        "merge_commit_message": None,
        "close_source_branch": pr.get("close_source_branch"),
    }


def format_server_comment(comment: Dict[str, Any], anchor: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Format a Server comment; inline position comes from the activity anchor."""
    anchor = anchor or comment.get("anchor") or {}
    return {
        "id": comment.get("id"),
        "author": (comment.get("author") or {}).get("displayName"),
        "text": comment.get("text"),
        "created_on": format_timestamp(comment.get("createdDate")),
        "updated_on": format_timestamp(comment.get("updatedDate")),
        "state": comment.get("state"),
        "file_path": anchor.get("path"),
        "line_number": anchor.get("line"),
        "line_type": anchor.get("lineType"),
        "replies": [format_server_comment(reply) for reply in comment.get("comments") or []],
    }


def format_cloud_comment(comment: Dict[str, Any]) -> Dict[str, Any]:
    inline = comment.get("inline") or {}
    parent = comment.get("parent") or {}
    return {
        "id": comment.get("id"),
        "author": (comment.get("user") or {}).get("display_name"),
        "text": (comment.get("content") or {}).get("raw"),
        "created_on": comment.get("created_on"),
        "updated_on": comment.get("updated_on"),
        "parent_id": parent.get("id"),
        "file_path": inline.get("path"),
        "line_number": inline.get("to") or inline.get("from"),
        "line_type": "REMOVED" if inline.get("from") and not inline.get("to") else None,
    }


_SERVER_CHANGE_STATUS = {
    "ADD": "added",
    "DELETE": "removed",
    "MOVE": "renamed",
    "RENAME": "renamed",
}


def format_server_file_change(change: Dict[str, Any]) -> Dict[str, Any]:
    src_path = change.get("srcPath") or {}
    return {
        "path": (change.get("path") or {}).get("toString"),
        "status": _SERVER_CHANGE_STATUS.get(change.get("type", ""), "modified"),
        "old_path": src_path.get("toString"),
    }


def format_cloud_file_change(change: Dict[str, Any]) -> Dict[str, Any]:
    new = change.get("new") or {}
    old = change.get("old") or {}
    status = change.get("status", "modified")
    return {
        "path": new.get("path") or old.get("path"),
        "status": status,
        "old_path": old.get("path") if status == "renamed" else None,
        "lines_added": change.get("lines_added"),
        "lines_removed": change.get("lines_removed"),
    }


def format_suggestion_comment(
    comment_text: str,
    suggestion: str,
    start_line: Optional[int] = None,
    end_line: Optional[int] = None,
) -> str:
    """Append a ```suggestion block Bitbucket renders as an applicable change."""
    line_info = ""
    if start_line and end_line and end_line > start_line:
        line_info = f" (lines {start_line}-{end_line})"
    return f"{comment_text}{line_info}\n\n```suggestion\n{suggestion}\n```"


def summarize_comments(comments: List[Dict[str, Any]]) -> Dict[str, int]:
    inline = sum(1 for c in comments if c.get("file_path"))
    return {"total": len(comments), "inline": inline, "general": len(comments) - inline}
