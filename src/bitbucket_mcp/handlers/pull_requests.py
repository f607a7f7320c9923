"""Pull request details and commenting."""

import asyncio
import logging
from collections import Counter
from typing import Any, Dict, Optional

from ..connectors.formatters import format_suggestion_comment, summarize_comments
from ..connectors.sources import CommentAnchor, NewComment, PullRequestSource
from ..diff import CodeMatch, CodeMatcher, DiffParser, LineType, resolve_code_match
from ..exceptions import BitbucketValidationError
from ..tools.arguments import AddCommentArgs, GetPullRequestArgs
from .base import BaseHandler, error_context

logger = logging.getLogger(__name__)

# Cap on comments embedded in the pull request details
MAX_ACTIVE_COMMENTS = 20


class PullRequestHandlers(BaseHandler):
    def __init__(
        self,
        source: PullRequestSource,
        default_context_lines: int = 3,
        matcher: Optional[CodeMatcher] = None,
        parser: Optional[DiffParser] = None,
    ):
        super().__init__(source, default_context_lines)
        self.matcher = matcher or CodeMatcher()
        self.parser = parser or DiffParser()

    async def get_pull_request(self, args: GetPullRequestArgs) -> Dict[str, Any]:
        """Pull request details plus its active comments and changed files.

        Comments and file changes are fetched concurrently and are best
        effort: either failing leaves an empty list in the output.
        """
        ws, repo, pr_id = args.workspace, args.repository, args.pull_request_id
        with error_context(f"getting pull request {pr_id} in {ws}/{repo}"):
            details = await self.source.fetch_pull_request(ws, repo, pr_id)

        comments, file_changes = await asyncio.gather(
            self.fetch_or_empty("comments", self.source.fetch_comments(ws, repo, pr_id)),
            self.fetch_or_empty("file changes", self.source.fetch_file_changes(ws, repo, pr_id)),
        )

        status_counts = Counter(change.get("status") for change in file_changes)
        result = dict(details)
        result["active_comments"] = comments[:MAX_ACTIVE_COMMENTS]
        result["active_comment_count"] = len(comments)
        result["comment_summary"] = summarize_comments(comments)
        result["file_changes"] = file_changes
        result["file_changes_summary"] = {
            "total_files": len(file_changes),
            "added": status_counts.get("added", 0),
            "modified": status_counts.get("modified", 0),
            "removed": status_counts.get("removed", 0),
            "renamed": status_counts.get("renamed", 0),
        }
        return result

    async def add_comment(self, args: AddCommentArgs) -> Dict[str, Any]:
        """Post a general, reply or inline comment.

        An explicit ``line_number`` always wins; ``code_snippet`` is only
        resolved against the diff when no line number was given.
        """
        ws, repo, pr_id = args.workspace, args.repository, args.pull_request_id
        line_number = args.line_number
        line_type = args.line_type
        match: Optional[CodeMatch] = None

        if args.code_snippet and line_number is None:
            if not args.file_path:
                raise BitbucketValidationError(
                    "file_path is required when locating a comment by code_snippet"
                )
            match = await self._locate_snippet(args)
            line_number = match.line_number
            line_type = match.line_type

        is_inline = bool(args.file_path) and line_number is not None
        line_type = line_type or LineType.CONTEXT

        text = args.comment_text
        if args.suggestion is not None:
            if not is_inline:
                raise BitbucketValidationError(
                    "suggestion requires file_path with line_number or code_snippet"
                )
            text = format_suggestion_comment(
                text, args.suggestion, line_number, args.suggestion_end_line
            )

        anchor = CommentAnchor(args.file_path, line_number, line_type) if is_inline else None
        with error_context(
            f"adding {'inline ' if is_inline else ''}comment to pull request "
            f"{pr_id} in {ws}/{repo}"
        ):
            created = await self.source.create_comment(
                ws, repo, pr_id,
                NewComment(text=text, parent_id=args.parent_comment_id, anchor=anchor),
            )

        comment = dict(created)
        if is_inline:
            comment.update(
                file_path=args.file_path,
                line_number=line_number,
                line_type=line_type.value,
            )
        result: Dict[str, Any] = {
            "message": "Inline comment added successfully" if is_inline else "Comment added successfully",
            "comment": comment,
        }
        if match is not None:
            result["code_snippet_match"] = {
                "line_number": match.line_number,
                "line_type": match.line_type.value,
                "confidence": match.confidence,
                "preview": match.preview,
            }
        return result

    async def _locate_snippet(self, args: AddCommentArgs) -> CodeMatch:
        with error_context(
            f"getting diff for pull request {args.pull_request_id} "
            f"in {args.workspace}/{args.repository}"
        ):
            response = await self.source.fetch_diff(
                args.workspace, args.repository, args.pull_request_id,
                self.default_context_lines,
            )

        section = self.parser.extract_file_diff(response.text, args.file_path)
        if section is None:
            raise BitbucketValidationError(
                f"File {args.file_path} is not part of the pull request diff"
            )

        search_context = args.search_context.to_search_context() if args.search_context else None
        matches = self.matcher.find_code_matches(section.content, args.code_snippet, search_context)
        logger.debug("Found %d match(es) for snippet in %s", len(matches), args.file_path)
        return resolve_code_match(matches, args.match_strategy, args.file_path, args.code_snippet)
