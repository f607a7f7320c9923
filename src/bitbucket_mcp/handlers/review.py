"""Diff retrieval and filtering."""

import logging
from typing import Any, Dict, Optional

from ..connectors.sources import PullRequestSource
from ..diff import DiffParser, FilterOptions
from ..tools.arguments import GetPullRequestDiffArgs
from .base import BaseHandler, error_context

logger = logging.getLogger(__name__)


class ReviewHandlers(BaseHandler):
    def __init__(
        self,
        source: PullRequestSource,
        default_context_lines: int = 3,
        parser: Optional[DiffParser] = None,
    ):
        super().__init__(source, default_context_lines)
        self.parser = parser or DiffParser()

    async def get_pull_request_diff(self, args: GetPullRequestDiffArgs) -> Dict[str, Any]:
        context_lines = (
            args.context_lines if args.context_lines is not None else self.default_context_lines
        )
        with error_context(
            f"getting diff for pull request {args.pull_request_id} "
            f"in {args.workspace}/{args.repository}"
        ):
            response = await self.source.fetch_diff(
                args.workspace, args.repository, args.pull_request_id, context_lines
            )

        result: Dict[str, Any] = {
            "message": "Pull request diff retrieved successfully",
            "pull_request_id": args.pull_request_id,
        }

        options = FilterOptions(
            file_path=args.file_path,
            include_patterns=list(args.include_patterns),
            exclude_patterns=list(args.exclude_patterns),
        )
        if options.is_empty:
            result["diff"] = response.text
            return result

        sections = self.parser.parse_diff_into_sections(response.text)
        filtered = self.parser.filter_sections(sections, options)
        logger.debug(
            "Filtered %s diff: %d of %d files kept",
            response.dialect, filtered.metadata.included_files, filtered.metadata.total_files,
        )

        result["diff"] = self.parser.reconstruct_diff(filtered.sections)
        result["filter_metadata"] = filtered.metadata.to_dict()
        result["filter_metadata"]["filters_applied"] = {
            key: value
            for key, value in (
                ("file_path", options.file_path),
                ("include_patterns", options.include_patterns),
                ("exclude_patterns", options.exclude_patterns),
            )
            if value
        }
        return result
