"""Argument models for the MCP tools.

Each tool validates its raw argument dict against one of these models before
any network call is made.
"""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..diff.models import LineType, MatchStrategy, SearchContext
from ..exceptions import BitbucketValidationError

ArgsT = TypeVar("ArgsT", bound=BaseModel)


class PullRequestArgs(BaseModel):
    model_config = ConfigDict(extra="ignore")

    workspace: str = Field(..., min_length=1, description="Workspace slug (Cloud) or project key (Server)")
    repository: str = Field(..., min_length=1, description="Repository slug")
    pull_request_id: int = Field(..., ge=1)


class GetPullRequestArgs(PullRequestArgs):
    pass


class GetPullRequestDiffArgs(PullRequestArgs):
    context_lines: Optional[int] = Field(None, ge=0)
    include_patterns: List[str] = Field(default_factory=list)
    exclude_patterns: List[str] = Field(default_factory=list)
    file_path: Optional[str] = None


class SearchContextArgs(BaseModel):
    before: List[str] = Field(default_factory=list)
    after: List[str] = Field(default_factory=list)

    def to_search_context(self) -> SearchContext:
        return SearchContext(before=list(self.before), after=list(self.after))


class AddCommentArgs(PullRequestArgs):
    comment_text: str
    parent_comment_id: Optional[int] = None
    file_path: Optional[str] = None
    line_number: Optional[int] = Field(None, ge=1)
    line_type: Optional[LineType] = None
    suggestion: Optional[str] = None
    suggestion_end_line: Optional[int] = Field(None, ge=1)
    code_snippet: Optional[str] = None
    search_context: Optional[SearchContextArgs] = None
    match_strategy: MatchStrategy = MatchStrategy.STRICT


def parse_arguments(model: Type[ArgsT], tool_name: str, arguments: Optional[Dict[str, Any]]) -> ArgsT:
    """Validate raw tool arguments, raising BitbucketValidationError on failure."""
    try:
        return model.model_validate(arguments or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'arguments'}: {err['msg']}"
            for err in e.errors()
        )
        raise BitbucketValidationError(f"Invalid arguments for {tool_name}: {problems}") from e
