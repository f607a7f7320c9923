"""Tool definitions and argument models."""

from .arguments import (
    AddCommentArgs,
    GetPullRequestArgs,
    GetPullRequestDiffArgs,
    parse_arguments,
)
from .definitions import ADD_COMMENT, GET_PULL_REQUEST, GET_PULL_REQUEST_DIFF, get_tool_definitions

__all__ = [
    "ADD_COMMENT",
    "AddCommentArgs",
    "GET_PULL_REQUEST",
    "GET_PULL_REQUEST_DIFF",
    "GetPullRequestArgs",
    "GetPullRequestDiffArgs",
    "get_tool_definitions",
    "parse_arguments",
]
