"""MCP tool definitions exposed by the server."""

from typing import List

from mcp import types

_WORKSPACE = {
    "type": "string",
    "description": 'Bitbucket workspace (Cloud) or project key (Server), e.g. "PROJ"',
}
_REPOSITORY = {
    "type": "string",
    "description": 'Repository slug, e.g. "my-repo"',
}
_PULL_REQUEST_ID = {
    "type": "integer",
    "minimum": 1,
    "description": "Pull request ID",
}

GET_PULL_REQUEST = "get_pull_request"
GET_PULL_REQUEST_DIFF = "get_pull_request_diff"
ADD_COMMENT = "add_comment"


def get_tool_definitions() -> List[types.Tool]:
    return [
        types.Tool(
            name=GET_PULL_REQUEST,
            description=(
                "Get details of a Bitbucket pull request including merge commit "
                "information, active comments and changed files"
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _WORKSPACE,
                    "repository": _REPOSITORY,
                    "pull_request_id": _PULL_REQUEST_ID,
                },
                "required": ["workspace", "repository", "pull_request_id"],
            },
        ),
        types.Tool(
            name=GET_PULL_REQUEST_DIFF,
            description=(
                "Get the diff of a pull request, optionally narrowed to one file "
                "or filtered with glob patterns"
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _WORKSPACE,
                    "repository": _REPOSITORY,
                    "pull_request_id": _PULL_REQUEST_ID,
                    "context_lines": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "Number of context lines around changes (default: 3)",
                    },
                    "include_patterns": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": 'Glob patterns of files to include, e.g. ["*.py", "src/**/*.ts"]',
                    },
                    "exclude_patterns": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": 'Glob patterns of files to exclude, e.g. ["*.lock"]',
                    },
                    "file_path": {
                        "type": "string",
                        "description": "Return only the diff of this file (overrides the patterns)",
                    },
                },
                "required": ["workspace", "repository", "pull_request_id"],
            },
        ),
        types.Tool(
            name=ADD_COMMENT,
            description=(
                "Add a comment to a pull request: general, a reply, or inline on a "
                "line located by line_number or by a code_snippet from the diff"
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace": _WORKSPACE,
                    "repository": _REPOSITORY,
                    "pull_request_id": _PULL_REQUEST_ID,
                    "comment_text": {
                        "type": "string",
                        "description": "Comment text (markdown)",
                    },
                    "parent_comment_id": {
                        "type": "integer",
                        "description": "Parent comment ID when replying",
                    },
                    "file_path": {
                        "type": "string",
                        "description": 'File path for an inline comment, e.g. "src/main.py"',
                    },
                    "line_number": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Line number for an inline comment; wins over code_snippet",
                    },
                    "line_type": {
                        "type": "string",
                        "enum": ["ADDED", "REMOVED", "CONTEXT"],
                        "description": "Kind of line commented on (default: CONTEXT)",
                    },
                    "suggestion": {
                        "type": "string",
                        "description": "Replacement code rendered as an applicable suggestion",
                    },
                    "suggestion_end_line": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Last line replaced by a multi-line suggestion",
                    },
                    "code_snippet": {
                        "type": "string",
                        "description": "Exact code text to locate in the diff instead of giving line_number",
                    },
                    "search_context": {
                        "type": "object",
                        "properties": {
                            "before": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Lines expected just above the snippet",
                            },
                            "after": {
                                "type": "array",
                                "items": {"type": "string"},
                                "description": "Lines expected just below the snippet",
                            },
                        },
                        "description": "Surrounding lines used to rank several snippet matches",
                    },
                    "match_strategy": {
                        "type": "string",
                        "enum": ["strict", "best"],
                        "default": "strict",
                        "description": "strict fails on several matches, best picks the most confident",
                    },
                },
                "required": ["workspace", "repository", "pull_request_id", "comment_text"],
            },
        ),
    ]
