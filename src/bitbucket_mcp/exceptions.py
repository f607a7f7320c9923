"""Exception types for the Bitbucket MCP server.

HTTP-level errors are raised by retry_with_backoff() and caught by the MCP
server layer, which renders them as tool output. The diff matching errors
carry enough structure for the caller to disambiguate and retry.
"""

from typing import Any, Dict, List, Optional


class BitbucketError(Exception):
    """Base exception for all Bitbucket errors."""

    def __init__(self, message: str, context: str = ""):
        self.context = context
        super().__init__(message)


class BitbucketConfigError(BitbucketError):
    """Missing or inconsistent configuration (credentials, base URL)."""

    pass


class BitbucketAuthError(BitbucketError):
    """Authentication or authorization failure (401/403)."""

    def __init__(self, message: str, status_code: int = 401, context: str = ""):
        self.status_code = status_code
        super().__init__(message, context)


class BitbucketRateLimitError(BitbucketError):
    """Rate limit exceeded (429). Includes retry_after hint if available."""

    def __init__(
        self,
        message: str,
        retry_after: Optional[float] = None,
        context: str = "",
    ):
        self.retry_after = retry_after
        super().__init__(message, context)


class BitbucketAPIError(BitbucketError):
    """API returned an error response (4xx/5xx)."""

    def __init__(
        self,
        message: str,
        status_code: int = 0,
        response_body: str = "",
        context: str = "",
    ):
        self.status_code = status_code
        self.response_body = response_body
        super().__init__(message, context)


class BitbucketNotFoundError(BitbucketAPIError):
    """Resource not found (404)."""

    def __init__(self, message: str, context: str = ""):
        super().__init__(message, status_code=404, context=context)


class BitbucketTimeoutError(BitbucketError):
    """Request timed out or the connection could not be established."""

    pass


class BitbucketValidationError(BitbucketError):
    """Invalid input provided to a tool."""

    pass


class CodeSnippetNotFoundError(BitbucketError):
    """A code snippet could not be located in the pull request diff."""

    def __init__(self, code_snippet: str, file_path: str = ""):
        self.code_snippet = code_snippet
        self.file_path = file_path
        where = f" in {file_path}" if file_path else ""
        super().__init__(f'Code snippet not found{where}: "{code_snippet}"')


class MultipleMatchesError(BitbucketError):
    """A code snippet matched several diff lines under the strict strategy."""

    code = "MULTIPLE_MATCHES_FOUND"

    def __init__(
        self,
        code_snippet: str,
        occurrences: List[Dict[str, Any]],
        file_path: str = "",
    ):
        self.code_snippet = code_snippet
        self.occurrences = occurrences
        self.file_path = file_path
        self.suggestion = (
            "Add search_context (lines before/after the target line), "
            "set match_strategy to 'best' to pick the most likely match, "
            "or pass line_number and line_type explicitly."
        )
        super().__init__(
            f'Code snippet "{code_snippet}" found in {len(occurrences)} locations'
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": str(self),
            "occurrences": self.occurrences,
            "suggestion": self.suggestion,
        }
