"""Retries and error mapping for Bitbucket HTTP calls.

``retry_with_backoff`` wraps a coroutine that calls ``raise_for_status()``.
Transient failures are retried with full-jitter exponential backoff; the
final failure is turned into a BitbucketError carrying the message from
Bitbucket's error body.
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, FrozenSet, Optional

import httpx

from ..exceptions import (
    BitbucketAPIError,
    BitbucketAuthError,
    BitbucketError,
    BitbucketNotFoundError,
    BitbucketRateLimitError,
    BitbucketTimeoutError,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({429, 500, 502, 503, 504})

# A 429 was never processed; a 5xx on a POST may already have created the comment
NON_IDEMPOTENT_RETRYABLE: FrozenSet[int] = frozenset({429})

IDEMPOTENT_METHODS: FrozenSet[str] = frozenset({"GET", "HEAD", "OPTIONS"})

DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0


def retryable_statuses(method: str) -> FrozenSet[int]:
    if method.upper() in IDEMPOTENT_METHODS:
        return RETRYABLE_STATUS_CODES
    return NON_IDEMPOTENT_RETRYABLE


async def retry_with_backoff(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    max_retries: int = DEFAULT_MAX_RETRIES,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    retry_on: FrozenSet[int] = RETRYABLE_STATUS_CODES,
    **kwargs: Any,
) -> Any:
    """Await ``fn`` until it succeeds or the retry budget runs out.

    A status in ``retry_on`` and connection failures are retried; on 429 the
    ``Retry-After`` header (seconds) replaces the computed delay. Any other
    HTTP status fails immediately, so 401/403/404 are never retried.

    Raises:
        BitbucketAuthError: 401/403.
        BitbucketNotFoundError: 404.
        BitbucketRateLimitError: 429 once retries are exhausted.
        BitbucketAPIError: any other HTTP error.
        BitbucketTimeoutError: connection or timeout errors once retries are exhausted.
    """
    attempt = 0
    while True:
        try:
            return await fn(*args, **kwargs)

        except httpx.HTTPStatusError as exc:
            response = exc.response
            if response.status_code not in retry_on or attempt >= max_retries:
                raise error_from_response(response) from exc
            delay = _compute_delay(attempt, base_delay, max_delay, response)
            logger.warning(
                "Bitbucket answered HTTP %d, retry %d/%d in %.1fs",
                response.status_code, attempt + 1, max_retries, delay,
                extra={"status_code": response.status_code},
            )

        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            if attempt >= max_retries:
                raise BitbucketTimeoutError(
                    f"Bitbucket unreachable after {attempt + 1} attempt(s): {type(exc).__name__}"
                ) from exc
            delay = _compute_delay(attempt, base_delay, max_delay)
            logger.warning(
                "%s talking to Bitbucket, retry %d/%d in %.1fs",
                type(exc).__name__, attempt + 1, max_retries, delay,
            )

        await asyncio.sleep(delay)
        attempt += 1


def error_from_response(response: httpx.Response) -> BitbucketError:
    """Map a failed Bitbucket response onto the exception tree."""
    status = response.status_code
    message = extract_error_message(response)

    if status in (401, 403):
        return BitbucketAuthError(
            message or f"Authentication failed: HTTP {status}", status_code=status
        )
    if status == 404:
        return BitbucketNotFoundError(message or "Not found: HTTP 404")
    if status == 429:
        return BitbucketRateLimitError(
            message or "Rate limited: HTTP 429",
            retry_after=_parse_retry_after(response),
        )
    return BitbucketAPIError(
        message or f"API error: HTTP {status}",
        status_code=status,
        response_body=response.text[:500],
    )


def extract_error_message(response: httpx.Response) -> Optional[str]:
    """Pull the human-readable message out of a Bitbucket error body.

    Server answers ``{"errors": [{"message": ...}]}``, Cloud answers
    ``{"error": {"message": ...}}``.
    """
    try:
        data = response.json()
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None

    errors = data.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        if errors[0].get("message"):
            return errors[0]["message"]
    error = data.get("error")
    if isinstance(error, dict) and error.get("message"):
        return error["message"]
    return data.get("message")


def _compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    response: Optional[httpx.Response] = None,
) -> float:
    if response is not None:
        retry_after = _parse_retry_after(response)
        if retry_after is not None:
            return min(retry_after, max_delay)

    return random.uniform(0, min(base_delay * (2 ** attempt), max_delay))


def _parse_retry_after(response: httpx.Response) -> Optional[float]:
    """Retry-After in seconds; HTTP-date values are ignored."""
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return float(value)
    except ValueError:
        return None
