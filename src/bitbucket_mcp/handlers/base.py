"""Shared plumbing for the tool handlers."""

import logging
from contextlib import contextmanager
from typing import Any, Awaitable, Iterator, List

import httpx

from ..connectors.sources import PullRequestSource
from ..exceptions import BitbucketError

logger = logging.getLogger(__name__)


@contextmanager
def error_context(description: str) -> Iterator[None]:
    """Attach what was being attempted to any BitbucketError raised inside."""
    try:
        yield
    except BitbucketError as e:
        if not e.context:
            e.context = description
        raise


class BaseHandler:
    def __init__(self, source: PullRequestSource, default_context_lines: int = 3):
        self.source = source
        self.default_context_lines = default_context_lines

    @staticmethod
    async def fetch_or_empty(what: str, pending: Awaitable[List[Any]]) -> List[Any]:
        """Await an optional lookup; on failure log it and return []."""
        try:
            return await pending
        except (BitbucketError, httpx.HTTPError) as e:
            logger.warning("Failed to fetch %s: %s", what, e)
            return []
        except (AttributeError, KeyError, TypeError, ValueError):
            logger.exception("Unexpected %s payload", what)
            return []
