"""Pagination helpers for the two Bitbucket REST dialects.

Server pages with ``start``/``limit`` and answers ``isLastPage`` and
``nextPageStart``. Cloud pages with ``page``/``pagelen`` and answers a full
``next`` URL. Both yield the items under ``values``.
"""

import logging
from typing import Any, AsyncIterator, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


async def paginate_server(
    fetch_page: Callable[..., Any],
    *,
    limit: int = 100,
    start: int = 0,
    max_pages: int = 50,
) -> AsyncIterator[Dict[str, Any]]:
    """Paginate a Bitbucket Server collection.

    Args:
        fetch_page: Async callable(params: dict) -> parsed JSON page.
        limit: Page size sent as ``limit``.
        start: First item offset.
        max_pages: Safety limit on total pages fetched.
    """
    for _ in range(max_pages):
        data = await fetch_page({"start": start, "limit": limit})

        for item in data.get("values", []):
            yield item

        if data.get("isLastPage", True) or data.get("nextPageStart") is None:
            break
        start = data["nextPageStart"]


async def paginate_cloud(
    fetch_page: Callable[..., Any],
    *,
    pagelen: int = 100,
    max_pages: int = 50,
) -> AsyncIterator[Dict[str, Any]]:
    """Paginate a Bitbucket Cloud collection by following ``next`` links.

    Args:
        fetch_page: Async callable(url: str | None, params: dict) -> parsed JSON page.
                    When url is None, fetch the first page.
        pagelen: Page size for the first request.
        max_pages: Safety limit.
    """
    url: Optional[str] = None
    params: Dict[str, Any] = {"pagelen": pagelen}
    for _ in range(max_pages):
        data = await fetch_page(url, params)

        items = data.get("values", [])
        for item in items:
            yield item

        next_url = data.get("next")
        if not next_url or not items:
            break
        # the next link already carries the query string
        url, params = next_url, {}


async def collect_all_pages(
    paginator: AsyncIterator[Dict[str, Any]],
    max_items: int = 10_000,
) -> List[Dict[str, Any]]:
    """Flatten any async paginator into a list.

    Args:
        paginator: An async iterator yielding items.
        max_items: Safety cap on total items collected.
    """
    items: List[Dict[str, Any]] = []
    async for item in paginator:
        items.append(item)
        if len(items) >= max_items:
            logger.warning("collect_all_pages hit max_items=%d", max_items)
            break
    return items
