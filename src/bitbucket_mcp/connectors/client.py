"""HTTP client for the Bitbucket REST APIs.

One client instance talks to one Bitbucket deployment. Cloud authenticates
with username + app password (basic auth); Server/Data Center with an HTTP
access token (bearer). Every request goes through retry_with_backoff().
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import Settings
from ..exceptions import BitbucketConfigError
from .retry import retry_with_backoff, retryable_statuses

logger = logging.getLogger(__name__)


class BitbucketApiClient:
    """Thin async wrapper around httpx.AsyncClient."""

    def __init__(
        self,
        base_url: str,
        username: Optional[str] = None,
        app_password: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        max_retries: int = 3,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.username = username or ""
        self.is_server = bool(token)
        self.max_retries = max_retries

        headers = {"Accept": "application/json"}
        auth = None
        if username and token:
            headers["Authorization"] = f"Bearer {token}"
        elif username and app_password:
            auth = httpx.BasicAuth(username, app_password)
        else:
            raise BitbucketConfigError(
                "BITBUCKET_USERNAME and either BITBUCKET_APP_PASSWORD (Cloud) "
                "or BITBUCKET_TOKEN (Server) are required"
            )

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            auth=auth,
            timeout=timeout,
            transport=transport,
        )
        logger.debug(
            "Bitbucket client created for %s (%s mode)",
            self.base_url, "Server" if self.is_server else "Cloud",
        )

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "BitbucketApiClient":
        return cls(
            base_url=settings.bitbucket_base_url,
            username=settings.bitbucket_username,
            app_password=settings.bitbucket_app_password,
            token=settings.bitbucket_token,
            timeout=settings.request_timeout,
            max_retries=settings.max_retries,
            **kwargs,
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """Send a request, retrying transient failures.

        ``path`` is relative to the base URL unless it is an absolute URL
        (Cloud ``next`` and download links).
        """
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        async def _do_request():
            response = await self._client.request(
                method, path, params=params, json=json, headers=headers
            )
            response.raise_for_status()
            return response

        return await retry_with_backoff(
            _do_request,
            max_retries=self.max_retries,
            retry_on=retryable_statuses(method),
        )

    async def get_json(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.request("GET", path, params=params)
        return response.json() if response.content else {}

    async def get_text(self, path: str, params: Optional[Dict[str, Any]] = None) -> str:
        response = await self.request(
            "GET", path, params=params, headers={"Accept": "text/plain"}
        )
        return response.text

    async def post_json(self, path: str, body: Any = None) -> Any:
        response = await self.request("POST", path, json=body)
        # Some endpoints answer 204 No Content
        return response.json() if response.content else {}

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self) -> "BitbucketApiClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()
