"""Tests for BitbucketApiClient.

Verifies:
- Cloud uses basic auth, Server uses a bearer token; missing credentials fail fast.
- Paths resolve against the base URL, absolute URLs are used as-is.
- None-valued params are dropped; get_text asks for text/plain.
- HTTP failures are mapped through retry_with_backoff.
"""

import base64
import json

import httpx
import pytest
from unittest.mock import AsyncMock, patch

from bitbucket_mcp.config import Settings
from bitbucket_mcp.connectors.client import BitbucketApiClient
from bitbucket_mcp.exceptions import (
    BitbucketAPIError,
    BitbucketAuthError,
    BitbucketConfigError,
    BitbucketNotFoundError,
)


pytestmark = pytest.mark.asyncio


def _recording_transport(responder=None):
    """MockTransport that records requests and answers via ``responder``."""
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        if responder:
            return responder(request)
        return httpx.Response(200, json={"ok": True})

    return httpx.MockTransport(handler), seen


# ---------------------------------------------------------------------------
# Construction / auth
# ---------------------------------------------------------------------------

class TestAuth:
    """Tests for credential handling."""

    async def test_cloud_basic_auth(self):
        transport, seen = _recording_transport()
        client = BitbucketApiClient(
            "https://api.bitbucket.org/2.0",
            username="jdoe",
            app_password="secret",
            transport=transport,
        )

        await client.get_json("/user")
        await client.aclose()

        expected = base64.b64encode(b"jdoe:secret").decode()
        assert seen[0].headers["Authorization"] == f"Basic {expected}"
        assert client.is_server is False

    async def test_server_bearer_token(self):
        transport, seen = _recording_transport()
        async with BitbucketApiClient(
            "https://bitbucket.example.com/",
            username="jdoe",
            token="abc123",
            transport=transport,
        ) as client:
            await client.get_json("/rest/api/1.0/projects")

        assert seen[0].headers["Authorization"] == "Bearer abc123"
        assert str(seen[0].url) == "https://bitbucket.example.com/rest/api/1.0/projects"
        assert client.is_server is True
        assert client.base_url == "https://bitbucket.example.com"

    async def test_missing_credentials(self):
        with pytest.raises(BitbucketConfigError, match="BITBUCKET_USERNAME"):
            BitbucketApiClient("https://api.bitbucket.org/2.0", username="jdoe")

    async def test_token_requires_username(self):
        with pytest.raises(BitbucketConfigError, match="BITBUCKET_USERNAME"):
            BitbucketApiClient("https://bb.internal", token="abc123")

    async def test_from_settings(self):
        transport, _ = _recording_transport()
        settings = Settings(
            bitbucket_username="jdoe",
            bitbucket_token="tok",
            bitbucket_base_url="https://bb.internal",
            max_retries=1,
        )

        client = BitbucketApiClient.from_settings(settings, transport=transport)

        assert client.is_server is True
        assert client.max_retries == 1
        await client.aclose()


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------

class TestRequests:
    """Tests for request building and response decoding."""

    async def test_cloud_base_path_is_kept(self):
        transport, seen = _recording_transport()
        client = BitbucketApiClient(
            "https://api.bitbucket.org/2.0", username="u", app_password="p", transport=transport
        )

        await client.get_json("/repositories/ws/repo/pullrequests/1", params={"q": None, "pagelen": 10})
        await client.aclose()

        url = seen[0].url
        assert url.path == "/2.0/repositories/ws/repo/pullrequests/1"
        assert url.params.get("pagelen") == "10"
        assert "q" not in url.params

    async def test_absolute_url_is_used_as_is(self):
        transport, seen = _recording_transport()
        client = BitbucketApiClient(
            "https://api.bitbucket.org/2.0", username="u", app_password="p", transport=transport
        )
        next_url = "https://api.bitbucket.org/2.0/repositories/ws/repo/pullrequests/1/comments?page=2"

        await client.get_json(next_url)
        await client.aclose()

        assert str(seen[0].url) == next_url

    async def test_get_text_accepts_plain_text(self):
        transport, seen = _recording_transport(
            lambda request: httpx.Response(200, text="diff --git a/x b/x\n")
        )
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport)

        text = await client.get_text("/rest/api/1.0/projects/P/repos/r/pull-requests/1/diff")
        await client.aclose()

        assert text == "diff --git a/x b/x\n"
        assert seen[0].headers["Accept"] == "text/plain"

    async def test_post_json_sends_body(self):
        transport, seen = _recording_transport(
            lambda request: httpx.Response(201, json={"id": 7})
        )
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport)

        created = await client.post_json("/comments", {"text": "hi"})
        await client.aclose()

        assert created == {"id": 7}
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"text": "hi"}

    async def test_empty_body_decodes_to_empty_dict(self):
        transport, _ = _recording_transport(lambda request: httpx.Response(204))
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport)

        assert await client.post_json("/approve") == {}
        await client.aclose()


# ---------------------------------------------------------------------------
# Error mapping
# ---------------------------------------------------------------------------

class TestErrors:
    """HTTP failures surface as Bitbucket exceptions."""

    async def test_404(self):
        transport, _ = _recording_transport(lambda request: httpx.Response(404))
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport)

        with pytest.raises(BitbucketNotFoundError):
            await client.get_json("/missing")
        await client.aclose()

    async def test_401_not_retried(self):
        transport, seen = _recording_transport(lambda request: httpx.Response(401))
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport)

        with pytest.raises(BitbucketAuthError):
            await client.get_json("/secure")
        await client.aclose()

        assert len(seen) == 1

    @patch("bitbucket_mcp.connectors.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_503_retried_then_succeeds(self, mock_sleep):
        responses = iter([httpx.Response(503), httpx.Response(200, json={"id": 1})])
        transport, seen = _recording_transport(lambda request: next(responses))
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport, max_retries=2)

        assert await client.get_json("/flaky") == {"id": 1}
        await client.aclose()

        assert len(seen) == 2
        assert mock_sleep.await_count == 1

    async def test_comment_post_not_retried_on_502(self):
        transport, seen = _recording_transport(lambda request: httpx.Response(502))
        client = BitbucketApiClient("https://bb.internal", username="jdoe", token="t", transport=transport, max_retries=2)

        with pytest.raises(BitbucketAPIError) as exc_info:
            await client.post_json("/comments", {"text": "once"})
        await client.aclose()

        assert exc_info.value.status_code == 502
        assert len(seen) == 1
