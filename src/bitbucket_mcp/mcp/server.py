"""MCP server exposing the Bitbucket pull request tools."""

import json
import logging
import time
import uuid
from typing import Any, Dict, List, Optional

from mcp import types
from mcp.server import Server

from ..config import Settings, get_settings
from ..connectors.client import BitbucketApiClient
from ..connectors.sources import PullRequestSource, create_source
from ..diff import CodeMatcher
from ..exceptions import (
    BitbucketAPIError,
    BitbucketAuthError,
    BitbucketError,
    BitbucketNotFoundError,
    BitbucketRateLimitError,
    MultipleMatchesError,
)
from ..handlers import PullRequestHandlers, ReviewHandlers
from ..observability.logging import (
    clear_log_context,
    configure_logging,
    pull_request_ref,
    set_log_context,
)
from ..tools import (
    ADD_COMMENT,
    GET_PULL_REQUEST,
    GET_PULL_REQUEST_DIFF,
    AddCommentArgs,
    GetPullRequestArgs,
    GetPullRequestDiffArgs,
    get_tool_definitions,
    parse_arguments,
)

logger = logging.getLogger(__name__)


def format_error(error: BitbucketError, is_server: bool) -> str:
    """Render an error as the text a tool caller sees."""
    if isinstance(error, MultipleMatchesError):
        return json.dumps(error.to_dict(), indent=2)

    context = error.context or str(error)
    if isinstance(error, BitbucketAuthError):
        if error.status_code == 403:
            return (
                f"Permission denied: {context}. "
                "Ensure your credentials have the necessary permissions."
            )
        if is_server:
            return "Authentication failed. Please check your BITBUCKET_TOKEN"
        return (
            "Authentication failed. Please check your "
            "BITBUCKET_USERNAME and BITBUCKET_APP_PASSWORD"
        )
    if isinstance(error, BitbucketNotFoundError):
        return f"Not found: {context}"
    if isinstance(error, BitbucketRateLimitError):
        hint = f" Retry after {error.retry_after:g}s." if error.retry_after else ""
        return f"Bitbucket API error: {error}.{hint}"
    if isinstance(error, BitbucketAPIError):
        return f"Bitbucket API error: {error}"
    return str(error)


class BitbucketMCPServer:
    """Bitbucket tools served over the MCP protocol.

    The transport is left to the caller: ``self.server`` is a plain
    ``mcp.server.Server`` that can be run over any MCP stream.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[BitbucketApiClient] = None,
        source: Optional[PullRequestSource] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client or BitbucketApiClient.from_settings(self.settings)
        self.source = source or create_source(self.client)

        context_lines = self.settings.default_context_lines
        self.pull_requests = PullRequestHandlers(
            self.source,
            default_context_lines=context_lines,
            matcher=CodeMatcher(self.settings.get_confidence_weights()),
        )
        self.review = ReviewHandlers(self.source, default_context_lines=context_lines)

        self._dispatch = {
            GET_PULL_REQUEST: (GetPullRequestArgs, self.pull_requests.get_pull_request),
            GET_PULL_REQUEST_DIFF: (GetPullRequestDiffArgs, self.review.get_pull_request_diff),
            ADD_COMMENT: (AddCommentArgs, self.pull_requests.add_comment),
        }

        self.server = Server(self.settings.app_name)
        self._setup_handlers()
        logger.debug(
            "BitbucketMCPServer created - base_url: %s, mode: %s",
            self.client.base_url, "server" if self.client.is_server else "cloud",
        )

    def _setup_handlers(self):
        """Set up MCP protocol handlers."""

        @self.server.list_tools()
        async def handle_list_tools() -> List[types.Tool]:
            return await self.list_tools()

        @self.server.call_tool()
        async def handle_call_tool(
            name: str, arguments: Optional[Dict[str, Any]] = None
        ) -> List[types.TextContent]:
            return await self.call_tool(name, arguments)

    async def list_tools(self) -> List[types.Tool]:
        tools = get_tool_definitions()
        logger.debug("Returning %d tools", len(tools))
        return tools

    async def call_tool(
        self, name: str, arguments: Optional[Dict[str, Any]] = None
    ) -> List[types.TextContent]:
        """Validate, execute and render one tool call. Never raises."""
        if name not in self._dispatch:
            return [types.TextContent(type="text", text=f"Unknown tool: {name}")]

        args_model, handler = self._dispatch[name]
        set_log_context(
            tool=name,
            request_id=uuid.uuid4().hex[:12],
            dialect="server" if self.client.is_server else "cloud",
        )
        logger.info("Tool call: %s", name)

        start = time.perf_counter()
        try:
            args = parse_arguments(args_model, name, arguments)
            set_log_context(pull_request=pull_request_ref(
                args.workspace, args.repository, args.pull_request_id
            ))
            result = await handler(args)
            logger.info("Tool %s succeeded in %.3fs", name, time.perf_counter() - start)
            return [types.TextContent(type="text", text=json.dumps(result, indent=2))]
        except BitbucketError as e:
            logger.warning(
                "Tool %s failed in %.3fs: %s", name, time.perf_counter() - start, e
            )
            return [types.TextContent(
                type="text",
                text=format_error(e, self.client.is_server),
            )]
        except Exception as e:
            logger.exception("Tool execution failed: %s", name)
            return [types.TextContent(
                type="text",
                text=f"Error executing tool {name}: {str(e)}"
            )]
        finally:
            clear_log_context()

    async def aclose(self):
        await self.client.aclose()


def create_server(settings: Optional[Settings] = None) -> BitbucketMCPServer:
    """Configure logging and build a server from the environment."""
    settings = settings or get_settings()
    configure_logging(
        environment=settings.environment,
        log_level="DEBUG" if settings.debug else settings.log_level,
    )
    logger.info("Starting %s v%s", settings.app_name, settings.app_version)
    return BitbucketMCPServer(settings)
