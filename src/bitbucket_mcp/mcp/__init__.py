"""MCP protocol surface."""

from .server import BitbucketMCPServer, create_server, format_error

__all__ = ["BitbucketMCPServer", "create_server", "format_error"]
