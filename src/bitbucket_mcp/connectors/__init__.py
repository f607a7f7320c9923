"""Bitbucket REST access: HTTP client, retries, pagination and dialect sources."""

from .client import BitbucketApiClient
from .sources import (
    CloudDiffResponse,
    CloudSource,
    CommentAnchor,
    DiffResponse,
    DiffSource,
    NewComment,
    PullRequestSource,
    ServerDiffResponse,
    ServerSource,
    create_source,
)

__all__ = [
    "BitbucketApiClient",
    "CloudDiffResponse",
    "CloudSource",
    "CommentAnchor",
    "DiffResponse",
    "DiffSource",
    "NewComment",
    "PullRequestSource",
    "ServerDiffResponse",
    "ServerSource",
    "create_source",
]
