"""Tool handlers: validated arguments in, normalized dicts out."""

from .pull_requests import PullRequestHandlers
from .review import ReviewHandlers

__all__ = ["PullRequestHandlers", "ReviewHandlers"]
