"""Logging setup for the Bitbucket MCP server.

Every record carries the tool call it belongs to: the tool name, a short
request id, the Bitbucket dialect and the pull request being worked on
(``workspace/repository#id``). The fields live in a contextvar, so
concurrent tool calls do not see each other's context.

Output always goes to stderr; stdout belongs to the MCP stdio stream.
"""

import json
import logging
import sys
from contextvars import ContextVar
from typing import Any, Dict, Optional

# Field name -> short label used by the human-readable formatter, in display order
CONTEXT_LABELS = {
    "tool": "tool",
    "pull_request": "pr",
    "dialect": "mode",
    "request_id": "req",
}

_log_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar("bitbucket_log_context", default=None)


def pull_request_ref(workspace: str, repository: str, pull_request_id: int) -> str:
    return f"{workspace}/{repository}#{pull_request_id}"


def set_log_context(**fields: Any):
    """Merge fields into the current context. ``None`` values are ignored."""
    unknown = set(fields) - set(CONTEXT_LABELS)
    if unknown:
        raise ValueError(f"Unknown log context field(s): {', '.join(sorted(unknown))}")

    context = dict(_log_context.get() or {})
    context.update({k: v for k, v in fields.items() if v is not None})
    _log_context.set(context)


def get_log_context() -> Dict[str, Any]:
    return dict(_log_context.get() or {})


def clear_log_context():
    _log_context.set(None)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, context fields at the top level."""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(get_log_context())

        status_code = getattr(record, "status_code", None)
        if status_code is not None:
            entry["status_code"] = status_code

        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class HumanReadableFormatter(logging.Formatter):
    """``[time] LEVEL logger: message [tool=.. pr=..]`` for local runs."""

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"[{self.formatTime(record, self.datefmt)}] "
            f"{record.levelname:8s} {record.name}: {record.getMessage()}"
        )

        context = get_log_context()
        labelled = [
            f"{label}={context[field]}"
            for field, label in CONTEXT_LABELS.items()
            if field in context
        ]
        if labelled:
            line += f" [{' '.join(labelled)}]"

        if record.exc_info and record.exc_info[1]:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(environment: str = "development", log_level: str = "INFO"):
    """Install a single stderr handler on the root logger.

    Args:
        environment: "production" for JSON output, anything else for human-readable.
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    if environment == "production":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(HumanReadableFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
