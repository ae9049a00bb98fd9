"""Logging configuration for the acmer53 CLI.

Provides JSON and text formatters, a context filter that stamps the
current workflow step and domain onto every record, and a one-call
``configure_logging`` driven by the ``logging`` config section.
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterator

    from acmer53.config.settings import LoggingSettings

_step_var: contextvars.ContextVar[str] = contextvars.ContextVar("step", default="-")
_domain_var: contextvars.ContextVar[str] = contextvars.ContextVar("domain", default="-")

# Attributes that are part of the standard LogRecord; everything
# else is considered "extra" and gets included in structured output.
_STANDARD_ATTRS = frozenset(
    {
        "args",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
        "step",
        "domain",
    }
)

_NOISY_LOGGERS = ("botocore", "boto3", "urllib3", "s3transfer")


@contextlib.contextmanager
def log_context(*, step: str | None = None, domain: str | None = None) -> Iterator[None]:
    """Tag log records emitted inside the block with *step* / *domain*."""
    tokens = []
    if step is not None:
        tokens.append((_step_var, _step_var.set(step)))
    if domain is not None:
        tokens.append((_domain_var, _domain_var.set(domain)))
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


# ---------------------------------------------------------------------------
# Formatters
# ---------------------------------------------------------------------------


class StructuredFormatter(logging.Formatter):
    """JSON-lines formatter.

    Every record becomes one JSON object containing the standard
    fields, the workflow context and any *extra* attributes.
    """

    def format(self, record: logging.LogRecord) -> str:
        record.message = record.getMessage()

        data: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.message,
        }

        for attr in ("step", "domain"):
            value = getattr(record, attr, "-")
            if value != "-":
                data[attr] = value

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                data.setdefault(key, value)

        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)

        if record.stack_info:
            data["stack_info"] = self.formatStack(record.stack_info)

        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable formatter for console use."""

    _FMT = "%(asctime)s %(levelname)-8s [%(step)s] %(domain)s %(name)s: %(message)s"

    def __init__(self) -> None:
        super().__init__(fmt=self._FMT, datefmt="%Y-%m-%d %H:%M:%S")


# ---------------------------------------------------------------------------
# Filter
# ---------------------------------------------------------------------------


class SessionContextFilter(logging.Filter):
    """Inject the active :func:`log_context` values into every record."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "step"):
            record.step = _step_var.get()  # type: ignore[attr-defined]
        if not hasattr(record, "domain"):
            record.domain = _domain_var.get()  # type: ignore[attr-defined]
        return True


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def configure_logging(
    settings: LoggingSettings,
    *,
    level_override: str | None = None,
) -> logging.Logger:
    """Configure the ``acmer53`` logger hierarchy from settings.

    *level_override* (e.g. ``"DEBUG"`` from ``--verbose``) wins over the
    configured level.  Returns the root ``acmer53`` logger.
    """
    level_name = (level_override or settings.level).upper()
    level = getattr(logging, level_name, logging.INFO)

    root = logging.getLogger("acmer53")
    root.setLevel(level)
    root.handlers.clear()
    root.propagate = False

    formatter: logging.Formatter
    formatter = StructuredFormatter() if settings.format == "json" else TextFormatter()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(formatter)
    console.addFilter(SessionContextFilter())
    root.addHandler(console)

    for lib in _NOISY_LOGGERS:
        logging.getLogger(lib).setLevel(logging.WARNING)

    return root
