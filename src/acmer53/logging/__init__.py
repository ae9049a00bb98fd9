"""Logging subsystem for acmer53.

Public API::

    from acmer53.logging import configure_logging, log_context

    configure_logging(settings.logging)
    with log_context(step="authorization", domain="example.com"):
        ...
"""

from acmer53.logging.setup import configure_logging, log_context

__all__ = ["configure_logging", "log_context"]
