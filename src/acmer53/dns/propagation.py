"""Waiting for DNS record changes to propagate.

Polls :meth:`DnsProvider.is_change_in_sync` with exponential backoff
until the change is in sync, the configured deadline passes
(:class:`~acmer53.core.errors.DnsPropagationTimeout`) or the caller
sets the cancel event.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from acmer53.core.errors import DnsPropagationTimeout
from acmer53.core.polling import poll_until

if TYPE_CHECKING:
    from acmer53.config.settings import PropagationSettings
    from acmer53.dns.base import DnsProvider

log = logging.getLogger(__name__)


def wait_for_change(
    provider: DnsProvider,
    change_id: str,
    settings: PropagationSettings,
    *,
    cancel: threading.Event | None = None,
) -> None:
    """Block until *change_id* is in sync.

    Raises
    ------
    DnsPropagationTimeout
        Not in sync within ``settings.timeout_seconds``, or cancelled.
    DnsProviderError
        The provider failed while reporting change status.

    """
    cancel = cancel or threading.Event()
    log.info("Waiting for DNS change %s to be in sync", change_id)

    in_sync = poll_until(
        lambda: provider.is_change_in_sync(change_id),
        interval=settings.interval_seconds,
        backoff_factor=settings.backoff_factor,
        max_interval=settings.max_interval_seconds,
        timeout=settings.timeout_seconds,
        cancel=cancel,
    )
    if in_sync:
        log.info("DNS change %s is in sync", change_id)
        return

    if cancel.is_set():
        msg = f"Waiting for DNS change {change_id} was cancelled"
    else:
        msg = (
            f"DNS change {change_id} not in sync after "
            f"{settings.timeout_seconds:g}s"
        )
    raise DnsPropagationTimeout(msg)
