"""Bounded, cancellable polling with exponential backoff.

Shared by DNS change propagation and challenge validation waits.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

log = logging.getLogger(__name__)

T = TypeVar("T")


def backoff_intervals(
    initial: float,
    factor: float,
    maximum: float,
) -> Iterator[float]:
    """Yield ``initial, initial*factor, ...`` capped at *maximum*, forever."""
    delay = min(initial, maximum)
    while True:
        yield delay
        delay = min(delay * factor, maximum)


def poll_until(
    check: Callable[[], T | None],
    *,
    interval: float,
    backoff_factor: float,
    max_interval: float,
    timeout: float,
    cancel: threading.Event | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> T | None:
    """Call *check* until it returns a truthy value or the deadline passes.

    Returns that value, or ``None`` on timeout or when *cancel* is set;
    callers distinguish the two with ``cancel.is_set()``.  Exceptions
    raised by *check* propagate unchanged.
    """
    cancel = cancel or threading.Event()
    deadline = clock() + timeout
    attempts = 0

    for delay in backoff_intervals(interval, backoff_factor, max_interval):
        attempts += 1
        result = check()
        if result:
            log.debug("Poll succeeded after %d attempt(s)", attempts)
            return result

        remaining = deadline - clock()
        if remaining <= 0:
            break
        if cancel.wait(min(delay, remaining)):
            log.debug("Poll cancelled after %d attempt(s)", attempts)
            return None

    log.debug("Poll timed out after %d attempt(s)", attempts)
    return None
