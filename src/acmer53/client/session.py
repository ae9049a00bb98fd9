"""Per-account protocol session.

The session owns everything that changes during a protocol exchange:
the replay nonce, the state-machine position and the registration
URL.  Nothing here is module-global, so independent sessions (e.g. for
unrelated domains issued concurrently) never share a nonce.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from acmer53.core.state import assert_transition, log_transition
from acmer53.core.types import SessionState

if TYPE_CHECKING:
    from acmer53.core.keys import AccountKey

log = logging.getLogger(__name__)


@dataclass
class AcmeSession:
    """Mutable state of one account's conversation with the CA.

    Attributes
    ----------
    account_key:
        Signing identity; read-only for the life of the session.
    nonce:
        Replay nonce to use on the next signed request, or ``None`` when
        one must first be fetched from the directory.
    state:
        Current position in the protocol state machine.
    registration_url:
        Account URL from the ``Location`` header of ``new-reg``.

    """

    account_key: AccountKey
    nonce: str | None = None
    state: SessionState = SessionState.UNREGISTERED
    registration_url: str | None = None
    exchange_lock: threading.Lock = field(
        default_factory=threading.Lock,
        repr=False,
        compare=False,
    )

    def advance(self, target: SessionState, *, reason: str | None = None) -> None:
        """Move to *target*, raising :class:`ValueError` if not allowed."""
        assert_transition(self.state, target)
        log_transition(self.state, target, reason=reason)
        self.state = target
