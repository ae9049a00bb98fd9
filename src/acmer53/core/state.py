"""ACME session state machine (legacy ACME draft flow).

Defines the valid transitions of a protocol session and enforces them
via :func:`assert_transition`.

Usage::

    from acmer53.core.state import SESSION_TRANSITIONS, assert_transition
    from acmer53.core.types import SessionState

    assert_transition(
        SessionState.REGISTERED, SessionState.AGREEMENT_CURRENT,
        SESSION_TRANSITIONS,
    )
"""

from __future__ import annotations

import logging

from acmer53.core.types import SessionState

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# unregistered -> registered -> agreement_current -> authorization_pending
# -> challenge_issued -> challenge_validating -> authorized
# -> certificate_issued -> revoked
#
# A registered session may request authorization directly when the caller
# has already confirmed the agreement (new-cert reuses an account set up
# earlier).  After issuance or revocation the session may start another
# authorization, and revocation is reachable from any registered state
# because the certificate being revoked may come from an earlier session.
# ---------------------------------------------------------------------------

_AFTER_REGISTRATION = frozenset(
    {
        SessionState.REGISTERED,
        SessionState.AGREEMENT_CURRENT,
        SessionState.AUTHORIZATION_PENDING,
        SessionState.REVOKED,
    }
)

SESSION_TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.UNREGISTERED: frozenset({SessionState.REGISTERED}),
    SessionState.REGISTERED: _AFTER_REGISTRATION,
    SessionState.AGREEMENT_CURRENT: _AFTER_REGISTRATION,
    SessionState.AUTHORIZATION_PENDING: frozenset(
        {
            SessionState.CHALLENGE_ISSUED,
            SessionState.AUTHORIZATION_PENDING,
        }
    ),
    SessionState.CHALLENGE_ISSUED: frozenset(
        {
            SessionState.CHALLENGE_VALIDATING,
            SessionState.AUTHORIZATION_PENDING,
        }
    ),
    # certificate_issued is reachable directly when validation polling is
    # disabled (the CA is trusted to finish verification before new-cert).
    SessionState.CHALLENGE_VALIDATING: frozenset(
        {
            SessionState.AUTHORIZED,
            SessionState.CERTIFICATE_ISSUED,
            SessionState.AUTHORIZATION_PENDING,
        }
    ),
    SessionState.AUTHORIZED: frozenset(
        {
            SessionState.CERTIFICATE_ISSUED,
            SessionState.AUTHORIZATION_PENDING,
        }
    ),
    SessionState.CERTIFICATE_ISSUED: frozenset(
        {
            SessionState.REVOKED,
            SessionState.AUTHORIZATION_PENDING,
        }
    ),
    SessionState.REVOKED: frozenset(
        {
            SessionState.REVOKED,
            SessionState.AUTHORIZATION_PENDING,
        }
    ),
}


def assert_transition(
    current: SessionState,
    target: SessionState,
    table: dict[SessionState, frozenset[SessionState]] = SESSION_TRANSITIONS,
) -> None:
    """Raise :class:`ValueError` if *current* -> *target* is not allowed."""
    allowed = table.get(current)
    if allowed is None:
        msg = f"Unknown status {current!r}"
        raise ValueError(msg)
    if target not in allowed:
        msg = (
            f"Invalid transition {current.value!r} -> {target.value!r}; "
            f"allowed targets: {sorted(s.value for s in allowed) or '(terminal)'}"
        )
        raise ValueError(msg)


def log_transition(
    from_status: SessionState,
    to_status: SessionState,
    *,
    reason: str | None = None,
) -> None:
    """Emit a structured log entry for a session state transition."""
    extra = {
        "event": "state_transition",
        "from_status": from_status.value,
        "to_status": to_status.value,
    }
    if reason:
        extra["reason"] = reason
    log.debug(
        "session: %s -> %s%s",
        extra["from_status"],
        extra["to_status"],
        f" ({reason})" if reason else "",
        extra=extra,
    )
