"""Redaction of key material before it reaches a log line.

:func:`sanitize_for_logs` walks JWS payloads and other structures and
replaces JWK numbers, PEM bodies and base64url DER blobs (``csr``,
``certificate``) with ``[REDACTED]``.  Structure and non-secret
metadata are kept so that debug output still shows what was sent.
"""

from __future__ import annotations

import re
from typing import Any

REDACTED = "[REDACTED]"

# JWK fields that contain raw key material
_JWK_SECRET_FIELDS = frozenset({"n", "e", "d", "p", "q", "dp", "dq", "qi", "k"})

# Payload members carrying base64url DER
_BLOB_FIELDS = frozenset({"csr", "certificate"})

_PEM_BODY_RE = re.compile(
    r"(-----BEGIN [A-Z0-9 ]+-----)"
    r"([\s\S]*?)"
    r"(-----END [A-Z0-9 ]+-----)",
)


def sanitize_jwk(jwk: dict) -> dict:
    """Return a copy of *jwk* with key numbers replaced by ``[REDACTED]``."""
    return {
        key: REDACTED if key in _JWK_SECRET_FIELDS else value
        for key, value in jwk.items()
    }


def sanitize_pem(pem: str) -> str:
    """Replace the base64 body of PEM blocks, keeping BEGIN/END markers."""

    def _redact(m: re.Match[str]) -> str:
        return f"{m.group(1)}\n{REDACTED}\n{m.group(3)}"

    return _PEM_BODY_RE.sub(_redact, pem)


def sanitize_for_logs(data: Any) -> Any:  # noqa: ANN401
    """Recursively sanitize sensitive material in *data*."""
    if isinstance(data, dict):
        if "kty" in data:
            return sanitize_jwk(data)
        result = {}
        for key, value in data.items():
            if key in _BLOB_FIELDS and isinstance(value, str):
                result[key] = f"{REDACTED} ({len(value)} chars)"
            else:
                result[key] = sanitize_for_logs(value)
        return result

    if isinstance(data, (list, tuple)):
        return type(data)(sanitize_for_logs(item) for item in data)

    if isinstance(data, str) and "-----BEGIN " in data:
        return sanitize_pem(data)

    return data
