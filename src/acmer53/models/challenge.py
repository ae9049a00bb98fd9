"""Challenge entity, as offered by the CA inside an authorization."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Challenge:
    type: str
    token: str
    uri: str
    status: str = "pending"
    error: dict | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Challenge:
        """Build from one entry of an authorization's ``challenges`` list.

        Missing members default to empty strings so that unsupported
        challenge types (which may omit ``token``) still parse.
        """
        return cls(
            type=data.get("type", ""),
            token=data.get("token", ""),
            uri=data.get("uri", ""),
            status=data.get("status", "pending"),
            error=data.get("error"),
        )
