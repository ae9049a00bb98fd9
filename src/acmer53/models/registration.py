"""Registration (account) entity."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Registration:
    url: str
    created: bool
    agreement: str | None = None
