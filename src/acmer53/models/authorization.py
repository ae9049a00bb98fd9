"""Authorization entity returned by ``new-authz``."""

from __future__ import annotations

from dataclasses import dataclass, field

from acmer53.models.challenge import Challenge


@dataclass(frozen=True)
class Authorization:
    domain: str
    status: str
    challenges: tuple[Challenge, ...] = ()
    uri: str | None = None
    expires: str | None = None
    raw: dict = field(default_factory=dict, repr=False, compare=False)
