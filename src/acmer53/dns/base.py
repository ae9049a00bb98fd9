"""Abstract base class for DNS providers.

The certificate workflow depends on exactly four provider operations:
hosted zone lookup, TXT record creation, TXT record deletion and change
status polling.  Built-in and ``ext:`` providers implement
:class:`DnsProvider`.
"""

from __future__ import annotations

import abc
import logging
from typing import Any, ClassVar

from acmer53.challenge.dns01 import record_name

log = logging.getLogger(__name__)

DEFAULT_TTL = 300


def encode_txt_value(value: str) -> str:
    """Quote a TXT value for providers that take zone-file syntax."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class DnsProvider(abc.ABC):
    """Base class for all DNS providers.

    Parameters
    ----------
    provider_config:
        Free-form ``dns.provider_config`` mapping from the config file.
    record_ttl:
        TTL applied to created validation records.

    """

    name: ClassVar[str] = ""

    def __init__(
        self,
        provider_config: dict[str, Any] | None = None,
        record_ttl: int = DEFAULT_TTL,
    ) -> None:
        self.provider_config = dict(provider_config or {})
        self.record_ttl = record_ttl

    @staticmethod
    def record_name(domain: str) -> str:
        return record_name(domain)

    @abc.abstractmethod
    def find_hosted_zone_id(self, domain: str) -> str | None:
        """Return the id of the zone serving *domain*, or ``None``."""

    @abc.abstractmethod
    def create_challenge_txt_record(self, zone_id: str, domain: str, value: str) -> str:
        """Publish *value* at ``_acme-challenge.<domain>``; return a change id."""

    @abc.abstractmethod
    def delete_challenge_txt_record(self, zone_id: str, domain: str, value: str) -> str:
        """Remove the record created for *value*; return a change id."""

    @abc.abstractmethod
    def is_change_in_sync(self, change_id: str) -> bool:
        """Whether the change has reached every authoritative server."""
