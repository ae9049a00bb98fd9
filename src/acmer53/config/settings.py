"""Typed, frozen dataclasses for every configuration section.

This module is the **single source of truth** for default values.
JSON Schema defaults exist only for documentation; these builders
are what the client actually reads.

Access pattern::

    from acmer53.config import get_config

    ca = get_config().settings.ca
    print(ca.url, ca.timeout_seconds)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_CA_URL = "https://acme-v01.api.letsencrypt.org"

# ---------------------------------------------------------------------------
# CA
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CASettings:
    """Certificate authority endpoint and HTTP transport options."""

    url: str
    verify_ssl: bool
    ca_cert_path: str | None
    timeout_seconds: int
    user_agent: str | None


def _build_ca(data: dict | None) -> CASettings:
    d = data or {}
    return CASettings(
        url=d.get("url", DEFAULT_CA_URL),
        verify_ssl=d.get("verify_ssl", True),
        ca_cert_path=d.get("ca_cert_path"),
        timeout_seconds=d.get("timeout_seconds", 30),
        user_agent=d.get("user_agent"),
    )


# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StorageSettings:
    """Where the account key, persisted config and certificates live."""

    config_dir: str
    config_file: str
    account_key_file: str


def _build_storage(data: dict | None) -> StorageSettings:
    d = data or {}
    return StorageSettings(
        config_dir=d.get("config_dir", "~/.letsencrypt-certs"),
        config_file=d.get("config_file", "config.json"),
        account_key_file=d.get("account_key_file", "accountKey.pem"),
    )


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class KeySettings:
    rsa_key_size: int
    public_exponent: int


def _build_keys(data: dict | None) -> KeySettings:
    d = data or {}
    return KeySettings(
        rsa_key_size=d.get("rsa_key_size", 2048),
        public_exponent=d.get("public_exponent", 65537),
    )


# ---------------------------------------------------------------------------
# DNS
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PropagationSettings:
    """Bounded exponential backoff for record change polling."""

    interval_seconds: float
    backoff_factor: float
    max_interval_seconds: float
    timeout_seconds: float


@dataclass(frozen=True)
class VerifyTxtSettings:
    """Optional public-DNS check that the TXT record is visible."""

    enabled: bool
    resolvers: tuple[str, ...]
    timeout_seconds: float


@dataclass(frozen=True)
class DnsSettings:
    provider: str
    provider_config: dict[str, Any]
    record_ttl: int
    propagation: PropagationSettings
    verify_txt: VerifyTxtSettings


def _build_propagation(data: dict | None) -> PropagationSettings:
    d = data or {}
    return PropagationSettings(
        interval_seconds=float(d.get("interval_seconds", 1.0)),
        backoff_factor=float(d.get("backoff_factor", 2.0)),
        max_interval_seconds=float(d.get("max_interval_seconds", 10.0)),
        timeout_seconds=float(d.get("timeout_seconds", 300.0)),
    )


def _build_verify_txt(data: dict | None) -> VerifyTxtSettings:
    d = data or {}
    return VerifyTxtSettings(
        enabled=d.get("enabled", False),
        resolvers=tuple(d.get("resolvers", [])),
        timeout_seconds=float(d.get("timeout_seconds", 10)),
    )


def _build_dns(data: dict | None) -> DnsSettings:
    d = data or {}
    return DnsSettings(
        provider=d.get("provider", "route53"),
        provider_config=dict(d.get("provider_config") or {}),
        record_ttl=d.get("record_ttl", 300),
        propagation=_build_propagation(d.get("propagation")),
        verify_txt=_build_verify_txt(d.get("verify_txt")),
    )


# ---------------------------------------------------------------------------
# Challenge
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ChallengeSettings:
    """Polling of the challenge resource after the validation request."""

    poll_validation: bool
    poll_interval_seconds: float
    poll_max_interval_seconds: float
    poll_timeout_seconds: float


def _build_challenge(data: dict | None) -> ChallengeSettings:
    d = data or {}
    return ChallengeSettings(
        poll_validation=d.get("poll_validation", True),
        poll_interval_seconds=float(d.get("poll_interval_seconds", 1.0)),
        poll_max_interval_seconds=float(d.get("poll_max_interval_seconds", 10.0)),
        poll_timeout_seconds=float(d.get("poll_timeout_seconds", 120.0)),
    )


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LoggingSettings:
    level: str
    format: str


def _build_logging(data: dict | None) -> LoggingSettings:
    d = data or {}
    return LoggingSettings(
        level=d.get("level", "INFO"),
        format=d.get("format", "text"),
    )


# ---------------------------------------------------------------------------
# Root settings aggregate
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Acmer53Settings:
    ca: CASettings
    storage: StorageSettings
    keys: KeySettings
    dns: DnsSettings
    challenge: ChallengeSettings
    logging: LoggingSettings


def build_settings(data: dict) -> Acmer53Settings:
    """Build the full typed settings tree from raw config data.

    Called once during :class:`Acmer53Config` initialization after
    schema validation and environment-variable resolution.
    """
    return Acmer53Settings(
        ca=_build_ca(data.get("ca")),
        storage=_build_storage(data.get("storage")),
        keys=_build_keys(data.get("keys")),
        dns=_build_dns(data.get("dns")),
        challenge=_build_challenge(data.get("challenge")),
        logging=_build_logging(data.get("logging")),
    )
