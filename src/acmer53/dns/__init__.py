"""Pluggable DNS providers for publishing DNS-01 validation records."""

from acmer53.dns.base import DnsProvider
from acmer53.dns.propagation import wait_for_change
from acmer53.dns.registry import load_provider

__all__ = [
    "DnsProvider",
    "load_provider",
    "wait_for_change",
]
