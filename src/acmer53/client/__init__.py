"""ACME protocol client: session state, HTTPS transport and operations."""

from acmer53.client.acme import AcmeClient, extract_dns_challenge
from acmer53.client.session import AcmeSession
from acmer53.client.transport import AcmeResponse, AcmeTransport

__all__ = [
    "AcmeClient",
    "AcmeResponse",
    "AcmeSession",
    "AcmeTransport",
    "extract_dns_challenge",
]
