"""Certificate artifacts produced by a successful issuance."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class IssuedCertificate:
    """Leaf certificate and issuer chain, DER as returned by the CA.

    Attributes
    ----------
    certificate_der:
        The leaf certificate body of the ``new-cert`` response.
    chain_der:
        The issuer certificate fetched from the ``rel="up"`` link, or
        ``None`` when the CA did not advertise one.
    certificate_url:
        ``Location`` of the issued certificate, if given.
    issuer_url:
        Target of the ``rel="up"`` link, if given.

    """

    certificate_der: bytes
    chain_der: bytes | None = None
    certificate_url: str | None = None
    issuer_url: str | None = None
