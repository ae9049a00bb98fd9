"""Workflow services.

Each service composes the protocol client, DNS provider and storage
into one user-level operation.
"""

from acmer53.services.account import AccountService, SetupResult
from acmer53.services.certificate import CertificateService, IssuanceResult

__all__ = [
    "AccountService",
    "CertificateService",
    "IssuanceResult",
    "SetupResult",
]
