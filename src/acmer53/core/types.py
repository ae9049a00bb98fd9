"""Enumerated types for the ACME client.

All enums inherit from ``StrEnum`` so their ``.value`` is the plain
string the CA puts on the wire (``"dns-01"``, ``"valid"``) and they
compare equal to those strings when parsing response bodies.
"""

from __future__ import annotations

from enum import StrEnum

# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class SessionState(StrEnum):
    UNREGISTERED = "unregistered"
    REGISTERED = "registered"
    AGREEMENT_CURRENT = "agreement_current"
    AUTHORIZATION_PENDING = "authorization_pending"
    CHALLENGE_ISSUED = "challenge_issued"
    CHALLENGE_VALIDATING = "challenge_validating"
    AUTHORIZED = "authorized"
    CERTIFICATE_ISSUED = "certificate_issued"
    REVOKED = "revoked"


# ---------------------------------------------------------------------------
# Workflow steps (used for user-facing error reporting)
# ---------------------------------------------------------------------------


class WorkflowStep(StrEnum):
    KEY = "account key"
    REGISTRATION = "registration"
    AGREEMENT = "agreement"
    AUTHORIZATION = "authorization"
    CHALLENGE_VALIDATION = "challenge validation"
    CERTIFICATE_ISSUANCE = "certificate issuance"
    REVOCATION = "revocation"
    DNS = "dns"
    STORAGE = "storage"


# ---------------------------------------------------------------------------
# Challenges
# ---------------------------------------------------------------------------


class ChallengeType(StrEnum):
    HTTP_01 = "http-01"
    DNS_01 = "dns-01"
    TLS_SNI_01 = "tls-sni-01"


class ChallengeStatus(StrEnum):
    PENDING = "pending"
    PROCESSING = "processing"
    VALID = "valid"
    INVALID = "invalid"


# ---------------------------------------------------------------------------
# Legacy ACME resource names (``resource`` member of every payload)
# ---------------------------------------------------------------------------


class Resource(StrEnum):
    NEW_REG = "new-reg"
    REG = "reg"
    NEW_AUTHZ = "new-authz"
    CHALLENGE = "challenge"
    NEW_CERT = "new-cert"
    REVOKE_CERT = "revoke-cert"
