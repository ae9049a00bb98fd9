"""Exception taxonomy for the ACME client.

Every exception derives from :class:`AcmeClientError` and records the
workflow step that failed plus, when the CA answered, its HTTP status
and problem document.  The CLI renders these as
``error: <step> failed: <detail>``.

Usage::

    raise RegistrationError("CA answered 400", status=400, problem=problem)
"""

from __future__ import annotations

import json
import logging
from typing import Any, ClassVar

from acmer53.core.types import WorkflowStep

log = logging.getLogger(__name__)


class AcmeClientError(Exception):
    """Base class for every failure surfaced by the client.

    Parameters
    ----------
    detail:
        Human-readable description of the failure.
    step:
        Workflow step that failed.  Defaults to the class-level
        :attr:`default_step`.
    status:
        HTTP status code returned by the CA, if any.
    problem:
        Parsed CA problem document (``type``, ``detail``, ``status``).

    """

    default_step: ClassVar[WorkflowStep | None] = None

    def __init__(
        self,
        detail: str,
        *,
        step: WorkflowStep | None = None,
        status: int | None = None,
        problem: dict[str, Any] | None = None,
    ) -> None:
        self.detail = detail
        self.step = step or self.default_step
        self.status = status
        self.problem = problem or {}
        super().__init__(detail)

    @property
    def ca_detail(self) -> str | None:
        """The ``detail`` string reported by the CA, if any."""
        return self.problem.get("detail")

    def describe(self) -> str:
        """Return a one-line message naming the failed step."""
        step = self.step.value if self.step else "operation"
        parts = [f"{step} failed: {self.detail}"]
        if self.ca_detail and self.ca_detail not in self.detail:
            parts.append(f"({self.ca_detail})")
        return " ".join(parts)


class KeyParseError(AcmeClientError):
    """Key material did not yield an RSA modulus/exponent pair."""

    default_step = WorkflowStep.KEY


class EncodingError(AcmeClientError):
    """A certificate or CSR could not be converted between PEM and DER."""


class TransportError(AcmeClientError):
    """Network-level failure: DNS resolution, TLS handshake, reset."""


class RegistrationError(AcmeClientError):
    """``new-reg`` returned a status other than 201 or 409."""

    default_step = WorkflowStep.REGISTRATION


class AgreementError(AcmeClientError):
    """The registration could not be read or updated."""

    default_step = WorkflowStep.AGREEMENT


class AuthorizationError(AcmeClientError):
    """``new-authz`` was rejected or returned an unusable body."""

    default_step = WorkflowStep.AUTHORIZATION


class NoDnsChallengeError(AuthorizationError):
    """The CA did not offer a ``dns-01`` challenge."""


class ChallengeValidationError(AcmeClientError):
    """The CA rejected the challenge response or marked it invalid."""

    default_step = WorkflowStep.CHALLENGE_VALIDATION


class ChallengeTimeout(ChallengeValidationError):
    """The challenge did not reach a terminal status in time."""


class CertificateIssuanceError(AcmeClientError):
    """``new-cert`` or the issuer chain fetch failed."""

    default_step = WorkflowStep.CERTIFICATE_ISSUANCE


class RevocationRejected(AcmeClientError):
    """``revoke-cert`` answered with a status other than 200."""

    default_step = WorkflowStep.REVOCATION


class DnsProviderError(AcmeClientError):
    """The DNS provider rejected a lookup or record change."""

    default_step = WorkflowStep.DNS


class DnsPropagationTimeout(DnsProviderError):
    """A record change was not in sync before the deadline."""


class StorageError(AcmeClientError):
    """Reading or writing persisted state failed."""

    default_step = WorkflowStep.STORAGE


def parse_problem(body: bytes) -> dict[str, Any]:
    """Best-effort decode of a CA problem document.

    Returns an empty dict when *body* is not a JSON object.
    """
    if not body:
        return {}
    try:
        doc = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        log.debug("CA error body is not JSON (%d bytes)", len(body))
        return {}
    if not isinstance(doc, dict):
        return {}
    return doc
