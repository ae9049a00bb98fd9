"""Legacy ACME protocol client.

Drives one :class:`~acmer53.client.session.AcmeSession` through the
registration, authorization, challenge and certificate steps.  Every
CA exchange goes through :class:`~acmer53.client.transport.AcmeTransport`,
so the replay nonce is threaded automatically.

CA rejections are never recovered from here: each method either
returns a parsed result or raises the step's
:class:`~acmer53.core.errors.AcmeClientError` subclass carrying the
CA's status code and problem document.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

from acmer53.challenge.dns01 import ChallengeResponse, build_challenge_response
from acmer53.core.errors import (
    AgreementError,
    AuthorizationError,
    CertificateIssuanceError,
    ChallengeTimeout,
    ChallengeValidationError,
    NoDnsChallengeError,
    RegistrationError,
    RevocationRejected,
    TransportError,
    parse_problem,
)
from acmer53.core.jws import b64url_encode
from acmer53.core.polling import poll_until
from acmer53.core.types import (
    ChallengeStatus,
    ChallengeType,
    Resource,
    SessionState,
    WorkflowStep,
)
from acmer53.models.authorization import Authorization
from acmer53.models.certificate import IssuedCertificate
from acmer53.models.challenge import Challenge
from acmer53.models.registration import Registration

if TYPE_CHECKING:
    from acmer53.client.session import AcmeSession
    from acmer53.client.transport import AcmeResponse, AcmeTransport
    from acmer53.config.settings import ChallengeSettings

log = logging.getLogger(__name__)

_CREATED = 201
_CONFLICT = 409
_OK = 200


def _ca_error_detail(response: AcmeResponse) -> tuple[str, dict[str, Any]]:
    """Return ``("<status>: <detail>", problem)`` for an error response."""
    problem = parse_problem(response.body)
    status = problem.get("status", response.status_code)
    detail = problem.get("detail") or f"HTTP {response.status_code}"
    return f"{status}: {detail}", problem


def extract_dns_challenge(authorization: Authorization) -> Challenge:
    """Select the single ``dns-01`` entry of *authorization*.

    Raises
    ------
    NoDnsChallengeError
        If the CA offered only other challenge types.
    AuthorizationError
        If the dns-01 entry lacks its token or URI.

    """
    for challenge in authorization.challenges:
        if challenge.type != ChallengeType.DNS_01:
            continue
        missing = [name for name in ("token", "uri") if not getattr(challenge, name)]
        if missing:
            msg = (
                f"dns-01 challenge for {authorization.domain} is missing "
                f"{' and '.join(missing)}"
            )
            raise AuthorizationError(msg)
        return challenge
    offered = ", ".join(c.type for c in authorization.challenges) or "none"
    msg = f"CA offered no dns-01 challenge for {authorization.domain} (offered: {offered})"
    raise NoDnsChallengeError(msg)


class AcmeClient:
    """Protocol operations for one account session.

    Parameters
    ----------
    transport:
        HTTPS transport bound to the CA.
    session:
        Account key, nonce and state-machine position.
    challenge_settings:
        Polling parameters for :meth:`wait_for_validation`.

    """

    def __init__(
        self,
        transport: AcmeTransport,
        session: AcmeSession,
        challenge_settings: ChallengeSettings | None = None,
    ) -> None:
        self._transport = transport
        self._session = session
        self._challenge_settings = challenge_settings

    @property
    def session(self) -> AcmeSession:
        return self._session

    def _post(self, step: WorkflowStep, url: str, payload: dict[str, Any]) -> AcmeResponse:
        try:
            return self._transport.signed_request(self._session, url, payload)
        except TransportError as exc:
            exc.step = exc.step or step
            raise

    def _get(self, step: WorkflowStep, url: str) -> AcmeResponse:
        try:
            return self._transport.get(url)
        except TransportError as exc:
            exc.step = exc.step or step
            raise

    # -- registration ---------------------------------------------------------

    def register(self, email: str) -> Registration:
        """Register the account key with contact ``mailto:<email>``.

        201 (created) and 409 (key already registered) both succeed and
        record the ``Location`` header as the registration URL.
        """
        response = self._post(
            WorkflowStep.REGISTRATION,
            self._transport.acme_url(Resource.NEW_REG.value),
            {"resource": Resource.NEW_REG.value, "contact": [f"mailto:{email}"]},
        )

        if response.status_code not in (_CREATED, _CONFLICT):
            detail, problem = _ca_error_detail(response)
            raise RegistrationError(
                f"CA answered {detail}",
                status=response.status_code,
                problem=problem,
            )

        url = response.location
        if not url:
            msg = f"CA answered {response.status_code} without a Location header"
            raise RegistrationError(msg, status=response.status_code)

        created = response.status_code == _CREATED
        agreement = None
        if created:
            try:
                agreement = (response.json() or {}).get("agreement")
            except (ValueError, AttributeError):
                agreement = None

        self._session.registration_url = url
        self._session.advance(
            SessionState.REGISTERED,
            reason="created" if created else "already registered",
        )
        log.info(
            "Account %s: %s",
            "registered" if created else "already registered",
            url,
        )
        return Registration(url=url, created=created, agreement=agreement)

    def _registration_url(self, url: str | None) -> str:
        url = url or self._session.registration_url
        if not url:
            msg = "No registration URL; register the account first"
            raise AgreementError(msg)
        return url

    def get_registration(self, url: str | None = None) -> AcmeResponse:
        """Fetch the registration resource (signed ``reg`` request)."""
        url = self._registration_url(url)
        response = self._post(WorkflowStep.AGREEMENT, url, {"resource": Resource.REG.value})
        if not response.ok:
            detail, problem = _ca_error_detail(response)
            raise AgreementError(
                f"reading registration failed with {detail}",
                status=response.status_code,
                problem=problem,
            )
        return response

    def check_agreement(self, url: str | None = None) -> str | None:
        """Return the CA's current terms-of-service URL if not yet accepted.

        Compares the ``Link: <...>;rel="terms-of-service"`` header of the
        registration with its ``agreement`` member.  Returns ``None`` and
        marks the session agreement-current when they match.
        """
        response = self.get_registration(url)
        latest = response.link("terms-of-service")

        try:
            body = response.json()
        except ValueError:
            body = {}
        accepted = body.get("agreement") if isinstance(body, dict) else None

        if latest and latest != accepted:
            log.info("New subscriber agreement available: %s", latest)
            return latest

        self._session.advance(SessionState.AGREEMENT_CURRENT, reason="agreement current")
        return None

    def update_registration(self, url: str | None, agreement: str) -> AcmeResponse:
        """Accept *agreement* on the registration at *url*."""
        url = self._registration_url(url)
        response = self._post(
            WorkflowStep.AGREEMENT,
            url,
            {"resource": Resource.REG.value, "agreement": agreement},
        )
        if not response.ok:
            detail, problem = _ca_error_detail(response)
            raise AgreementError(
                f"accepting {agreement} failed with {detail}",
                status=response.status_code,
                problem=problem,
            )
        self._session.advance(SessionState.AGREEMENT_CURRENT, reason="agreement accepted")
        log.info("Accepted subscriber agreement %s", agreement)
        return response

    # -- authorization --------------------------------------------------------

    def new_authorization(self, domain: str) -> Authorization:
        """Request authorization for *domain* and parse the challenges."""
        response = self._post(
            WorkflowStep.AUTHORIZATION,
            self._transport.acme_url(Resource.NEW_AUTHZ.value),
            {
                "resource": Resource.NEW_AUTHZ.value,
                "identifier": {"type": "dns", "value": domain},
            },
        )
        if not response.ok:
            detail, problem = _ca_error_detail(response)
            raise AuthorizationError(
                f"new-authz for {domain} failed with {detail}",
                status=response.status_code,
                problem=problem,
            )

        try:
            body = response.json()
            challenges = tuple(Challenge.from_dict(c) for c in body["challenges"])
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            msg = f"new-authz for {domain} returned an unusable body: {exc}"
            raise AuthorizationError(msg, status=response.status_code) from exc

        identifier = body.get("identifier") or {}
        authorization = Authorization(
            domain=identifier.get("value", domain),
            status=body.get("status", ChallengeStatus.PENDING.value),
            challenges=challenges,
            uri=response.location,
            expires=body.get("expires"),
            raw=body,
        )
        self._session.advance(SessionState.AUTHORIZATION_PENDING, reason=domain)
        log.debug(
            "Authorization for %s offers %s",
            domain,
            [c.type for c in challenges],
        )
        return authorization

    def extract_dns_challenge(self, authorization: Authorization) -> Challenge:
        """Select the ``dns-01`` challenge and mark it issued."""
        challenge = extract_dns_challenge(authorization)
        self._session.advance(SessionState.CHALLENGE_ISSUED, reason=challenge.uri)
        return challenge

    def build_challenge_response(self, challenge: Challenge) -> ChallengeResponse:
        """Key authorization and TXT value for *challenge*."""
        return build_challenge_response(challenge, self._session.account_key)

    def new_dns_challenge(
        self,
        domain: str,
    ) -> tuple[Authorization, ChallengeResponse]:
        """Authorize *domain* and compute its DNS-01 response in one call."""
        authorization = self.new_authorization(domain)
        challenge = self.extract_dns_challenge(authorization)
        return authorization, self.build_challenge_response(challenge)

    # -- challenge validation -------------------------------------------------

    def validate_challenge(self, response: ChallengeResponse) -> Challenge:
        """Ask the CA to verify the published record."""
        ca_response = self._post(
            WorkflowStep.CHALLENGE_VALIDATION,
            response.challenge_uri,
            {
                "resource": Resource.CHALLENGE.value,
                "keyAuthorization": response.key_authorization,
            },
        )
        if not ca_response.ok:
            detail, problem = _ca_error_detail(ca_response)
            raise ChallengeValidationError(
                f"CA answered {detail}",
                status=ca_response.status_code,
                problem=problem,
            )

        try:
            challenge = Challenge.from_dict(ca_response.json())
        except (ValueError, AttributeError):
            challenge = Challenge(
                type=ChallengeType.DNS_01.value,
                token="",
                uri=response.challenge_uri,
            )

        if challenge.status == ChallengeStatus.INVALID:
            self._raise_invalid(challenge)

        self._session.advance(SessionState.CHALLENGE_VALIDATING, reason=challenge.status)
        return challenge

    def _raise_invalid(self, challenge: Challenge) -> None:
        problem = challenge.error or {}
        detail = problem.get("detail") or "challenge marked invalid"
        raise ChallengeValidationError(
            f"CA marked the challenge invalid: {detail}",
            status=problem.get("status"),
            problem=problem,
        )

    def _fetch_challenge(self, uri: str) -> Challenge | None:
        response = self._get(WorkflowStep.CHALLENGE_VALIDATION, uri)
        if not response.ok:
            detail, problem = _ca_error_detail(response)
            raise ChallengeValidationError(
                f"reading challenge status failed with {detail}",
                status=response.status_code,
                problem=problem,
            )
        try:
            challenge = Challenge.from_dict(response.json())
        except (ValueError, AttributeError) as exc:
            msg = f"challenge status body is not JSON: {exc}"
            raise ChallengeValidationError(msg, status=response.status_code) from exc

        log.debug("Challenge %s status: %s", uri, challenge.status)
        if challenge.status == ChallengeStatus.INVALID:
            self._raise_invalid(challenge)
        if challenge.status == ChallengeStatus.VALID:
            return challenge
        return None

    def wait_for_validation(
        self,
        challenge_uri: str,
        *,
        cancel: threading.Event | None = None,
    ) -> Challenge | None:
        """Poll *challenge_uri* until the CA reports ``valid``.

        Returns ``None`` without polling when polling is disabled in
        config.

        Raises
        ------
        ChallengeValidationError
            The CA marked the challenge ``invalid``.
        ChallengeTimeout
            No terminal status before the deadline, or *cancel* was set.

        """
        settings = self._challenge_settings
        if settings is None or not settings.poll_validation:
            log.debug("Validation polling disabled; not waiting for %s", challenge_uri)
            return None

        cancel = cancel or threading.Event()
        challenge = poll_until(
            lambda: self._fetch_challenge(challenge_uri),
            interval=settings.poll_interval_seconds,
            backoff_factor=2.0,
            max_interval=settings.poll_max_interval_seconds,
            timeout=settings.poll_timeout_seconds,
            cancel=cancel,
        )
        if challenge is None:
            if cancel.is_set():
                msg = f"waiting for {challenge_uri} was cancelled"
            else:
                msg = (
                    f"challenge {challenge_uri} not valid after "
                    f"{settings.poll_timeout_seconds:g}s"
                )
            raise ChallengeTimeout(msg)

        self._session.advance(SessionState.AUTHORIZED, reason="challenge valid")
        return challenge

    # -- certificates ---------------------------------------------------------

    def get_issuer_cert(self, url: str) -> bytes:
        """Download the DER issuer certificate advertised with ``rel="up"``."""
        response = self._get(WorkflowStep.CERTIFICATE_ISSUANCE, url)
        if not response.ok:
            detail, problem = _ca_error_detail(response)
            raise CertificateIssuanceError(
                f"fetching issuer certificate {url} failed with {detail}",
                status=response.status_code,
                problem=problem,
            )
        return response.body

    def request_certificate(self, csr_der: bytes) -> IssuedCertificate:
        """Submit *csr_der* and return the certificate plus issuer chain."""
        response = self._post(
            WorkflowStep.CERTIFICATE_ISSUANCE,
            self._transport.acme_url(Resource.NEW_CERT.value),
            {"resource": Resource.NEW_CERT.value, "csr": b64url_encode(csr_der)},
        )
        if not response.ok or not response.body:
            detail, problem = _ca_error_detail(response)
            raise CertificateIssuanceError(
                f"new-cert failed with {detail}",
                status=response.status_code,
                problem=problem,
            )

        issuer_url = response.link("up")
        chain_der = None
        if issuer_url:
            chain_der = self.get_issuer_cert(issuer_url)
        else:
            log.warning("CA returned no issuer link; chain will be missing")

        self._session.advance(SessionState.CERTIFICATE_ISSUED)
        return IssuedCertificate(
            certificate_der=response.body,
            chain_der=chain_der,
            certificate_url=response.location,
            issuer_url=issuer_url,
        )

    def revoke_certificate(self, cert_der: bytes) -> None:
        """Revoke the DER certificate *cert_der*.

        Raises
        ------
        RevocationRejected
            Any status other than 200, with the CA's ``status: detail``.

        """
        response = self._post(
            WorkflowStep.REVOCATION,
            self._transport.acme_url(Resource.REVOKE_CERT.value),
            {
                "resource": Resource.REVOKE_CERT.value,
                "certificate": b64url_encode(cert_der),
            },
        )
        if response.status_code != _OK:
            detail, problem = _ca_error_detail(response)
            raise RevocationRejected(
                detail,
                status=response.status_code,
                problem=problem,
            )
        self._session.advance(SessionState.REVOKED)
        log.info("Certificate revoked")
