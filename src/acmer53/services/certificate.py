"""Certificate service: DNS-01 issuance and revocation workflows.

Issuance for one domain runs, in order: hosted zone lookup, new-authz,
TXT record creation, wait for the change to be in sync, challenge
validation (plus optional status polling), TXT record deletion, wait
for that change, certificate key and CSR generation, new-cert and the
issuer chain download.  Every PEM produced along the way is written to
the domain directory with the same timestamp.

The validation record is removed even when validation fails or is
interrupted, so a failed run does not leave ``_acme-challenge`` records
behind.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

from acmer53.challenge.dns01 import TxtRecordChecker
from acmer53.client.acme import AcmeClient
from acmer53.client.session import AcmeSession
from acmer53.core.errors import (
    AcmeClientError,
    DnsPropagationTimeout,
    DnsProviderError,
    EncodingError,
    StorageError,
)
from acmer53.core.keys import load_account_key
from acmer53.core.polling import poll_until
from acmer53.core.types import SessionState, WorkflowStep
from acmer53.crypto.util import (
    convert_csr_der_to_pem,
    convert_der_to_pem,
    convert_pem_to_der,
    generate_csr,
    generate_private_key,
)
from acmer53.dns.propagation import wait_for_change
from acmer53.logging import log_context
from acmer53.storage import make_timestamp

if TYPE_CHECKING:
    from pathlib import Path

    from acmer53.challenge.dns01 import ChallengeResponse
    from acmer53.client.transport import AcmeTransport
    from acmer53.config.settings import ChallengeSettings, DnsSettings, KeySettings
    from acmer53.dns.base import DnsProvider
    from acmer53.models.certificate import IssuedCertificate
    from acmer53.storage import CertStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class IssuanceResult:
    """Outcome of :meth:`CertificateService.issue`."""

    domain: str
    timestamp: str
    key_path: Path
    csr_path: Path
    certificate_path: Path
    chain_path: Path | None
    certificate: IssuedCertificate


class CertificateService:
    """Issue and revoke certificates for the stored account."""

    def __init__(  # noqa: PLR0913
        self,
        store: CertStore,
        transport: AcmeTransport,
        provider: DnsProvider,
        dns_settings: DnsSettings,
        challenge_settings: ChallengeSettings,
        key_settings: KeySettings,
        txt_checker: TxtRecordChecker | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._provider = provider
        self._dns = dns_settings
        self._challenge = challenge_settings
        self._keys = key_settings
        if txt_checker is None and dns_settings.verify_txt.enabled:
            txt_checker = TxtRecordChecker(dns_settings.verify_txt)
        self._txt_checker = txt_checker

    def _client(self) -> AcmeClient:
        key_pem = self._store.load_account_key_pem()
        if not key_pem:
            msg = f"Could not load account key from {self._store.account_key_path} (try setup)"
            raise StorageError(msg, step=WorkflowStep.KEY)
        # the account was registered by setup; this session starts there
        session = AcmeSession(load_account_key(key_pem), state=SessionState.REGISTERED)
        return AcmeClient(self._transport, session, self._challenge)

    # -- issuance -------------------------------------------------------------

    def issue(
        self,
        domain: str,
        *,
        cancel: threading.Event | None = None,
    ) -> IssuanceResult:
        """Obtain a certificate for *domain* via DNS-01.

        *cancel* aborts any propagation or validation wait in progress.
        """
        cancel = cancel or threading.Event()
        client = self._client()
        log.info("Requesting certificate for %s", domain)

        with log_context(step=WorkflowStep.DNS.value, domain=domain):
            zone_id = self._provider.find_hosted_zone_id(domain)
            if not zone_id:
                msg = f"Could not find hosted zone for {domain}"
                raise DnsProviderError(msg)
            log.info("Found hosted zone %s", zone_id)

        with log_context(step=WorkflowStep.AUTHORIZATION.value, domain=domain):
            _, response = client.new_dns_challenge(domain)

        with log_context(step=WorkflowStep.CHALLENGE_VALIDATION.value, domain=domain):
            self._validate(client, zone_id, domain, response, cancel)

        with log_context(step=WorkflowStep.CERTIFICATE_ISSUANCE.value, domain=domain):
            return self._request_certificate(client, domain)

    def _validate(
        self,
        client: AcmeClient,
        zone_id: str,
        domain: str,
        response: ChallengeResponse,
        cancel: threading.Event,
    ) -> None:
        log.info("Creating challenge TXT record with value %s", response.hashed_key_auth)
        create_id = self._provider.create_challenge_txt_record(
            zone_id,
            domain,
            response.hashed_key_auth,
        )
        try:
            wait_for_change(self._provider, create_id, self._dns.propagation, cancel=cancel)
            self._verify_txt(domain, response.hashed_key_auth, cancel)
            log.info("Validating record with the CA")
            client.validate_challenge(response)
            client.wait_for_validation(response.challenge_uri, cancel=cancel)
        except BaseException:
            self._remove_record_after_failure(zone_id, domain, response.hashed_key_auth)
            raise

        log.info("Deleting challenge TXT record")
        delete_id = self._provider.delete_challenge_txt_record(
            zone_id,
            domain,
            response.hashed_key_auth,
        )
        wait_for_change(self._provider, delete_id, self._dns.propagation, cancel=cancel)

    def _verify_txt(self, domain: str, value: str, cancel: threading.Event) -> None:
        if self._txt_checker is None:
            return
        propagation = self._dns.propagation
        visible = poll_until(
            lambda: self._txt_checker.is_visible(domain, value),
            interval=propagation.interval_seconds,
            backoff_factor=propagation.backoff_factor,
            max_interval=propagation.max_interval_seconds,
            timeout=propagation.timeout_seconds,
            cancel=cancel,
        )
        if not visible:
            msg = f"TXT record for {domain} not visible in public DNS"
            raise DnsPropagationTimeout(msg)

    def _remove_record_after_failure(self, zone_id: str, domain: str, value: str) -> None:
        try:
            self._provider.delete_challenge_txt_record(zone_id, domain, value)
        except AcmeClientError:
            log.exception("Could not delete challenge TXT record for %s", domain)

    def _request_certificate(self, client: AcmeClient, domain: str) -> IssuanceResult:
        timestamp = make_timestamp()

        log.info("Generating certificate private key")
        key_pem = generate_private_key(
            key_size=self._keys.rsa_key_size,
            public_exponent=self._keys.public_exponent,
        )
        key_path = self._store.write_pem(domain, "key", timestamp, key_pem, private=True)

        log.info("Generating CSR")
        csr_der = generate_csr(key_pem, domain)
        csr_path = self._store.write_pem(
            domain,
            "csr",
            timestamp,
            convert_csr_der_to_pem(csr_der),
        )

        log.info("Requesting certificate")
        issued = client.request_certificate(csr_der)
        cert_path = self._store.write_pem(
            domain,
            "cert",
            timestamp,
            convert_der_to_pem(issued.certificate_der),
        )
        log.info("Saved certificate to %s", cert_path)

        chain_path = None
        if issued.chain_der is not None:
            chain_path = self._store.write_pem(
                domain,
                "chain",
                timestamp,
                convert_der_to_pem(issued.chain_der),
            )
            log.info("Saved chain to %s", chain_path)

        return IssuanceResult(
            domain=domain,
            timestamp=timestamp,
            key_path=key_path,
            csr_path=csr_path,
            certificate_path=cert_path,
            chain_path=chain_path,
            certificate=issued,
        )

    # -- revocation -----------------------------------------------------------

    def revoke(self, certificate_path: str | Path) -> None:
        """Revoke the PEM certificate stored at *certificate_path*."""
        client = self._client()
        with log_context(step=WorkflowStep.REVOCATION.value):
            log.info("Revoking certificate %s", certificate_path)
            pem = self._store.read_certificate(certificate_path)
            try:
                der = convert_pem_to_der(pem)
            except EncodingError as exc:
                exc.step = exc.step or WorkflowStep.REVOCATION
                raise
            client.revoke_certificate(der)
