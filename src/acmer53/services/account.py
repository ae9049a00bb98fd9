"""Account service: one-time account setup.

Ensures the config directory, persists the contact email, loads or
generates the account key, registers it with the CA and accepts the
current subscriber agreement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from acmer53.client.acme import AcmeClient
from acmer53.client.session import AcmeSession
from acmer53.core.keys import load_account_key
from acmer53.crypto.util import generate_private_key
from acmer53.logging import log_context

if TYPE_CHECKING:
    from acmer53.client.transport import AcmeTransport
    from acmer53.config.settings import KeySettings
    from acmer53.models.registration import Registration
    from acmer53.storage import CertStore

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class SetupResult:
    email: str
    registration: Registration
    key_generated: bool
    accepted_agreement: str | None = None


class AccountService:
    """Register the operator's account key with the CA."""

    def __init__(
        self,
        store: CertStore,
        transport: AcmeTransport,
        key_settings: KeySettings,
    ) -> None:
        self._store = store
        self._transport = transport
        self._keys = key_settings

    def _ensure_email(self, email: str | None) -> str:
        current = self._store.load_email()
        if email and email != current:
            if current:
                log.warning("Changing account email from %s to %s", current, email)
            else:
                log.info("Set account email to %s", email)
        email = email or current
        self._store.save_email(email)
        return email

    def _ensure_account_key(self) -> tuple[str, bool]:
        key_pem = self._store.load_account_key_pem()
        if key_pem:
            log.info("Account key already generated, skipping")
            return key_pem, False

        log.info("No account key found, generating a new key")
        key_pem = generate_private_key(
            key_size=self._keys.rsa_key_size,
            public_exponent=self._keys.public_exponent,
        )
        path = self._store.save_account_key_pem(key_pem)
        log.info("Account key saved to %s", path)
        return key_pem, True

    def setup(self, email: str | None) -> SetupResult:
        """Run account setup; *email* ``None`` reuses the stored address.

        Raises
        ------
        StorageError
            No email given and none stored, or the files are unwritable.
        RegistrationError, AgreementError
            The CA rejected registration or agreement acceptance.

        """
        with log_context(step="setup"):
            directory = self._store.ensure_config_dir()
            log.info("Using config directory %s", directory)
            email = self._ensure_email(email)
            key_pem, generated = self._ensure_account_key()

        account_key = load_account_key(key_pem)
        client = AcmeClient(self._transport, AcmeSession(account_key))

        with log_context(step="registration"):
            registration = client.register(email)

        accepted = None
        with log_context(step="agreement"):
            new_agreement = client.check_agreement(registration.url)
            if new_agreement:
                log.info("New agreement found, accepting")
                client.update_registration(registration.url, new_agreement)
                accepted = new_agreement

        log.info("Setup done")
        return SetupResult(
            email=email,
            registration=registration,
            key_generated=generated,
            accepted_agreement=accepted,
        )
