"""new-cert / revoke-cert subcommands.

Usage::

    acmer53 new-cert example.com
    acmer53 revoke-cert ~/.letsencrypt-certs/example.com/cert-<timestamp>.pem
"""

from __future__ import annotations

from acmer53.client.transport import AcmeTransport
from acmer53.dns.registry import load_provider
from acmer53.services.certificate import CertificateService
from acmer53.storage import CertStore


def _service(config) -> CertificateService:
    settings = config.settings
    return CertificateService(
        store=CertStore(settings.storage),
        transport=AcmeTransport(settings.ca),
        provider=load_provider(settings.dns),
        dns_settings=settings.dns,
        challenge_settings=settings.challenge,
        key_settings=settings.keys,
    )


def run_new_cert(config, args) -> None:
    result = _service(config).issue(args.domain)

    print(f" * Saved private key to: {result.key_path}")  # noqa: T201
    print(f" * Saved CSR to: {result.csr_path}")  # noqa: T201
    print(f" * Saved certificate to: {result.certificate_path}")  # noqa: T201
    if result.chain_path is not None:
        print(f" * Saved chain to: {result.chain_path}")  # noqa: T201


def run_revoke_cert(config, args) -> None:
    _service(config).revoke(args.certificate)
    print(" * Certificate revoked")  # noqa: T201
