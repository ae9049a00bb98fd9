"""Setup subcommand: register the account key.

Usage::

    acmer53 setup -e admin@example.com
"""

from __future__ import annotations

from acmer53.client.transport import AcmeTransport
from acmer53.services.account import AccountService
from acmer53.storage import CertStore


def run_setup(config, args) -> None:
    settings = config.settings
    service = AccountService(
        CertStore(settings.storage),
        AcmeTransport(settings.ca),
        settings.keys,
    )
    result = service.setup(args.email)

    print(f" * Account email: {result.email}")  # noqa: T201
    if result.key_generated:
        print(" * New account key generated")  # noqa: T201
    if result.registration.created:
        print(f" * New account registered: {result.registration.url}")  # noqa: T201
    else:
        print(f" * Account already registered: {result.registration.url}")  # noqa: T201
    if result.accepted_agreement:
        print(f" * Accepted agreement: {result.accepted_agreement}")  # noqa: T201
    print(" * Setup done")  # noqa: T201
