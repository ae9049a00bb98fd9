"""DNS-01 challenge response computation.

Turns a CA-issued challenge plus the account key into the values the
rest of the workflow needs: the key authorization (sent back to the CA
when asking it to validate) and its SHA-256 digest (published as a TXT
record at ``_acme-challenge.{domain}``).

:class:`TxtRecordChecker` optionally confirms, through public DNS, that
the published digest is visible before the CA is asked to look for it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

import dns.exception
import dns.resolver

from acmer53.core.jws import hashed_key_authorization, key_authorization

if TYPE_CHECKING:
    from acmer53.config.settings import VerifyTxtSettings
    from acmer53.core.keys import AccountKey
    from acmer53.models.challenge import Challenge

log = logging.getLogger(__name__)

RECORD_PREFIX = "_acme-challenge"


def record_name(domain: str) -> str:
    """Return the validation record name for *domain*.

    Wildcard identifiers are validated at the base name.
    """
    return f"{RECORD_PREFIX}.{domain.removeprefix('*.')}"


@dataclass(frozen=True)
class ChallengeResponse:
    """Hand-off data between the CA session and the DNS provider.

    Attributes
    ----------
    key_authorization:
        ``token + "." + thumbprint``; sent to the CA on validation.
    hashed_key_auth:
        base64url(SHA-256(key_authorization)); the TXT record value.
    challenge_uri:
        Where the CA expects the validation request.

    """

    key_authorization: str
    hashed_key_auth: str
    challenge_uri: str


def build_challenge_response(
    challenge: Challenge,
    account_key: AccountKey,
) -> ChallengeResponse:
    """Compute the DNS-01 response for *challenge*.  Deterministic, no I/O."""
    key_authz = key_authorization(challenge.token, account_key.thumbprint)
    return ChallengeResponse(
        key_authorization=key_authz,
        hashed_key_auth=hashed_key_authorization(key_authz),
        challenge_uri=challenge.uri,
    )


class TxtRecordChecker:
    """Look up ``_acme-challenge`` TXT records through public DNS.

    Parameters
    ----------
    settings:
        Resolver list and query timeout.

    """

    def __init__(self, settings: VerifyTxtSettings) -> None:
        self.settings = settings

    def _resolver(self) -> dns.resolver.Resolver:
        resolver = dns.resolver.Resolver(configure=not self.settings.resolvers)
        if self.settings.resolvers:
            resolver.nameservers = list(self.settings.resolvers)
        resolver.lifetime = self.settings.timeout_seconds
        return resolver

    def is_visible(self, domain: str, expected: str) -> bool:
        """Return ``True`` if a TXT record at the validation name equals *expected*.

        DNS errors (NXDOMAIN, no answer, timeouts) are reported as
        "not visible yet" since propagation may still be under way.
        """
        query_name = record_name(domain)
        try:
            answer = self._resolver().resolve(query_name, "TXT")
        except (dns.resolver.NXDOMAIN, dns.resolver.NoAnswer) as exc:
            log.debug("TXT %s not present yet: %s", query_name, exc)
            return False
        except dns.exception.DNSException as exc:
            log.debug("TXT lookup for %s failed: %s", query_name, exc)
            return False

        for rdata in answer:
            # TXT rdata has .strings, a tuple of byte segments
            value = b"".join(rdata.strings).decode("ascii", errors="replace")
            if value == expected:
                log.debug("TXT %s is visible", query_name)
                return True
        return False
