"""Account key material and its JWK identity.

An :class:`AccountKey` is derived once from the operator's PEM key and
is immutable afterwards.  The JWK and thumbprint are computed from the
stored modulus/exponent on access and are never persisted.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from acmer53.core.errors import KeyParseError
from acmer53.core.jws import b64url_encode, compute_thumbprint
from acmer53.crypto.util import (
    load_rsa_private_key,
    parse_key_modulus_and_exponent,
    to_even_hex,
)

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric import rsa

log = logging.getLogger(__name__)

_SEPARATORS_RE = re.compile(r"[\s:]")
_HEX_RE = re.compile(r"^[0-9a-f]+$")


def normalize_hex(value: str) -> str:
    """Strip separators from a hex octet string and canonicalize it.

    ``"00:c3:5a"`` and ``"c35a"`` both become ``"c35a"``; an odd-length
    result is left-padded with a zero nibble so it maps onto whole bytes.

    Raises
    ------
    KeyParseError
        If *value* contains non-hex characters or encodes zero.

    """
    digits = _SEPARATORS_RE.sub("", value).lower()
    if not digits or not _HEX_RE.match(digits):
        msg = f"Not a hex octet string: {value[:40]!r}"
        raise KeyParseError(msg)
    number = int(digits, 16)
    if number == 0:
        msg = "RSA parameter must be non-zero"
        raise KeyParseError(msg)
    return to_even_hex(number)


@dataclass(frozen=True)
class AccountKey:
    """RSA account key pair plus the public numbers used in the JWK.

    Attributes
    ----------
    key_pem:
        The PEM-encoded private key, as read from disk.
    modulus:
        Public modulus as lowercase hex octets, no separators.
    public_exponent:
        Public exponent as lowercase hex octets, even length.
    private_key:
        Loaded private key used for signing.

    """

    key_pem: str
    modulus: str
    public_exponent: str
    private_key: rsa.RSAPrivateKey = field(repr=False, compare=False)

    @classmethod
    def from_pem(cls, key_pem: str) -> AccountKey:
        """Derive an :class:`AccountKey` from PEM key material.

        Raises
        ------
        KeyParseError
            If the PEM does not hold an RSA private key.

        """
        private_key = load_rsa_private_key(key_pem)
        modulus, exponent = parse_key_modulus_and_exponent(key_pem)
        return cls.from_components(key_pem, modulus, exponent, private_key)

    @classmethod
    def from_components(
        cls,
        key_pem: str,
        modulus: str,
        public_exponent: str,
        private_key: rsa.RSAPrivateKey | None = None,
    ) -> AccountKey:
        """Build from separately extracted hex numbers.

        Accepts ``openssl``-style colon separated octets; separators are
        removed and the exponent is padded to an even digit count.
        """
        if private_key is None:
            private_key = load_rsa_private_key(key_pem)
        modulus = normalize_hex(modulus)
        public_exponent = normalize_hex(public_exponent)

        numbers = private_key.public_key().public_numbers()
        if int(modulus, 16) != numbers.n or int(public_exponent, 16) != numbers.e:
            msg = "Modulus/exponent do not match the private key"
            raise KeyParseError(msg)

        return cls(
            key_pem=key_pem,
            modulus=modulus,
            public_exponent=public_exponent,
            private_key=private_key,
        )

    @property
    def jwk(self) -> dict[str, Any]:
        """Public JWK with members in canonical order ``e``, ``kty``, ``n``."""
        return {
            "e": b64url_encode(bytes.fromhex(self.public_exponent)),
            "kty": "RSA",
            "n": b64url_encode(bytes.fromhex(self.modulus)),
        }

    @property
    def thumbprint(self) -> str:
        """RFC 7638 SHA-256 thumbprint of :attr:`jwk`."""
        return compute_thumbprint(self.jwk)


def load_account_key(key_pem: str) -> AccountKey:
    """Convenience wrapper around :meth:`AccountKey.from_pem`."""
    account_key = AccountKey.from_pem(key_pem)
    log.debug("Loaded account key (thumbprint %s)", account_key.thumbprint)
    return account_key
