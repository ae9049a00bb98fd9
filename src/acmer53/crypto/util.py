"""In-process cryptographic primitives.

Key generation, CSR construction, PEM/DER transcoding and RSA public
number extraction, all through ``cryptography``.  Nothing here talks
to the network or touches the filesystem.
"""

from __future__ import annotations

import logging

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from acmer53.core.errors import EncodingError, KeyParseError

log = logging.getLogger(__name__)

DEFAULT_KEY_SIZE = 2048
DEFAULT_PUBLIC_EXPONENT = 65537


# ---------------------------------------------------------------------------
# Keys
# ---------------------------------------------------------------------------


def generate_private_key(
    key_size: int = DEFAULT_KEY_SIZE,
    public_exponent: int = DEFAULT_PUBLIC_EXPONENT,
) -> str:
    """Generate an RSA private key and return it as a PKCS#8 PEM string."""
    key = rsa.generate_private_key(
        public_exponent=public_exponent,
        key_size=key_size,
    )
    log.debug("Generated %d-bit RSA key", key_size)
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


def load_rsa_private_key(key_pem: str | bytes) -> rsa.RSAPrivateKey:
    """Load an unencrypted RSA private key from PEM.

    Raises
    ------
    KeyParseError
        If the data is not a PEM private key or the key is not RSA.

    """
    if isinstance(key_pem, str):
        key_pem = key_pem.encode("ascii", errors="replace")
    try:
        key = serialization.load_pem_private_key(key_pem.strip(), password=None)
    except (ValueError, TypeError) as exc:
        msg = f"Cannot load private key: {exc}"
        raise KeyParseError(msg) from exc
    if not isinstance(key, rsa.RSAPrivateKey):
        msg = f"Account key must be RSA, got {type(key).__name__}"
        raise KeyParseError(msg)
    return key


def to_even_hex(value: int) -> str:
    """Hex-encode *value* with an even number of digits (whole octets)."""
    digits = format(value, "x")
    if len(digits) % 2:
        digits = "0" + digits
    return digits


def parse_key_modulus_and_exponent(key_pem: str | bytes) -> tuple[str, str]:
    """Return ``(modulus_hex, exponent_hex)`` of an RSA private key.

    Both values are unsigned big-endian octet strings in lowercase hex
    with no separators and an even number of digits.
    """
    numbers = load_rsa_private_key(key_pem).public_key().public_numbers()
    return to_even_hex(numbers.n), to_even_hex(numbers.e)


# ---------------------------------------------------------------------------
# CSR
# ---------------------------------------------------------------------------


def generate_csr(key_pem: str | bytes, domain: str) -> bytes:
    """Build a SHA-256 signed CSR for *domain* and return it as DER.

    The subject carries ``CN=<domain>`` and the same name is repeated in
    the subjectAltName extension.
    """
    key = load_rsa_private_key(key_pem)
    csr = (
        x509.CertificateSigningRequestBuilder()
        .subject_name(
            x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, domain)]),
        )
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName(domain)]),
            critical=False,
        )
        .sign(key, hashes.SHA256())
    )
    return csr.public_bytes(serialization.Encoding.DER)


def convert_csr_der_to_pem(der: bytes) -> str:
    """Re-encode a DER CSR as PEM."""
    try:
        csr = x509.load_der_x509_csr(der)
    except ValueError as exc:
        msg = f"Cannot parse DER CSR: {exc}"
        raise EncodingError(msg) from exc
    return csr.public_bytes(serialization.Encoding.PEM).decode("ascii")


# ---------------------------------------------------------------------------
# Certificates
# ---------------------------------------------------------------------------


def convert_der_to_pem(der: bytes) -> str:
    """Re-encode a DER certificate as PEM."""
    try:
        cert = x509.load_der_x509_certificate(der)
    except ValueError as exc:
        msg = f"Cannot parse DER certificate: {exc}"
        raise EncodingError(msg) from exc
    return cert.public_bytes(serialization.Encoding.PEM).decode("ascii")


def convert_pem_to_der(pem: str | bytes) -> bytes:
    """Re-encode the first PEM certificate in *pem* as DER."""
    if isinstance(pem, str):
        pem = pem.encode("ascii", errors="replace")
    try:
        cert = x509.load_pem_x509_certificate(pem)
    except ValueError as exc:
        msg = f"Cannot parse PEM certificate: {exc}"
        raise EncodingError(msg) from exc
    return cert.public_bytes(serialization.Encoding.DER)
