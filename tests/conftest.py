"""Root conftest for the acmer53 test suite."""

from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)

from cryptography import x509  # noqa: E402
from cryptography.hazmat.primitives import hashes, serialization  # noqa: E402
from cryptography.hazmat.primitives.asymmetric import rsa  # noqa: E402
from cryptography.x509.oid import NameOID  # noqa: E402

# ---------------------------------------------------------------------------
# Key material (generated once per session, RSA keygen is slow)
# ---------------------------------------------------------------------------


def _pem(key: rsa.RSAPrivateKey) -> str:
    return key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("ascii")


@pytest.fixture(scope="session")
def rsa_private_key() -> rsa.RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_key_pem(rsa_private_key) -> str:
    return _pem(rsa_private_key)


@pytest.fixture(scope="session")
def other_rsa_key_pem() -> str:
    return _pem(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture()
def account_key(rsa_key_pem):
    from acmer53.core.keys import AccountKey

    return AccountKey.from_pem(rsa_key_pem)


@pytest.fixture(scope="session")
def certificate_der(rsa_private_key) -> bytes:
    """A self-signed certificate for example.com, DER encoded."""
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "example.com")])
    now = datetime.datetime.now(tz=datetime.UTC)
    cert = (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(rsa_private_key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now)
        .not_valid_after(now + datetime.timedelta(days=90))
        .add_extension(
            x509.SubjectAlternativeName([x509.DNSName("example.com")]),
            critical=False,
        )
        .sign(rsa_private_key, hashes.SHA256())
    )
    return cert.public_bytes(serialization.Encoding.DER)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@pytest.fixture()
def settings(tmp_path):
    """Default settings with storage under ``tmp_path`` and fast polling."""
    from acmer53.config.settings import build_settings

    return build_settings(
        {
            "ca": {"url": "https://ca.test"},
            "storage": {"config_dir": str(tmp_path / "certs")},
            "dns": {
                "propagation": {
                    "interval_seconds": 0.001,
                    "max_interval_seconds": 0.002,
                    "timeout_seconds": 1.0,
                },
            },
            "challenge": {
                "poll_interval_seconds": 0.001,
                "poll_max_interval_seconds": 0.002,
                "poll_timeout_seconds": 1.0,
            },
        },
    )


# ---------------------------------------------------------------------------
# Config singleton cleanup: autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the Acmer53Config singleton before and after every test."""
    from acmer53.config.client_config import Acmer53Config

    Acmer53Config.reset()
    yield
    Acmer53Config.reset()


@pytest.fixture(autouse=True)
def reset_acmer53_logger():
    """Undo ``configure_logging`` so caplog sees ``acmer53.*`` records."""
    import logging

    yield
    root = logging.getLogger("acmer53")
    root.handlers.clear()
    root.propagate = True
    root.setLevel(logging.NOTSET)
