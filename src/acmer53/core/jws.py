"""JWS signing and JWK utilities for the legacy ACME draft (RFC 7515 / 7638).

Uses the ``cryptography`` library directly -- no josepy dependency.
The envelope produced here is the flattened JSON serialization with an
extra unprotected ``header`` member carrying the ``jwk``, which the
ACME v1 endpoints require alongside the ``protected`` header.

Byte-exactness matters: the CA recomputes the thumbprint and the
signing input from the same base64url strings, so every encoder in this
module strips padding and serializes JSON without whitespace.
"""

from __future__ import annotations

import base64
import hashlib
import json
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

if TYPE_CHECKING:
    from acmer53.core.keys import AccountKey

log = logging.getLogger(__name__)

SIGNING_ALGORITHM = "RS256"
"""The only JWA algorithm the legacy CA endpoints accept from this client."""


# --- Base64url helpers (RFC 7515 S2) -------------------------------------


def b64url_decode(s: str) -> bytes:
    """Decode a base64url string (no padding required).

    Parameters
    ----------
    s:
        Base64url-encoded string.

    Returns
    -------
    bytes
        Decoded bytes.

    """
    s = s.replace("-", "+").replace("_", "/")
    remainder = len(s) % 4
    if remainder:
        s += "=" * (4 - remainder)
    return base64.b64decode(s)


def b64url_encode(b: bytes | str) -> str:
    """Encode bytes (or UTF-8 text) to base64url without padding.

    Parameters
    ----------
    b:
        Raw bytes to encode.  ``str`` input is UTF-8 encoded first.

    Returns
    -------
    str
        Base64url-encoded string.

    """
    if isinstance(b, str):
        b = b.encode("utf-8")
    return base64.urlsafe_b64encode(b).rstrip(b"=").decode("ascii")


def compact_json(data: Any) -> str:  # noqa: ANN401
    """Serialize *data* without insignificant whitespace."""
    return json.dumps(data, separators=(",", ":"))


# --- JWK thumbprint / key authorization ----------------------------------


def compute_thumbprint(jwk_dict: dict[str, Any]) -> str:
    """Compute the RFC 7638 JWK Thumbprint using SHA-256.

    Construct the canonical JSON representation with the required RSA
    members in lexicographic order (``e``, ``kty``, ``n``), then return
    the base64url-encoded SHA-256 hash.

    Parameters
    ----------
    jwk_dict:
        The JWK dictionary.

    Returns
    -------
    str
        Base64url-encoded thumbprint.

    Raises
    ------
    ValueError
        If the JWK is not an RSA key.

    """
    kty = jwk_dict.get("kty")
    if kty != "RSA":
        msg = f"Cannot compute thumbprint for kty '{kty}'"
        raise ValueError(msg)

    canonical = {
        "e": jwk_dict["e"],
        "kty": "RSA",
        "n": jwk_dict["n"],
    }
    # RFC 7638 requires members in lexicographic order, no whitespace
    canonical_json = json.dumps(
        canonical,
        sort_keys=True,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(canonical_json.encode("ascii")).digest()
    return b64url_encode(digest)


def key_authorization(token: str, thumbprint: str) -> str:
    """Return ``token + "." + thumbprint``."""
    return f"{token}.{thumbprint}"


def hashed_key_authorization(key_authz: str) -> str:
    """Return base64url(SHA-256(*key_authz*)), the DNS-01 TXT value."""
    digest = hashlib.sha256(key_authz.encode("utf-8")).digest()
    return b64url_encode(digest)


# --- JWS envelope ---------------------------------------------------------


@dataclass(frozen=True)
class JWSEnvelope:
    """A signed request body, built fresh for every request.

    Attributes
    ----------
    header:
        Unprotected header (``alg`` and ``jwk``).
    protected_b64:
        Base64url-encoded protected header (``alg``, ``jwk``, ``nonce``).
    payload_b64:
        Base64url-encoded JSON payload.
    signature_b64:
        Base64url-encoded RSASSA-PKCS1-v1_5 SHA-256 signature over
        ``protected_b64 + "." + payload_b64``.

    """

    header: dict[str, Any]
    protected_b64: str
    payload_b64: str
    signature_b64: str

    @property
    def signing_input(self) -> bytes:
        """The exact bytes covered by the signature."""
        return f"{self.protected_b64}.{self.payload_b64}".encode("ascii")

    @property
    def protected_header(self) -> dict[str, Any]:
        """Decoded protected header."""
        return json.loads(b64url_decode(self.protected_b64))

    @property
    def payload(self) -> Any:  # noqa: ANN401
        """Decoded JSON payload."""
        return json.loads(b64url_decode(self.payload_b64))

    def to_dict(self) -> dict[str, Any]:
        """Return the wire form posted to the CA."""
        return {
            "header": self.header,
            "protected": self.protected_b64,
            "payload": self.payload_b64,
            "signature": self.signature_b64,
        }

    def to_json(self) -> bytes:
        """Serialize :meth:`to_dict` as compact UTF-8 JSON."""
        return compact_json(self.to_dict()).encode("utf-8")


def sign(account_key: AccountKey, nonce: str, payload: Any) -> JWSEnvelope:  # noqa: ANN401
    """Build a signed :class:`JWSEnvelope` for *payload*.

    Pure function of its inputs: no nonce bookkeeping happens here, the
    caller supplies the nonce it holds for the current exchange.

    Parameters
    ----------
    account_key:
        The account key whose private half signs the request.
    nonce:
        Replay nonce from the previous response (or the directory).
    payload:
        JSON-serializable request payload.

    Returns
    -------
    JWSEnvelope
        The signed envelope.

    """
    jwk = account_key.jwk
    header = {"alg": SIGNING_ALGORITHM, "jwk": jwk}
    protected = {"alg": SIGNING_ALGORITHM, "jwk": jwk, "nonce": nonce}

    protected_b64 = b64url_encode(compact_json(protected))
    payload_b64 = b64url_encode(compact_json(payload))
    signing_input = f"{protected_b64}.{payload_b64}".encode("ascii")

    signature = account_key.private_key.sign(
        signing_input,
        padding.PKCS1v15(),
        hashes.SHA256(),
    )

    return JWSEnvelope(
        header=header,
        protected_b64=protected_b64,
        payload_b64=payload_b64,
        signature_b64=b64url_encode(signature),
    )
