"""Tests for acmer53.core.jws: encoding helpers, thumbprints and signing."""

from __future__ import annotations

import base64
import hashlib
import json

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from acmer53.core.jws import (
    SIGNING_ALGORITHM,
    b64url_decode,
    b64url_encode,
    compact_json,
    compute_thumbprint,
    hashed_key_authorization,
    key_authorization,
    sign,
)


class TestBase64Url:
    def test_no_padding(self):
        assert b64url_encode(b"\xff") == "_w"
        assert "=" not in b64url_encode(b"ab")

    def test_url_safe_alphabet(self):
        assert b64url_encode(b"\xfb\xff") == "-_8"

    def test_str_input_is_utf8(self):
        assert b64url_encode("abc") == "YWJj"

    def test_decode_without_padding(self):
        assert b64url_decode("_w") == b"\xff"
        assert b64url_decode("YWJj") == b"abc"


class TestCompactJson:
    def test_no_whitespace(self):
        assert compact_json({"a": [1, 2], "b": "c"}) == '{"a":[1,2],"b":"c"}'


class TestThumbprint:
    def test_canonical_form(self):
        jwk = {"n": "abc", "kty": "RSA", "e": "AQAB"}
        canonical = b'{"e":"AQAB","kty":"RSA","n":"abc"}'
        expected = (
            base64.urlsafe_b64encode(hashlib.sha256(canonical).digest())
            .rstrip(b"=")
            .decode("ascii")
        )
        assert compute_thumbprint(jwk) == expected

    def test_extra_members_ignored(self):
        base = {"e": "AQAB", "kty": "RSA", "n": "abc"}
        assert compute_thumbprint({**base, "use": "sig"}) == compute_thumbprint(base)

    def test_non_rsa_rejected(self):
        with pytest.raises(ValueError, match="kty"):
            compute_thumbprint({"kty": "EC", "crv": "P-256", "x": "a", "y": "b"})


class TestKeyAuthorization:
    def test_key_authorization_format(self):
        assert key_authorization("abc123", "xyz789") == "abc123.xyz789"

    def test_hashed_key_authorization_vector(self):
        # sha256("abc123.xyz789") = 1bef317c...bdbd7b4f
        result = hashed_key_authorization(key_authorization("abc123", "xyz789"))

        assert result == "G-8xfPds2qvDProC32UqmRCUpamN1sDQcg3l4729e08"
        assert len(result) == 43


class TestSign:
    def test_protected_header_contains_nonce(self, account_key):
        envelope = sign(account_key, "nonce-1", {"resource": "new-reg"})

        protected = envelope.protected_header
        assert protected["nonce"] == "nonce-1"
        assert protected["alg"] == SIGNING_ALGORITHM
        assert protected["jwk"] == account_key.jwk

    def test_unprotected_header_duplicates_jwk(self, account_key):
        envelope = sign(account_key, "n", {})
        assert envelope.header == {"alg": "RS256", "jwk": account_key.jwk}
        assert "nonce" not in envelope.header

    def test_payload_round_trips(self, account_key):
        payload = {"resource": "new-authz", "identifier": {"type": "dns", "value": "a.b"}}
        envelope = sign(account_key, "n", payload)

        assert envelope.payload == payload
        assert b64url_decode(envelope.payload_b64) == compact_json(payload).encode()

    def test_signature_verifies(self, rsa_private_key, account_key):
        envelope = sign(account_key, "n", {"resource": "reg"})
        rsa_private_key.public_key().verify(
            b64url_decode(envelope.signature_b64),
            envelope.signing_input,
            padding.PKCS1v15(),
            hashes.SHA256(),
        )

    def test_different_nonce_changes_signature(self, account_key):
        payload = {"resource": "new-cert", "csr": "abc"}
        first = sign(account_key, "nonce-a", payload)
        second = sign(account_key, "nonce-b", payload)

        assert first.payload_b64 == second.payload_b64
        assert first.signature_b64 != second.signature_b64

    def test_wire_form(self, account_key):
        envelope = sign(account_key, "n", {"x": 1})
        body = json.loads(envelope.to_json())

        assert set(body) == {"header", "protected", "payload", "signature"}
        assert body["protected"] == envelope.protected_b64
        assert b" " not in envelope.to_json()
