"""Shared fixtures: merchant keys on disk and a minter for real EC_v1 tokens."""

import base64
import hashlib
import json
import os

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from applepay_decoder.core.config import MerchantConfig

MERCHANT_ID = "merchant.test"
PAYMENT = {"applicationPrimaryAccountNumber": "4111111111111111"}


def reference_kdf(shared_secret: bytes, merchant_id: str) -> bytes:
    """Concat KDF written out by hand, independent of the package code."""
    info = (
        b"\x0did-aes256-GCM"
        + b"Apple"
        + hashlib.sha256(merchant_id.encode("utf-8")).digest()
    )
    return hashlib.sha256(b"\x00\x00\x00\x01" + shared_secret + info).digest()


def raw_point(public_key: ec.EllipticCurvePublicKey) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.X962,
        serialization.PublicFormat.UncompressedPoint,
    )


def spki_der(public_key: ec.EllipticCurvePublicKey) -> bytes:
    return public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )


class TokenMinter:
    """Builds tokens the way the payment network does, for one merchant key."""

    def __init__(self, merchant_public_key: ec.EllipticCurvePublicKey):
        self.merchant_public_key = merchant_public_key

    def payload(self, plaintext: bytes, merchant_id: str = MERCHANT_ID, *, der: bool = False):
        ephemeral = ec.generate_private_key(ec.SECP256R1())
        shared = ephemeral.exchange(ec.ECDH(), self.merchant_public_key)
        key = reference_kdf(shared, merchant_id)
        encrypted = AESGCM(key).encrypt(bytes(16), plaintext, None)
        pub = ephemeral.public_key()
        encoded_key = spki_der(pub) if der else raw_point(pub)
        return encoded_key, encrypted

    def mint(self, payment=None, merchant_id: str = MERCHANT_ID, *,
             der: bool = False, plaintext: bytes | None = None,
             transaction_id: str = "c1caf5ae72f0039a82bad92b828363734f85bf2f9cadf193d1bad9ddcb60a795"):
        if plaintext is None:
            plaintext = json.dumps(PAYMENT if payment is None else payment).encode()
        encoded_key, encrypted = self.payload(plaintext, merchant_id, der=der)
        return {
            "version": "EC_v1",
            "data": base64.b64encode(encrypted).decode(),
            "signature": base64.b64encode(b"not-verified").decode(),
            "header": {
                "publicKeyHash": base64.b64encode(os.urandom(32)).decode(),
                "ephemeralPublicKey": base64.b64encode(encoded_key).decode(),
                "transactionId": transaction_id,
            },
        }


@pytest.fixture
def merchant_key():
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def minter(merchant_key):
    return TokenMinter(merchant_key.public_key())


@pytest.fixture
def key_file(tmp_path, merchant_key):
    path = tmp_path / "merchant.key"
    path.write_bytes(
        merchant_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.PKCS8,
            serialization.NoEncryption(),
        )
    )
    return path


@pytest.fixture
def cert_file(tmp_path):
    path = tmp_path / "merchant.pem"
    path.write_text("-----BEGIN CERTIFICATE-----\nplaceholder\n-----END CERTIFICATE-----\n")
    return path


@pytest.fixture
def config(key_file, cert_file):
    return MerchantConfig(MERCHANT_ID, str(cert_file), str(key_file))
