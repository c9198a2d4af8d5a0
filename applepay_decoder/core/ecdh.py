"""
ECDH key agreement on NIST P-256 and merchant private-key loading.

The merchant's payment-processing key is a P-256 private key. The token
sender generated a one-time key pair on the same curve and shipped the public
half in the token header. Both sides arrive at the same 32-byte X coordinate.
"""

from __future__ import annotations

import logging
import os

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from .errors import ConfigurationError, CryptographicError
from .keys import split_coordinates

logger = logging.getLogger(__name__)

CURVE = ec.SECP256R1
SHARED_SECRET_SIZE = 32


def _check_curve(key: ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey, what: str) -> None:
    if not isinstance(key.curve, CURVE):
        raise CryptographicError(
            f"{what} is on curve {key.curve.name}, expected {CURVE.name}"
        )


class EcdhAgreement:
    """Computes the raw ECDH shared secret for one token."""

    curve_name = CURVE.name
    secret_size = SHARED_SECRET_SIZE

    def public_key_from_raw(self, raw_key: bytes) -> ec.EllipticCurvePublicKey:
        """Rebuild a P-256 public key object from a 65-byte raw point."""
        x, y = split_coordinates(raw_key)
        try:
            return ec.EllipticCurvePublicNumbers(
                int.from_bytes(x, "big"),
                int.from_bytes(y, "big"),
                CURVE(),
            ).public_key()
        except ValueError as exc:
            raise CryptographicError(
                "Failed to create ephemeral public key: point is not on P-256"
            ) from exc

    def agree(self, raw_key: bytes, private_key: ec.EllipticCurvePrivateKey) -> bytearray:
        """Return the 32-byte shared secret as a mutable bytearray.

        The caller owns the result and must zero it after use.
        """
        if not isinstance(private_key, ec.EllipticCurvePrivateKey):
            raise CryptographicError(
                f"Merchant private key must be an EC key, got {type(private_key).__name__}"
            )
        _check_curve(private_key, "Merchant private key")

        public_key = self.public_key_from_raw(raw_key)
        try:
            secret = private_key.exchange(ec.ECDH(), public_key)
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise CryptographicError("ECDH computation failed") from exc

        if len(secret) != SHARED_SECRET_SIZE:
            raise CryptographicError(
                f"ECDH produced {len(secret)} bytes, expected {SHARED_SECRET_SIZE}"
            )

        logger.debug("ECDH completed (shared secret %d bytes)", len(secret))
        return bytearray(secret)


class MerchantPrivateKeyStore:
    """
    Loads the merchant's payment-processing private key from disk.

    Accepts PEM (PKCS#8 or SEC1 "EC PRIVATE KEY") and DER encodings,
    optionally password-protected.
    """

    def __init__(self, password: bytes | None = None):
        self.password = password

    def read(self, path: str | os.PathLike) -> bytes:
        try:
            with open(path, "rb") as f:
                return f.read()
        except OSError as exc:
            raise ConfigurationError(
                f"Failed to read private key file: {path}"
            ) from exc

    def load(self, path: str | os.PathLike) -> ec.EllipticCurvePrivateKey:
        """Read and parse the key at ``path``.

        Raises ConfigurationError if the file cannot be read and
        CryptographicError if its contents are not a usable P-256 key.
        """
        key = self.parse(self.read(path))
        logger.debug("Merchant private key loaded from %s", path)
        return key

    def parse(self, data: bytes) -> ec.EllipticCurvePrivateKey:
        loader = (
            serialization.load_pem_private_key
            if data.lstrip().startswith(b"-----BEGIN")
            else serialization.load_der_private_key
        )
        try:
            key = loader(data, password=self.password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            raise CryptographicError("Failed to load private key") from exc

        if not isinstance(key, ec.EllipticCurvePrivateKey):
            raise CryptographicError(
                f"Private key is not an EC key ({type(key).__name__})"
            )
        _check_curve(key, "Merchant private key")
        return key
