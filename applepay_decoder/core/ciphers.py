"""
AES-256-GCM with the token format's fixed IV.

EC_v1 payloads are encrypted under a key used exactly once (it is derived from
a fresh ephemeral key per token), so the format fixes the IV to 16 zero bytes
and appends the 16-byte tag to the ciphertext with no length prefix:

    [ciphertext (0..n bytes)][tag (16 bytes)]
"""

from __future__ import annotations

import logging

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .errors import CryptographicError, InvalidTokenError

logger = logging.getLogger(__name__)

IV_SIZE = 16
TAG_SIZE = 16
ZERO_IV = bytes(IV_SIZE)


def split_payload(payload: bytes) -> tuple[bytes, bytes]:
    """Return (ciphertext, tag). Raises InvalidTokenError if too short."""
    if len(payload) < TAG_SIZE:
        raise InvalidTokenError(
            f"Encrypted payload too short ({len(payload)} bytes, need >= {TAG_SIZE})"
        )
    return payload[:-TAG_SIZE], payload[-TAG_SIZE:]


class AES256GCMZeroIV:
    """AES-256-GCM, 16-byte all-zero IV, 128-bit tag, no associated data."""

    name = "AES-256-GCM"
    key_size = 32
    iv_size = IV_SIZE
    tag_size = TAG_SIZE

    def _aead(self, key: bytes | bytearray) -> AESGCM:
        if len(key) != self.key_size:
            raise CryptographicError(
                f"AES-256-GCM key must be {self.key_size} bytes, got {len(key)}"
            )
        return AESGCM(bytes(key))

    def decrypt(self, key: bytes | bytearray, payload: bytes) -> bytes:
        """Verify the tag and return the plaintext.

        Never returns data unless the tag checks out.
        """
        ciphertext, tag = split_payload(payload)
        logger.debug(
            "AES-GCM decrypt (ciphertext %d bytes, tag %d bytes)",
            len(ciphertext), len(tag),
        )
        aead = self._aead(key)
        try:
            return aead.decrypt(ZERO_IV, ciphertext + tag, None)
        except InvalidTag as exc:
            raise CryptographicError("AES-GCM authentication failed") from exc
        except (ValueError, OverflowError) as exc:
            raise CryptographicError(
                "AES-GCM authentication failed: cipher error"
            ) from exc

    def encrypt(self, key: bytes | bytearray, plaintext: bytes) -> bytes:
        """Return ciphertext || tag under the fixed IV."""
        return self._aead(key).encrypt(ZERO_IV, plaintext, None)
