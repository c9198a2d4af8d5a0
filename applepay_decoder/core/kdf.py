"""
Concat KDF (NIST SP 800-56A, single-step, SHA-256).

Derives the AES-256 key for one token from the ECDH shared secret:

    key = SHA-256( 00000001 || Z || OtherInfo )

    OtherInfo = 0x0D || "id-aes256-GCM"      algorithm id, length-prefixed
                || "Apple"                   party U info
                || SHA-256(merchant id)      party V info

A 32-byte key fits in one SHA-256 block, so a single counter round is run.
"""

from __future__ import annotations

import hashlib
import logging

from cryptography.hazmat.primitives.hashes import SHA256
from cryptography.hazmat.primitives.kdf.concatkdf import ConcatKDFHash

from .errors import CryptographicError

logger = logging.getLogger(__name__)

ALGORITHM_ID = b"id-aes256-GCM"
PARTY_U_INFO = b"Apple"
KEY_SIZE = 32


class ConcatKDF:
    """Single-step Concat KDF bound to a merchant identifier."""

    name = "ConcatKDF-SHA256"
    key_size = KEY_SIZE

    @staticmethod
    def build_info(merchant_id: str) -> bytes:
        """OtherInfo for ``merchant_id``. An empty id hashes like any other."""
        merchant_hash = hashlib.sha256(merchant_id.encode("utf-8")).digest()
        return bytes([len(ALGORITHM_ID)]) + ALGORITHM_ID + PARTY_U_INFO + merchant_hash

    def derive(self, shared_secret: bytes | bytearray, merchant_id: str) -> bytearray:
        """Return the 32-byte key as a bytearray so callers can zero it."""
        if not shared_secret:
            raise CryptographicError("Cannot derive a key from an empty shared secret")

        kdf = ConcatKDFHash(
            algorithm=SHA256(),
            length=self.key_size,
            otherinfo=self.build_info(merchant_id),
        )
        key = bytearray(kdf.derive(bytes(shared_secret)))

        logger.debug(
            "KDF derived %d-byte key from %d-byte secret",
            len(key), len(shared_secret),
        )
        return key
