"""
Ephemeral public key normalization.

The token header carries the sender's ephemeral P-256 key either as a raw
uncompressed point or wrapped in a DER SubjectPublicKeyInfo:

  Raw point (65 bytes):
    Byte 0:      0x04  (uncompressed point marker)
    Bytes 1-32:  X coordinate
    Bytes 33-64: Y coordinate

  SubjectPublicKeyInfo (91 bytes for P-256):
    30 59                                  SEQUENCE
      30 13                                SEQUENCE (AlgorithmIdentifier)
        06 07 2a8648ce3d0201               OID id-ecPublicKey
        06 08 2a8648ce3d030107             OID prime256v1
      03 42 00                             BIT STRING, 0 unused bits
        04 <X> <Y>                         raw point

DER input is not parsed as ASN.1. The raw point is located by taking the
leftmost 0x04 byte that still has 65 bytes of input behind it.
"""

from __future__ import annotations

import logging

from .errors import InvalidTokenError

logger = logging.getLogger(__name__)

UNCOMPRESSED_POINT_MARKER = 0x04
COORDINATE_SIZE = 32
RAW_POINT_SIZE = 1 + 2 * COORDINATE_SIZE  # 65 bytes

# AlgorithmIdentifier { id-ecPublicKey, prime256v1 }
_P256_ALGORITHM_IDENTIFIER = bytes.fromhex(
    "301306072a8648ce3d020106082a8648ce3d030107"
)
# BIT STRING header: tag, length (1 + 65), unused-bits byte
_BIT_STRING_HEADER = bytes.fromhex("034200")


def extract_raw_key(data: bytes) -> bytes:
    """Return the canonical 65-byte point contained in ``data``.

    Raises InvalidTokenError when no raw point can be located.
    """
    length = len(data)

    if length == RAW_POINT_SIZE:
        if data[0] != UNCOMPRESSED_POINT_MARKER:
            raise InvalidTokenError(
                f"Ephemeral key is not an uncompressed point "
                f"(prefix {data[0]:#04x}, expected {UNCOMPRESSED_POINT_MARKER:#04x})"
            )
        logger.debug("Ephemeral key is already a raw point")
        raw = bytes(data)
    elif length > RAW_POINT_SIZE:
        offset = _find_raw_point(data)
        if offset < 0:
            raise InvalidTokenError(
                f"Ephemeral key: cannot locate raw point in {length}-byte structure"
            )
        logger.debug(
            "Extracted raw point from %d-byte DER structure at offset %d",
            length, offset,
        )
        raw = bytes(data[offset : offset + RAW_POINT_SIZE])
    else:
        raise InvalidTokenError(
            f"Ephemeral key too short ({length} bytes, need >= {RAW_POINT_SIZE})"
        )

    validate_raw_key(raw)
    return raw


def _find_raw_point(data: bytes) -> int:
    """Offset of the leftmost marker byte with a full point behind it, or -1."""
    last_start = len(data) - RAW_POINT_SIZE
    for offset in range(last_start + 1):
        if data[offset] == UNCOMPRESSED_POINT_MARKER:
            return offset
    return -1


def validate_raw_key(raw: bytes) -> None:
    """Raise InvalidTokenError unless ``raw`` is a 65-byte uncompressed point."""
    if len(raw) != RAW_POINT_SIZE:
        raise InvalidTokenError(
            f"Invalid ephemeral key length: {len(raw)} (expected {RAW_POINT_SIZE})"
        )
    if raw[0] != UNCOMPRESSED_POINT_MARKER:
        raise InvalidTokenError("Invalid ephemeral key format: not uncompressed")


def split_coordinates(raw: bytes) -> tuple[bytes, bytes]:
    """Return (X, Y) from a validated raw point."""
    validate_raw_key(raw)
    return raw[1 : 1 + COORDINATE_SIZE], raw[1 + COORDINATE_SIZE :]


def build_spki_der(raw: bytes) -> bytes:
    """Wrap a raw P-256 point in a minimal DER SubjectPublicKeyInfo."""
    validate_raw_key(raw)
    body = _P256_ALGORITHM_IDENTIFIER + _BIT_STRING_HEADER + raw
    return bytes([0x30, len(body)]) + body
