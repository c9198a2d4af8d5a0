"""
Payment token envelope (EC_v1).

The token is a JSON object:

    {
      "version":   "EC_v1",
      "data":      base64( ciphertext || 16-byte GCM tag ),
      "signature": base64( detached CMS signature ),     not verified here
      "header": {
        "publicKeyHash":      base64( SHA-256 of merchant cert key ),  unused
        "ephemeralPublicKey": base64( raw point or DER SPKI ),
        "transactionId":      hex
      }
    }

Only EC_v1 is accepted. RSA_v1 tokens are rejected by version.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import InvalidTokenError

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = "EC_v1"

REQUIRED_FIELDS = ("version", "data", "signature", "header")
REQUIRED_HEADER_FIELDS = ("publicKeyHash", "ephemeralPublicKey", "transactionId")

_HEX = re.compile(r"[0-9a-fA-F]*")


@dataclass(frozen=True)
class TokenComponents:
    """Decoded binary pieces of a token needed for decryption."""
    ephemeral_public_key: bytes
    encrypted_data: bytes
    transaction_id: bytes

    @property
    def transaction_id_hex(self) -> str:
        return self.transaction_id.hex()


def load_token(token: Mapping[str, Any] | str | bytes) -> Mapping[str, Any]:
    """Accept a mapping as-is, or parse JSON text into one."""
    if isinstance(token, Mapping):
        return token
    if isinstance(token, (str, bytes, bytearray)):
        try:
            parsed = json.loads(token)
        except (ValueError, RecursionError) as exc:
            raise InvalidTokenError(f"Token is not valid JSON: {exc}") from exc
        if not isinstance(parsed, dict):
            raise InvalidTokenError("Token JSON must be an object")
        return parsed
    raise InvalidTokenError(f"Unsupported token type: {type(token).__name__}")


def validate_structure(token: Mapping[str, Any]) -> None:
    """Check required fields and the version. Raises InvalidTokenError."""
    for field in REQUIRED_FIELDS:
        if token.get(field) is None:
            raise InvalidTokenError(f"Missing required field: {field}")

    header = token["header"]
    if not isinstance(header, Mapping):
        raise InvalidTokenError("Missing or invalid header in payment data")

    for field in REQUIRED_HEADER_FIELDS:
        if header.get(field) is None:
            raise InvalidTokenError(f"Missing required header field: {field}")

    version = token["version"]
    if version != SUPPORTED_VERSION:
        raise InvalidTokenError(
            f"Unsupported token version: {version!r} (supported: {SUPPORTED_VERSION})"
        )


def _require_str(container: Mapping[str, Any], field: str, where: str) -> str:
    value = container.get(field)
    if not isinstance(value, str):
        raise InvalidTokenError(f"Missing or invalid {field} in {where}")
    return value


def _b64decode(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidTokenError(f"Invalid base64 encoding in {field}") from exc


def decode_transaction_id(transaction_id: str) -> bytes:
    """Hex-decode, left-padding with one '0' when the length is odd."""
    if not _HEX.fullmatch(transaction_id):
        raise InvalidTokenError("Invalid transaction ID format")
    if len(transaction_id) % 2:
        transaction_id = "0" + transaction_id
    return bytes.fromhex(transaction_id)


def extract_components(token: Mapping[str, Any]) -> TokenComponents:
    """Pull and decode the ephemeral key, payload and transaction id."""
    header = token.get("header")
    if not isinstance(header, Mapping):
        raise InvalidTokenError("Missing or invalid header in payment data")

    key_b64 = _require_str(header, "ephemeralPublicKey", "header")
    data_b64 = _require_str(token, "data", "payment data")
    txn_hex = _require_str(header, "transactionId", "header")

    components = TokenComponents(
        ephemeral_public_key=_b64decode(key_b64, "ephemeralPublicKey"),
        encrypted_data=_b64decode(data_b64, "data"),
        transaction_id=decode_transaction_id(txn_hex),
    )
    logger.debug(
        "Token components: ephemeral key %d bytes, payload %d bytes",
        len(components.ephemeral_public_key), len(components.encrypted_data),
    )
    return components


def parse_payment_data(plaintext: bytes) -> dict[str, Any]:
    """Decode the decrypted UTF-8 JSON into a field mapping."""
    try:
        payment = json.loads(plaintext.decode("utf-8"))
    except UnicodeDecodeError as exc:
        raise InvalidTokenError("Decrypted data is not valid UTF-8") from exc
    except json.JSONDecodeError as exc:
        raise InvalidTokenError(f"Failed to parse JSON: {exc.msg}") from exc
    except (ValueError, RecursionError) as exc:
        raise InvalidTokenError(f"Failed to parse JSON: {exc}") from exc

    if not isinstance(payment, dict):
        raise InvalidTokenError("Decrypted data is not a valid JSON object")

    logger.debug("Payment data parsed (%d fields)", len(payment))
    return payment
