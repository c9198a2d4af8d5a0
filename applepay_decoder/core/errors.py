"""Structured error types for applepay_decoder.

All errors inherit from both ``ApplePayDecryptionError`` and ``ValueError`` so
that callers catching ``ValueError`` keep working unchanged.

Hierarchy::

    ApplePayDecryptionError (Exception)
    +-- ConfigurationError : merchant id, certificate or key file problems
    +-- InvalidTokenError  : malformed envelope, encoding, key shape or JSON
    +-- CryptographicError : key agreement, key loading, AEAD tag failures

The pipeline sets ``stage`` on every error it raises so callers can tell how
far a token got before it was rejected.
"""

from __future__ import annotations


class ApplePayDecryptionError(Exception):
    """Base class for all decryption errors."""

    kind = "decryption"

    def __init__(self, message: str = "", *, stage: str | None = None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self) -> str:
        return self.message


class ConfigurationError(ApplePayDecryptionError, ValueError):
    """Merchant configuration is unusable (empty id, missing key material)."""

    kind = "configuration"


class InvalidTokenError(ApplePayDecryptionError, ValueError):
    """Token envelope, key encoding, payload length or plaintext is malformed."""

    kind = "invalid_token"


class CryptographicError(ApplePayDecryptionError, ValueError):
    """Key agreement, key import or authenticated decryption failed."""

    kind = "cryptographic"
