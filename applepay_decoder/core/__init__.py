"""Core cryptographic modules."""

from .errors import (  # noqa: F401
    ApplePayDecryptionError,
    ConfigurationError,
    CryptographicError,
    InvalidTokenError,
)
