"""Apple Pay EC_v1 payment token decryption."""

import logging

from .core.config import MerchantConfig  # noqa: F401
from .core.errors import (  # noqa: F401
    ApplePayDecryptionError,
    ConfigurationError,
    CryptographicError,
    InvalidTokenError,
)
from .core.pipeline import DecryptionStage, PaymentTokenDecryptor  # noqa: F401

__version__ = "1.0.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
