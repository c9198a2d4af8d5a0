"""Backward-compatible ``ApplePayDecoder`` name. Use ``PaymentTokenDecryptor``."""

from __future__ import annotations

import warnings
from collections.abc import Mapping
from typing import Any

from .core.config import MerchantConfig
from .core.pipeline import PaymentTokenDecryptor


class ApplePayDecoder:
    """Deprecated thin adapter that forwards to ``PaymentTokenDecryptor``."""

    def __init__(self, config: MerchantConfig):
        warnings.warn(
            "ApplePayDecoder is deprecated; use PaymentTokenDecryptor instead",
            DeprecationWarning,
            stacklevel=2,
        )
        self._decryptor = PaymentTokenDecryptor(config)

    @property
    def config(self) -> MerchantConfig:
        return self._decryptor.config

    def decrypt(self, payment_data: Mapping[str, Any] | str | bytes) -> dict[str, Any]:
        return self._decryptor.decrypt(payment_data)

    def validate_configuration(self) -> list[str]:
        return self._decryptor.validate_configuration()
