"""
Convenience entry points for one-off decryption.

This module keeps no default service. Build a
``PaymentTokenDecryptor`` once with ``create_service`` or
``from_environment`` and keep the reference where you need it.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .core.config import (
    ENV_CERT_PATH,
    ENV_KEY_PATH,
    ENV_MERCHANT_ID,
    MerchantConfig,
    config_from_environment,
    missing_environment,
)
from .core.errors import ConfigurationError
from .core.pipeline import PaymentTokenDecryptor


def create_service(
    merchant_id: str,
    certificate_path: str,
    private_key_path: str,
) -> PaymentTokenDecryptor:
    """Build a reusable decryptor for one merchant."""
    config = MerchantConfig(merchant_id, certificate_path, private_key_path)
    return PaymentTokenDecryptor(config)


def decrypt(
    token: Mapping[str, Any] | str | bytes,
    merchant_id: str,
    certificate_path: str,
    private_key_path: str,
) -> dict[str, Any]:
    """Decrypt a single token without keeping a service around."""
    return create_service(merchant_id, certificate_path, private_key_path).decrypt(token)


def from_environment(environ: Mapping[str, str] | None = None) -> PaymentTokenDecryptor:
    """Build a decryptor from APPLE_PAY_MERCHANT_ID / _CERT_PATH / _KEY_PATH."""
    if missing_environment(environ):
        raise ConfigurationError(
            "Missing required environment variables: "
            f"{ENV_MERCHANT_ID}, {ENV_CERT_PATH}, {ENV_KEY_PATH}"
        )
    return PaymentTokenDecryptor(MerchantConfig.from_settings(config_from_environment(environ)))


def validate_configuration(config: MerchantConfig) -> list[str]:
    """Config file checks plus a trial load of the private key."""
    return PaymentTokenDecryptor(config).validate_configuration()
