"""
Merchant configuration.

A ``MerchantConfig`` is an ordinary value owned by the caller and passed to
the decryptor. Settings can be gathered from a small ``key = value`` file,
from the environment, or from explicit arguments, and merged in that order.

Config file format (one setting per line, ``#`` starts a comment)::

    merchant_id = "merchant.com.example.shop"
    certificate_path = /etc/applepay/merchant_id.pem
    private_key_path = /etc/applepay/payment_processing.key
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_MERCHANT_ID = "APPLE_PAY_MERCHANT_ID"
ENV_CERT_PATH = "APPLE_PAY_CERT_PATH"
ENV_KEY_PATH = "APPLE_PAY_KEY_PATH"

_ENV_KEYS = {
    ENV_MERCHANT_ID: "merchant_id",
    ENV_CERT_PATH: "certificate_path",
    ENV_KEY_PATH: "private_key_path",
}

VALID_KEYS = frozenset(_ENV_KEYS.values())


@dataclass(frozen=True)
class MerchantConfig:
    """Merchant identity plus the paths of its certificate and private key."""
    merchant_id: str
    certificate_path: str
    private_key_path: str
    private_key_password: bytes | None = field(default=None, repr=False)

    def validate(self) -> list[str]:
        """Return a list of human-readable problems (empty when usable)."""
        issues: list[str] = []

        if not self.merchant_id:
            issues.append("Merchant ID cannot be empty")

        for label, path in (
            ("Certificate", self.certificate_path),
            ("Private key", self.private_key_path),
        ):
            if not path or not os.path.exists(path):
                issues.append(f"{label} file not found: {path}")
            elif not os.access(path, os.R_OK):
                issues.append(f"{label} file is not readable: {path}")

        return issues

    @classmethod
    def from_settings(cls, settings: Mapping[str, str]) -> "MerchantConfig":
        return cls(
            merchant_id=settings.get("merchant_id", ""),
            certificate_path=settings.get("certificate_path", ""),
            private_key_path=settings.get("private_key_path", ""),
        )


def _parse_value(raw: str) -> str:
    value = raw.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1]
    return value


def load_config(path: str | os.PathLike) -> dict[str, str]:
    """Read settings from ``path``. A missing file yields ``{}``.

    Unknown keys and malformed lines are skipped with a warning.
    """
    config_file = Path(path)
    if not config_file.is_file():
        return {}

    settings: dict[str, str] = {}
    for lineno, line in enumerate(config_file.read_text(encoding="utf-8").splitlines(), 1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, raw_value = line.partition("=")
        key = key.strip()
        if not sep:
            logger.warning("%s:%d: ignoring line without '='", config_file, lineno)
            continue
        if key not in VALID_KEYS:
            logger.warning("%s:%d: ignoring unknown key %r", config_file, lineno, key)
            continue
        settings[key] = _parse_value(raw_value)

    return settings


def config_from_environment(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Collect the APPLE_PAY_* variables that are set and non-empty."""
    env = os.environ if environ is None else environ
    return {key: env[var] for var, key in _ENV_KEYS.items() if env.get(var)}


def missing_environment(environ: Mapping[str, str] | None = None) -> list[str]:
    env = os.environ if environ is None else environ
    return [var for var in _ENV_KEYS if not env.get(var)]


def merge_settings(*sources: Mapping[str, str | None]) -> dict[str, str]:
    """Later sources win, but only for keys they actually set."""
    merged: dict[str, str] = {}
    for source in sources:
        for key, value in source.items():
            if key in VALID_KEYS and value:
                merged[key] = value
    return merged
