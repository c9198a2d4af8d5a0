"""
Decryption pipeline: orchestrates envelope parsing, key agreement, KDF and AEAD.

This is the main API surface. One call to ``PaymentTokenDecryptor.decrypt``
is a single synchronous pass through these stages:

    START -> COMPONENTS_EXTRACTED -> KEY_NORMALIZED -> SECRET_AGREED
          -> KEY_DERIVED -> DECRYPTED -> PARSED

Any failure ends the call with one of the three error kinds from
``errors``. The error's ``stage`` is the last stage the token reached.
Nothing is retried: a failed tag check cannot succeed on the same input.

The shared secret and derived key live in bytearrays that are zeroed before
``decrypt`` returns, on success and on failure alike.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from enum import Enum
from typing import Any

from cryptography.hazmat.primitives.asymmetric import ec

from .ciphers import AES256GCMZeroIV
from .config import MerchantConfig
from .ecdh import EcdhAgreement, MerchantPrivateKeyStore
from .errors import ApplePayDecryptionError, ConfigurationError
from .formats import (
    extract_components,
    load_token,
    parse_payment_data,
    validate_structure,
)
from .kdf import ConcatKDF
from .keys import extract_raw_key
from .memory import wiped

logger = logging.getLogger(__name__)


class DecryptionStage(str, Enum):
    START = "start"
    COMPONENTS_EXTRACTED = "components_extracted"
    KEY_NORMALIZED = "key_normalized"
    SECRET_AGREED = "secret_agreed"
    KEY_DERIVED = "key_derived"
    DECRYPTED = "decrypted"
    PARSED = "parsed"


class PaymentTokenDecryptor:
    """
    Decrypts EC_v1 payment tokens for one merchant.

    Parameters:
        config: Merchant identity and key/certificate locations.
        key_store: Loader for the merchant private key. Defaults to a
                   ``MerchantPrivateKeyStore`` using the config's password.
        private_key: An already-loaded P-256 private key. When given, the
                     key file is never read and only the merchant id is
                     checked by configuration validation.

    Instances hold no per-call state and may be shared between threads.
    The key file is read once, under a lock, by whichever call needs it first.
    """

    def __init__(
        self,
        config: MerchantConfig,
        *,
        key_store: MerchantPrivateKeyStore | None = None,
        private_key: ec.EllipticCurvePrivateKey | None = None,
    ):
        self.config = config
        self.key_store = key_store or MerchantPrivateKeyStore(
            password=config.private_key_password
        )
        self.ecdh = EcdhAgreement()
        self.kdf = ConcatKDF()
        self.cipher = AES256GCMZeroIV()
        self._private_key = private_key
        self._key_lock = threading.Lock()

    @property
    def description(self) -> str:
        return f"ECDH-{self.ecdh.curve_name} | {self.kdf.name} | {self.cipher.name}"

    # ------- CONFIGURATION -------

    def _config_issues(self) -> list[str]:
        if self._private_key is not None:
            return [] if self.config.merchant_id else ["Merchant ID cannot be empty"]
        return self.config.validate()

    def _merchant_key(self) -> ec.EllipticCurvePrivateKey:
        if self._private_key is None:
            with self._key_lock:
                if self._private_key is None:
                    self._private_key = self.key_store.load(self.config.private_key_path)
        return self._private_key

    def validate_configuration(self) -> list[str]:
        """List configuration problems, including an unusable private key."""
        issues = self._config_issues()
        if issues:
            return issues
        try:
            self._merchant_key()
        except ApplePayDecryptionError as exc:
            issues.append(str(exc))
        return issues

    # ------- DECRYPT -------

    def decrypt(self, token: Mapping[str, Any] | str | bytes) -> dict[str, Any]:
        """
        Decrypt a payment token and return the payment data mapping.

        ``token`` may be the parsed envelope or its JSON text.

        Raises:
            ConfigurationError: merchant id empty, key or certificate missing
            InvalidTokenError: bad envelope, version, encoding, key shape,
                               short payload, or non-object JSON plaintext
            CryptographicError: key import, ECDH or tag verification failed
        """
        stage = DecryptionStage.START
        try:
            issues = self._config_issues()
            if issues:
                raise ConfigurationError("Configuration issues: " + ", ".join(issues))

            envelope = load_token(token)
            validate_structure(envelope)
            components = extract_components(envelope)
            stage = DecryptionStage.COMPONENTS_EXTRACTED
            logger.info(
                "Payment token decryption started (version=%s, transaction=%s)",
                envelope["version"], components.transaction_id_hex,
            )

            raw_key = extract_raw_key(components.ephemeral_public_key)
            stage = DecryptionStage.KEY_NORMALIZED

            plaintext = self._decrypt_payload(raw_key, components.encrypted_data)
            stage = DecryptionStage.DECRYPTED

            payment = parse_payment_data(plaintext)
            stage = DecryptionStage.PARSED
        except ApplePayDecryptionError as exc:
            if exc.stage is None:
                exc.stage = stage.value
            logger.warning(
                "Payment token decryption failed at %s (%s): %s",
                exc.stage, exc.kind, exc,
            )
            raise

        logger.info("Payment token decrypted (%d fields)", len(payment))
        return payment

    def _decrypt_payload(self, raw_key: bytes, payload: bytes) -> bytes:
        stage = DecryptionStage.KEY_NORMALIZED
        try:
            private_key = self._merchant_key()
            with wiped(self.ecdh.agree(raw_key, private_key)) as shared_secret:
                stage = DecryptionStage.SECRET_AGREED
                key = self.kdf.derive(shared_secret, self.config.merchant_id)
            with wiped(key):
                stage = DecryptionStage.KEY_DERIVED
                return self.cipher.decrypt(key, payload)
        except ApplePayDecryptionError as exc:
            exc.stage = stage.value
            raise
