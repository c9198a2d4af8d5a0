"""
Command-line interface.

Reads a payment token (file or stdin), decrypts it with the configured
merchant key, and prints the payment data as JSON.

Settings are layered: ``--config`` file, then ``--env`` (APPLE_PAY_*
variables), then explicit flags. Later layers win.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

from .core.config import (
    MerchantConfig,
    config_from_environment,
    load_config,
    merge_settings,
)
from .core.errors import (
    ApplePayDecryptionError,
    ConfigurationError,
    CryptographicError,
    InvalidTokenError,
)
from .core.pipeline import PaymentTokenDecryptor

EXIT_OK = 0
EXIT_INVALID_TOKEN = 1
EXIT_CONFIGURATION = 2
EXIT_CRYPTOGRAPHIC = 3

_EXIT_CODES = {
    InvalidTokenError: EXIT_INVALID_TOKEN,
    ConfigurationError: EXIT_CONFIGURATION,
    CryptographicError: EXIT_CRYPTOGRAPHIC,
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="applepay-decoder",
        description="Decrypt Apple Pay EC_v1 payment tokens",
    )
    parser.add_argument(
        "-t", "--token",
        default="-",
        help="Path to the payment token JSON. Use '-' (default) to read from stdin.",
    )
    parser.add_argument(
        "--merchant-id",
        help="Merchant identifier bound into the key derivation",
    )
    parser.add_argument(
        "--key",
        dest="private_key_path",
        help="Path to the merchant payment-processing private key (PEM or DER)",
    )
    parser.add_argument(
        "--cert",
        dest="certificate_path",
        help="Path to the merchant payment-processing certificate",
    )
    parser.add_argument(
        "--config",
        help="Settings file with merchant_id / certificate_path / private_key_path",
    )
    parser.add_argument(
        "--env",
        action="store_true",
        help="Read APPLE_PAY_MERCHANT_ID, APPLE_PAY_CERT_PATH, APPLE_PAY_KEY_PATH",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only validate the configuration and report problems",
    )
    parser.add_argument(
        "-o", "--output",
        help="Write the decrypted JSON to this file instead of stdout",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite the output file if it already exists.",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log each decryption stage to stderr",
    )
    return parser


def _print_status(msg: str, error: bool = False) -> None:
    stream = sys.stderr if error else sys.stdout
    print(msg, file=stream)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _resolve_config(args: argparse.Namespace) -> MerchantConfig:
    sources = []
    if args.config:
        if not os.path.isfile(args.config):
            _print_status(f"Error: config file not found: {args.config}", error=True)
            sys.exit(EXIT_CONFIGURATION)
        sources.append(load_config(args.config))
    if args.env:
        sources.append(config_from_environment())
    sources.append({
        "merchant_id": args.merchant_id,
        "certificate_path": args.certificate_path,
        "private_key_path": args.private_key_path,
    })
    return MerchantConfig.from_settings(merge_settings(*sources))


def _read_token(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    if not os.path.isfile(source):
        _print_status(f"Error: token file not found: {source}", error=True)
        sys.exit(EXIT_INVALID_TOKEN)
    with open(source, "r", encoding="utf-8") as f:
        return f.read()


def _check_overwrite(path: str, force: bool) -> None:
    """Abort if output file exists and --force was not given."""
    if os.path.exists(path) and not force:
        _print_status(
            f"Error: output file already exists: {path}\n"
            "  Use --force to overwrite, or --output to choose a different path.",
            error=True,
        )
        sys.exit(EXIT_CONFIGURATION)


def _exit_code(exc: ApplePayDecryptionError) -> int:
    for cls, code in _EXIT_CODES.items():
        if isinstance(exc, cls):
            return code
    return EXIT_INVALID_TOKEN


def run_cli(argv: list[str] | None = None) -> None:
    """Run the CLI interface."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    config = _resolve_config(args)
    decryptor = PaymentTokenDecryptor(config)

    # --- Configuration check ---
    if args.check:
        issues = decryptor.validate_configuration()
        if issues:
            _print_status("Configuration issues:", error=True)
            for issue in issues:
                _print_status(f"  - {issue}", error=True)
            sys.exit(EXIT_CONFIGURATION)
        _print_status(f"Configuration OK ({decryptor.description})")
        return

    # --- Decrypt ---
    if args.output:
        _check_overwrite(args.output, args.force)
    token_text = _read_token(args.token)
    try:
        payment = decryptor.decrypt(token_text)
    except ApplePayDecryptionError as exc:
        _print_status(f"Error ({exc.kind}): {exc}", error=True)
        sys.exit(_exit_code(exc))

    rendered = json.dumps(payment, indent=2, sort_keys=True)
    if args.output:
        fd = os.open(args.output, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(rendered + "\n")
        _print_status(f"Decrypted: {args.token} -> {args.output}")
    else:
        print(rendered)
