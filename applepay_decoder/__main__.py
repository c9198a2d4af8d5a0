"""
Entry point for `python -m applepay_decoder`.
"""

from __future__ import annotations

from .cli import run_cli


def main():
    run_cli()


if __name__ == "__main__":
    main()
