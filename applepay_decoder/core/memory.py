"""
Key-material hygiene for a single decrypt call.

Shared secrets and derived keys are held in ``bytearray`` buffers so they can
be overwritten once the call is done.

Note: ``bytes`` objects handed to or returned by ``cryptography`` are
immutable and cannot be wiped. Only the copies owned here are zeroed.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator


def secure_zero(buf: bytearray) -> None:
    """Overwrite a bytearray in place with zeros."""
    for i in range(len(buf)):
        buf[i] = 0


@contextmanager
def wiped(buf: bytearray) -> Iterator[bytearray]:
    """Yield ``buf`` unchanged and zero it on exit, even on error."""
    try:
        yield buf
    finally:
        secure_zero(buf)
