"""Cryptographically secure randomness for keys, nonces and salts.

``EntropySource`` wraps the operating system CSPRNG (``os.urandom``). It is
an explicit object so sessions and tests can inject their own instance; the
process-wide default is created on first use by :func:`default_entropy`.
"""

from __future__ import annotations

import logging
import os
import threading
from typing import Optional

from airlink.core.exceptions import EntropyUnavailableError, InvalidInputError

logger = logging.getLogger(__name__)

IV_SIZE = 12
NONCE_SIZE = 16
SALT_SIZE = 16
KEY_SIZE = 32


class EntropySource:
    """Thin, thread-safe facade over the OS random source."""

    def __init__(self):
        # Read once so a broken platform fails here and not mid-transfer.
        try:
            sample = os.urandom(32)
        except NotImplementedError as exc:
            logger.error("system entropy source unavailable")
            raise EntropyUnavailableError("system entropy source unavailable") from exc
        if len(sample) != 32:
            raise EntropyUnavailableError("system entropy source returned short read")

    def next_bytes(self, n: int) -> bytes:
        if n < 0:
            raise InvalidInputError("byte count must be non-negative")
        return os.urandom(n)

    def generate_iv(self) -> bytes:
        return self.next_bytes(IV_SIZE)

    def generate_nonce(self) -> bytes:
        return self.next_bytes(NONCE_SIZE)

    def generate_salt(self, length: int = SALT_SIZE) -> bytes:
        return self.next_bytes(length)

    def generate_key(self, length: int = KEY_SIZE) -> bytearray:
        """Return fresh key material in an erasable buffer."""
        return bytearray(self.next_bytes(length))

    def generate_uuid_v4(self) -> str:
        """RFC 4122 version 4 UUID built from 16 random bytes."""
        b = bytearray(self.next_bytes(16))
        b[6] = (b[6] & 0x0F) | 0x40
        b[8] = (b[8] & 0x3F) | 0x80
        h = b.hex()
        return f"{h[0:8]}-{h[8:12]}-{h[12:16]}-{h[16:20]}-{h[20:32]}"


_default: Optional[EntropySource] = None
_default_lock = threading.Lock()


def default_entropy() -> EntropySource:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = EntropySource()
    return _default
