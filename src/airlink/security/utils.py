"""Constant-time and memory-hygiene helpers used across the security package."""

import base64
import binascii
from typing import Optional

from airlink.core.exceptions import InvalidInputError, InvalidKeyError


def constant_time_equals(a: bytes, b: bytes) -> bool:
    """Compare two byte strings without exiting on the first difference.

    A length mismatch returns ``False`` right away; lengths are public for
    every value this is used on.
    """
    if len(a) != len(b):
        return False
    result = 0
    for x, y in zip(a, b):
        result |= x ^ y
    return result == 0


def is_all_zero(data: bytes) -> bool:
    """Return True when every byte is zero, scanning the whole buffer."""
    acc = 0
    for x in data:
        acc |= x
    return acc == 0


def secure_erase(buffer) -> None:
    """Overwrite a mutable buffer (bytearray or writable memoryview) with zeros.

    Immutable ``bytes`` cannot be wiped and are rejected.
    """
    try:
        raw = memoryview(buffer)
    except TypeError:
        raise InvalidInputError("secure_erase needs a bytes-like buffer") from None
    with raw:
        if raw.readonly:
            raise InvalidInputError("secure_erase needs a mutable buffer")
        with raw.cast("B") as view:
            view[:] = bytes(len(view))


def require_length(value, length: int, what: str) -> None:
    # raises InvalidKeyError; used for keys and public points
    try:
        size = len(memoryview(value))
    except TypeError:
        raise InvalidKeyError(f"{what} must be bytes") from None
    if size != length:
        raise InvalidKeyError(f"{what} must be {length} bytes")


def key_to_base64(key: bytes) -> str:
    """Encode key bytes for configuration files and debugging output."""
    return base64.b64encode(bytes(key)).decode("ascii")


def base64_to_key(text: str, expected_length: Optional[int] = None) -> bytes:
    try:
        key = base64.b64decode(text, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidKeyError("key is not valid base64") from None
    if expected_length is not None and len(key) != expected_length:
        raise InvalidKeyError(f"key must be {expected_length} bytes")
    return key
