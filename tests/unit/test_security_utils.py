"""
Unit tests for constant-time and memory hygiene helpers.
"""

import base64

import pytest

from airlink.core.exceptions import InvalidInputError, InvalidKeyError
from airlink.security.utils import (
    base64_to_key,
    constant_time_equals,
    is_all_zero,
    key_to_base64,
    require_length,
    secure_erase,
)


# ==============================================================================
# Tests: constant_time_equals
# ==============================================================================

@pytest.mark.parametrize("value", [b"", b"\x00", b"abc", bytes(range(256))])
def test_constant_time_equals_reflexive(value):
    assert constant_time_equals(value, value)
    assert constant_time_equals(value, bytes(value))


def test_constant_time_equals_length_mismatch():
    assert not constant_time_equals(b"abc", b"abcd")
    assert not constant_time_equals(b"", b"\x00")


@pytest.mark.parametrize("position", [0, 15, 31])
def test_constant_time_equals_single_byte_difference(position):
    """Equal-length near matches differing in one byte are unequal."""
    a = bytes(32)
    b = bytearray(a)
    b[position] ^= 0x01
    assert not constant_time_equals(a, bytes(b))


def test_constant_time_equals_accepts_bytearray():
    assert constant_time_equals(bytearray(b"key"), b"key")


# ==============================================================================
# Tests: is_all_zero
# ==============================================================================

def test_is_all_zero():
    assert is_all_zero(bytes(32))
    assert is_all_zero(b"")
    assert not is_all_zero(bytes(31) + b"\x01")


# ==============================================================================
# Tests: secure_erase
# ==============================================================================

def test_secure_erase_bytearray():
    buf = bytearray(b"super secret key material")
    secure_erase(buf)
    assert buf == bytearray(len(b"super secret key material"))


def test_secure_erase_memoryview_slice():
    """Only the viewed region is wiped."""
    buf = bytearray(b"AAAABBBB")
    secure_erase(memoryview(buf)[4:])
    assert buf == bytearray(b"AAAA\x00\x00\x00\x00")


def test_secure_erase_rejects_immutable():
    with pytest.raises(InvalidInputError):
        secure_erase(b"immutable")


def test_secure_erase_rejects_non_buffer():
    with pytest.raises(InvalidInputError):
        secure_erase("not a buffer")


def test_secure_erase_empty_buffer():
    buf = bytearray()
    secure_erase(buf)
    assert buf == bytearray()


# ==============================================================================
# Tests: length checks and base64 helpers
# ==============================================================================

def test_require_length():
    require_length(bytes(32), 32, "key")
    with pytest.raises(InvalidKeyError, match="key must be 32 bytes"):
        require_length(bytes(31), 32, "key")
    with pytest.raises(InvalidKeyError, match="must be bytes"):
        require_length("x" * 32, 32, "key")


def test_base64_roundtrip():
    key = bytes(range(32))
    text = key_to_base64(key)
    assert text == base64.b64encode(key).decode("ascii")
    assert base64_to_key(text, expected_length=32) == key


def test_base64_to_key_rejects_garbage():
    with pytest.raises(InvalidKeyError, match="not valid base64"):
        base64_to_key("***not base64***")


def test_base64_to_key_rejects_wrong_length():
    with pytest.raises(InvalidKeyError, match="32 bytes"):
        base64_to_key(key_to_base64(bytes(16)), expected_length=32)
