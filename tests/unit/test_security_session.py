"""
Unit tests for the caller-owned secure session.
"""

from unittest.mock import patch

import pytest

from airlink.core.config import CryptoSettings
from airlink.core.exceptions import AuthenticationError, SessionClosedError
from airlink.core.models import SessionKey
from airlink.security.key_agreement import generate_key_pair
from airlink.security.session import SecureSession


# ==============================================================================
# Fixtures
# ==============================================================================

@pytest.fixture
def peers():
    """Two sessions built from a real key exchange, one per peer."""
    a = generate_key_pair()
    b = generate_key_pair()
    session_a = SecureSession.from_key_exchange("sess-1", a, b.public_key)
    session_b = SecureSession.from_key_exchange("sess-1", b, a.public_key)
    yield session_a, session_b
    session_a.close()
    session_b.close()


@pytest.fixture
def session():
    return SecureSession("local", SessionKey(key=b"k" * 32, salt=b"s" * 16))


# ==============================================================================
# Tests: Handshake and message protection
# ==============================================================================

def test_peers_can_exchange_messages(peers):
    a, b = peers
    payload = a.encrypt(b"hello peer", aad=b"frame-1")
    assert b.decrypt(payload, aad=b"frame-1") == b"hello peer"
    assert a.messages == 1


def test_aad_mismatch_fails(peers):
    a, b = peers
    payload = a.encrypt(b"hello", aad=b"frame-1")
    with pytest.raises(AuthenticationError):
        b.decrypt(payload, aad=b"frame-2")


def test_ciphertext_bound_to_session_id():
    key = b"k" * 32
    one = SecureSession("one", SessionKey(key=key, salt=b"s" * 16))
    two = SecureSession("two", SessionKey(key=key, salt=b"s" * 16))
    with pytest.raises(AuthenticationError):
        two.decrypt(one.encrypt(b"data"))


def test_key_confirmation(peers):
    a, b = peers
    assert b.verify_payload(a.verification_payload())
    assert a.verify_payload(b.verification_payload())


def test_key_confirmation_fails_for_different_keys():
    a = generate_key_pair()
    b = generate_key_pair()
    mallory = generate_key_pair()
    honest = SecureSession.from_key_exchange("s", a, b.public_key)
    fooled = SecureSession.from_key_exchange("s", b, mallory.public_key)
    assert not fooled.verify_payload(honest.verification_payload())


def test_from_key_exchange_uses_settings():
    a = generate_key_pair()
    b = generate_key_pair()
    settings = CryptoSettings(session_max_messages=2, session_ttl_seconds=60)
    s = SecureSession.from_key_exchange("s", a, b.public_key, settings=settings)
    assert s.max_messages == 2
    assert s._expires_at is not None


# ==============================================================================
# Tests: Lifecycle
# ==============================================================================

def test_close_erases_key(session):
    key = session._key
    session.close()
    assert session.closed
    assert key.key == bytearray(32)
    with pytest.raises(SessionClosedError, match="session is closed"):
        session.encrypt(b"data")


def test_close_is_idempotent(session):
    session.close()
    session.close()
    assert session.closed


def test_context_manager_closes():
    with SecureSession("ctx", SessionKey(key=b"k" * 32, salt=b"s" * 16)) as s:
        s.encrypt(b"data")
    assert s.closed
    assert "closed" in repr(s)


def test_auto_close_on_expiry():
    with patch("time.time") as mock_time:
        mock_time.return_value = 1000.0
        s = SecureSession("ttl", SessionKey(key=b"k" * 32, salt=b"s" * 16), ttl_seconds=300)

        mock_time.return_value = 1301.0
        with pytest.raises(SessionClosedError, match="expired"):
            s.encrypt(b"data")
        assert s.closed


def test_extend_session():
    with patch("time.time") as mock_time:
        mock_time.return_value = 1000.0
        s = SecureSession("ttl", SessionKey(key=b"k" * 32, salt=b"s" * 16), ttl_seconds=300)
        original_expiry = s._expires_at

        s.extend(60)
        assert s._expires_at == original_expiry + 60.0

        mock_time.return_value = 1350.0
        s.encrypt(b"still alive")


def test_extend_raises_if_closed(session):
    session.close()
    with pytest.raises(SessionClosedError):
        session.extend(60)


# ==============================================================================
# Tests: Rotation hints
# ==============================================================================

def test_should_rotate_after_message_limit():
    s = SecureSession("rot", SessionKey(key=b"k" * 32, salt=b"s" * 16), max_messages=2)
    assert not s.should_rotate()
    s.encrypt(b"1")
    s.encrypt(b"2")
    assert not s.should_rotate()
    s.encrypt(b"3")
    assert s.should_rotate()


def test_should_rotate_after_interval():
    with patch("time.time") as mock_time:
        mock_time.return_value = 0.0
        s = SecureSession(
            "rot", SessionKey(key=b"k" * 32, salt=b"s" * 16), rotation_interval=3600
        )
        mock_time.return_value = 3600.0
        assert not s.should_rotate()
        mock_time.return_value = 3601.0
        assert s.should_rotate()


# ==============================================================================
# Tests: Re-keying
# ==============================================================================

def test_rekey_both_peers(peers):
    session_a, session_b = peers
    old = session_a.encrypt(b"before rotation")
    old_key = session_a._key

    new_a = generate_key_pair()
    new_b = generate_key_pair()
    session_a.rekey(new_a, new_b.public_key)
    session_b.rekey(new_b, new_a.public_key)

    assert old_key.key == bytearray(32)
    assert session_a.messages == 0
    assert session_b.verify_payload(session_a.verification_payload())
    payload = session_a.encrypt(b"after rotation")
    assert session_b.decrypt(payload) == b"after rotation"

    with pytest.raises(AuthenticationError):
        session_b.decrypt(old)


def test_rekey_resets_rotation_counters():
    with patch("time.time") as mock_time:
        mock_time.return_value = 0.0
        a = generate_key_pair()
        b = generate_key_pair()
        s = SecureSession.from_key_exchange(
            "rot", a, b.public_key, CryptoSettings(session_max_messages=1)
        )
        s.encrypt(b"1")
        s.encrypt(b"2")
        assert s.should_rotate()

        mock_time.return_value = 50.0
        s.rekey(generate_key_pair(), generate_key_pair().public_key)
        assert not s.should_rotate()
        assert s._created_at == 50.0


def test_rekey_on_one_side_only_breaks_confirmation(peers):
    session_a, session_b = peers
    session_a.rekey(generate_key_pair(), generate_key_pair().public_key)
    assert not session_b.verify_payload(session_a.verification_payload())


def test_rekey_closed_session_raises(session):
    session.close()
    with pytest.raises(SessionClosedError):
        session.rekey(generate_key_pair(), generate_key_pair().public_key)
