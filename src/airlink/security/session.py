"""Caller-owned secure session wrapping one negotiated key.

A ``SecureSession`` holds the symmetric key derived for a single peer
session together with an expiry timestamp and a message counter. It is not a
registry: whoever runs the handshake owns the object and must ``close()`` it
(or use it as a context manager), which overwrites the key.

Every message is bound to the session through its AAD, so a ciphertext from
one session never authenticates in another one.
"""
from __future__ import annotations

import logging
import time
from typing import Optional

from airlink.core.config import (
    DEFAULT_SESSION_MAX_MESSAGES,
    DEFAULT_SESSION_ROTATION_SECONDS,
    CryptoSettings,
)
from airlink.core.exceptions import AuthenticationError, SessionClosedError
from airlink.core.models import EncryptedPayload, KeyPair, SessionKey
from . import aead
from .kdf import derive_session_key
from .key_agreement import compute_shared_secret
from .utils import constant_time_equals

logger = logging.getLogger(__name__)

VERIFY_LABEL = b"airlink-key-confirmation-v1"


class SecureSession:
    def __init__(
        self,
        session_id: str,
        session_key: SessionKey,
        ttl_seconds: Optional[float] = None,
        max_messages: int = DEFAULT_SESSION_MAX_MESSAGES,
        rotation_interval: float = DEFAULT_SESSION_ROTATION_SECONDS,
    ):
        """Wrap an already-derived key.

        Args:
            session_id: identifier both peers agreed on
            session_key: derived key; the session takes ownership and erases it on close
            ttl_seconds: optional time-to-live after which the session closes itself
            max_messages: message count after which should_rotate() turns true
            rotation_interval: age in seconds after which should_rotate() turns true
        """
        self.session_id = session_id
        self._key: Optional[SessionKey] = session_key
        self._created_at = time.time()
        self._expires_at = (
            self._created_at + float(ttl_seconds) if ttl_seconds is not None else None
        )
        self.max_messages = max_messages
        self.rotation_interval = float(rotation_interval)
        self.messages = 0
        logger.info("secure session %s opened", session_id)

    @classmethod
    def from_key_exchange(
        cls,
        session_id: str,
        local_key_pair: KeyPair,
        remote_public_key: bytes,
        settings: Optional[CryptoSettings] = None,
    ) -> "SecureSession":
        """Run X25519 + HKDF and open a session; the shared secret is erased here."""
        settings = settings or CryptoSettings()
        with compute_shared_secret(local_key_pair.private_key, remote_public_key) as secret:
            key = derive_session_key(
                secret, session_id, local_key_pair.public_key, remote_public_key
            )
        return cls(
            session_id,
            key,
            ttl_seconds=settings.session_ttl_seconds,
            max_messages=settings.session_max_messages,
            rotation_interval=settings.session_rotation_seconds,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def closed(self) -> bool:
        return self._key is None

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.time() > self._expires_at

    def _require_key(self) -> bytearray:
        if self._key is None:
            raise SessionClosedError("session is closed")
        if self.expired:
            # auto-close on expiry
            self.close()
            raise SessionClosedError("session expired and was closed")
        return self._key.key

    def extend(self, extra_seconds: float) -> None:
        """Push the expiry back by ``extra_seconds``."""
        self._require_key()
        if self._expires_at is not None:
            self._expires_at += float(extra_seconds)

    def should_rotate(self) -> bool:
        """True once the key has been used or kept past its limits; see rekey()."""
        if self.messages > self.max_messages:
            return True
        return time.time() - self._created_at > self.rotation_interval

    def rekey(self, local_key_pair: KeyPair, remote_public_key: bytes) -> None:
        """
        Replace the session key with one derived from a new key exchange.

        Both peers call this with freshly generated key pairs after swapping
        public keys. The old key is erased and the age and message counters
        restart; the expiry is left alone. Payloads sealed under the old key
        no longer decrypt.
        """
        self._require_key()
        with compute_shared_secret(local_key_pair.private_key, remote_public_key) as secret:
            new_key = derive_session_key(
                secret, self.session_id, local_key_pair.public_key, remote_public_key
            )
        old_key, self._key = self._key, new_key
        old_key.erase()
        self._created_at = time.time()
        self.messages = 0
        logger.info("secure session %s re-keyed", self.session_id)

    def close(self) -> None:
        """Erase the session key and refuse further use."""
        if self._key is not None:
            self._key.erase()
            self._key = None
            logger.info("secure session %s closed", self.session_id)
        self._expires_at = None

    def __enter__(self) -> "SecureSession":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Message protection
    # ------------------------------------------------------------------

    def _bind(self, aad: bytes) -> bytes:
        return f"airlink/v1/{self.session_id}:".encode("utf-8") + bytes(aad)

    def encrypt(self, data: bytes, aad: bytes = b"") -> EncryptedPayload:
        key = self._require_key()
        payload = aead.encrypt(data, key, associated_data=self._bind(aad))
        self.messages += 1
        return payload

    def decrypt(self, payload: EncryptedPayload, aad: bytes = b"") -> bytes:
        key = self._require_key()
        return aead.decrypt(payload, key, associated_data=self._bind(aad))

    def verification_payload(self) -> EncryptedPayload:
        """Key confirmation message for the peer to check with verify_payload()."""
        key = self._require_key()
        aad = f"airlink/verify:{self.session_id}".encode("utf-8")
        return aead.encrypt(VERIFY_LABEL, key, associated_data=aad)

    def verify_payload(self, payload: EncryptedPayload) -> bool:
        """True when the peer derived the same key for this session id."""
        key = self._require_key()
        aad = f"airlink/verify:{self.session_id}".encode("utf-8")
        try:
            plaintext = aead.decrypt(payload, key, associated_data=aad)
        except AuthenticationError:
            logger.warning("key confirmation failed for session %s", self.session_id)
            return False
        return constant_time_equals(plaintext, VERIFY_LABEL)

    def __repr__(self):
        state = "closed" if self.closed else "open"
        return f"SecureSession(session_id={self.session_id!r}, {state})"
