"""X25519 key agreement.

The scalar multiplication is delegated to ``cryptography`` (OpenSSL), which
runs in constant time. This module only validates inputs, rejects the
all-zero shared secret produced by low-order peer points, and wraps results
in erasable containers.
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.hazmat.primitives.asymmetric.x25519 import (
    X25519PrivateKey,
    X25519PublicKey,
)

from airlink.core.exceptions import WeakKeyError
from airlink.core.models import KeyPair, SharedSecret
from .entropy import EntropySource, default_entropy
from .utils import is_all_zero, require_length, secure_erase

logger = logging.getLogger(__name__)

KEY_LENGTH = 32


def generate_key_pair(entropy: Optional[EntropySource] = None) -> KeyPair:
    """Create a fresh X25519 key pair from 32 random bytes."""
    entropy = entropy or default_entropy()
    scalar = entropy.generate_key(KEY_LENGTH)
    try:
        private = X25519PrivateKey.from_private_bytes(bytes(scalar))
        public = private.public_key().public_bytes_raw()
        pair = KeyPair(private_key=scalar, public_key=public)
    finally:
        secure_erase(scalar)
    logger.debug("generated X25519 key pair %s", public[:4].hex())
    return pair


def public_key_from_private(private_key) -> bytes:
    require_length(private_key, KEY_LENGTH, "private key")
    return X25519PrivateKey.from_private_bytes(bytes(private_key)).public_key().public_bytes_raw()


def compute_shared_secret(private_key, peer_public_key) -> SharedSecret:
    """
    Run X25519(private_key, peer_public_key).

    Raises InvalidKeyError when either key is not 32 bytes and WeakKeyError
    when the result is the all-zero point.
    """
    require_length(private_key, KEY_LENGTH, "private key")
    require_length(peer_public_key, KEY_LENGTH, "peer public key")

    private = X25519PrivateKey.from_private_bytes(bytes(private_key))
    peer = X25519PublicKey.from_public_bytes(bytes(peer_public_key))
    try:
        raw = private.exchange(peer)
    except ValueError:
        # OpenSSL refuses to return the all-zero secret
        logger.warning("rejected low-order peer public key")
        raise WeakKeyError("peer public key yields a weak shared secret") from None

    secret = SharedSecret(raw)
    if is_all_zero(secret.secret):
        secret.erase()
        logger.warning("rejected low-order peer public key")
        raise WeakKeyError("peer public key yields a weak shared secret")
    return secret
