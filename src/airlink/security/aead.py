"""AES-256-GCM authenticated encryption for control payloads.

``cryptography``'s ``AESGCM`` verifies the 128-bit tag (in constant time)
before it hands back any plaintext; a mismatch raises ``InvalidTag`` and no
partial output exists. That exception is translated into a single, uniform
``AuthenticationError`` so callers cannot tell a bad tag from bad AAD or
corrupted ciphertext.
"""

from __future__ import annotations

import logging
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from airlink.core.exceptions import AuthenticationError, InvalidInputError
from airlink.core.models import EncryptedPayload
from .entropy import IV_SIZE, EntropySource, default_entropy
from .utils import require_length

logger = logging.getLogger(__name__)

KEY_SIZE = 32
TAG_SIZE = 16


def _cipher(key) -> AESGCM:
    require_length(key, KEY_SIZE, "AES-256-GCM key")
    return AESGCM(key)


def encrypt(
    plaintext: bytes,
    key,
    nonce: Optional[bytes] = None,
    associated_data: Optional[bytes] = None,
    entropy: Optional[EntropySource] = None,
) -> EncryptedPayload:
    """
    Encrypt ``plaintext`` under a 32-byte key.

    A fresh random 96-bit nonce is drawn for every call unless the caller
    passes one (counter-derived nonces for deterministic framing). Reusing a
    nonce under the same key is never safe.
    """
    aead = _cipher(key)
    if nonce is None:
        nonce = (entropy or default_entropy()).generate_iv()
    elif len(nonce) != IV_SIZE:
        raise InvalidInputError(f"nonce must be {IV_SIZE} bytes")

    sealed = aead.encrypt(bytes(nonce), bytes(plaintext), associated_data or None)
    return EncryptedPayload(
        ciphertext=sealed[:-TAG_SIZE],
        iv=bytes(nonce),
        tag=sealed[-TAG_SIZE:],
    )


def decrypt(payload: EncryptedPayload, key, associated_data: Optional[bytes] = None) -> bytes:
    """Verify the tag and return the plaintext, or raise AuthenticationError."""
    aead = _cipher(key)
    if len(payload.iv) != IV_SIZE or len(payload.tag) != TAG_SIZE:
        raise AuthenticationError()
    try:
        return aead.decrypt(
            bytes(payload.iv),
            bytes(payload.ciphertext) + bytes(payload.tag),
            associated_data or None,
        )
    except InvalidTag:
        logger.warning("payload failed authentication")
        raise AuthenticationError() from None


def seal(
    plaintext: bytes,
    key,
    associated_data: Optional[bytes] = None,
    entropy: Optional[EntropySource] = None,
) -> bytes:
    """Encrypt and return the compact ``iv || ciphertext || tag`` form."""
    p = encrypt(plaintext, key, associated_data=associated_data, entropy=entropy)
    return p.iv + p.ciphertext + p.tag


def open_sealed(blob: bytes, key, associated_data: Optional[bytes] = None) -> bytes:
    if len(blob) < IV_SIZE + TAG_SIZE:
        raise InvalidInputError("sealed blob too short to contain nonce and tag")
    payload = EncryptedPayload(
        ciphertext=blob[IV_SIZE:-TAG_SIZE],
        iv=blob[:IV_SIZE],
        tag=blob[-TAG_SIZE:],
    )
    return decrypt(payload, key, associated_data=associated_data)
