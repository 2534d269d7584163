"""HKDF-SHA256 key derivation from X25519 shared secrets.

Session keys derived with ``derive_session_key`` come out identical on both
peers: the salt hashes the two public keys in sorted order with the session
id, and the info string carries the session id as well.
"""

import logging
from typing import Optional, Tuple, Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from airlink.core.config import DEFAULT_HKDF_INFO
from airlink.core.exceptions import InvalidInputError
from airlink.core.hashing import sha256
from airlink.core.models import SessionKey, SharedSecret
from .entropy import SALT_SIZE, EntropySource, default_entropy
from .utils import require_length

logger = logging.getLogger(__name__)

HASH_LENGTH = 32
MAX_OUTPUT_LENGTH = 255 * HASH_LENGTH
SESSION_INFO_PREFIX = "airlink/v1/session:"


def _secret_bytes(shared_secret: Union[SharedSecret, bytes, bytearray]):
    if isinstance(shared_secret, SharedSecret):
        return shared_secret.secret
    return shared_secret


def _as_info(info) -> bytes:
    if info is None:
        return b""
    if isinstance(info, str):
        return info.encode("utf-8")
    return bytes(info)


def derive(
    shared_secret: Union[SharedSecret, bytes, bytearray],
    salt: Optional[bytes] = None,
    info: Union[bytes, str, None] = b"",
    length: int = 32,
    entropy: Optional[EntropySource] = None,
) -> Tuple[bytes, bytes]:
    """
    HKDF-SHA256 extract-then-expand.

    Returns ``(okm, salt)``. When ``salt`` is None a fresh random 16-byte salt
    is generated, so two calls never share one by accident. The caller must
    erase the shared secret once this returns.
    """
    secret = _secret_bytes(shared_secret)
    if secret is None or len(secret) == 0:
        raise InvalidInputError("shared secret must not be empty")
    if not 1 <= length <= MAX_OUTPUT_LENGTH:
        raise InvalidInputError(f"output length must be between 1 and {MAX_OUTPUT_LENGTH}")
    if salt is None:
        salt = (entropy or default_entropy()).generate_salt(SALT_SIZE)

    hkdf = HKDF(algorithm=hashes.SHA256(), length=length, salt=bytes(salt), info=_as_info(info))
    return hkdf.derive(secret), bytes(salt)


def derive_encryption_key(
    shared_secret: Union[SharedSecret, bytes, bytearray],
    salt: Optional[bytes] = None,
    info: Union[bytes, str, None] = DEFAULT_HKDF_INFO,
    entropy: Optional[EntropySource] = None,
) -> SessionKey:
    """Derive a 32-byte AES-256-GCM key and keep the salt alongside it."""
    okm, used_salt = derive(shared_secret, salt=salt, info=info, length=32, entropy=entropy)
    key = SessionKey(key=okm, salt=used_salt)
    logger.debug("derived session key (salt %s)", used_salt[:4].hex())
    return key


def session_salt(session_id: str, local_public_key: bytes, remote_public_key: bytes) -> bytes:
    # sha256(sorted(pubkeys) || utf8(session_id)); identical on both peers
    first, second = sorted([bytes(local_public_key), bytes(remote_public_key)])
    return sha256(first + second + session_id.encode("utf-8"))


def derive_session_key(
    shared_secret: Union[SharedSecret, bytes, bytearray],
    session_id: str,
    local_public_key: bytes,
    remote_public_key: bytes,
) -> SessionKey:
    """
    Derive the key both peers of a session agree on.

    The salt depends only on the unordered pair of public keys and the
    session id, so the two sides do not need to exchange a salt.
    """
    if not session_id:
        raise InvalidInputError("session id must not be empty")
    require_length(local_public_key, 32, "local public key")
    require_length(remote_public_key, 32, "remote public key")

    salt = session_salt(session_id, local_public_key, remote_public_key)
    info = (SESSION_INFO_PREFIX + session_id).encode("utf-8")
    return derive_encryption_key(shared_secret, salt=salt, info=info)
