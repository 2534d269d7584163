"""Security core of AirLink: key agreement, key derivation and encryption.

This package provides:
- X25519 key agreement with low-order point rejection
- HKDF-SHA256 key derivation (random or peer-symmetric salts)
- AES-256-GCM authenticated encryption of payloads
- chunked, per-chunk authenticated file encryption
- Ed25519 signatures, caller-owned secure sessions and an opt-in keystore

Nothing here performs network I/O.
"""

from .entropy import EntropySource, default_entropy
from .key_agreement import generate_key_pair, compute_shared_secret, public_key_from_private
from .kdf import derive, derive_encryption_key, derive_session_key
from .aead import encrypt, decrypt, seal, open_sealed
from .file_cipher import (
    ChunkDecryptor,
    encrypt_chunk,
    decrypt_chunk,
    encrypt_file,
    decrypt_file,
)
from .signing import generate_signing_key_pair, sign, verify
from .session import SecureSession
from .utils import (
    constant_time_equals,
    secure_erase,
    key_to_base64,
    base64_to_key,
)
from airlink.core.hashing import sha256

__all__ = [
    "EntropySource",
    "default_entropy",
    "generate_key_pair",
    "compute_shared_secret",
    "public_key_from_private",
    "derive",
    "derive_encryption_key",
    "derive_session_key",
    "encrypt",
    "decrypt",
    "seal",
    "open_sealed",
    "ChunkDecryptor",
    "encrypt_chunk",
    "decrypt_chunk",
    "encrypt_file",
    "decrypt_file",
    "generate_signing_key_pair",
    "sign",
    "verify",
    "SecureSession",
    "constant_time_equals",
    "secure_erase",
    "key_to_base64",
    "base64_to_key",
    "sha256",
]
