"""
Data models passed between the crypto core and the transport layer
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List


KEY_ALGORITHM = "X25519"
CIPHER_ALGORITHM = "AES-256-GCM"
SIGNATURE_ALGORITHM = "Ed25519"
KEY_LENGTH = 32


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _erase(buffer: bytearray) -> None:
    # imported lazily: airlink.security imports this module
    from airlink.security.utils import secure_erase

    secure_erase(buffer)


def _require_key_length(value, what: str) -> None:
    from airlink.security.utils import require_length

    require_length(value, KEY_LENGTH, what)


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(value)


class KeyPair:
    """An X25519 identity. Only ``public_key`` ever leaves the process."""

    __slots__ = ("private_key", "public_key", "algorithm", "created_at")

    def __init__(self, private_key, public_key, algorithm=KEY_ALGORITHM, created_at=None):
        _require_key_length(private_key, "private key")
        _require_key_length(public_key, "public key")
        self.private_key = bytearray(private_key)
        self.public_key = bytes(public_key)
        self.algorithm = algorithm
        self.created_at = created_at if created_at is not None else _now()

    def dispose(self) -> None:
        """Overwrite the private key with zeros."""
        _erase(self.private_key)

    def __enter__(self) -> "KeyPair":
        return self

    def __exit__(self, *exc) -> None:
        self.dispose()

    def __repr__(self):
        return f"KeyPair(algorithm={self.algorithm!r}, public_key={self.public_key.hex()!r})"


class SharedSecret:
    """ECDH output. Erase it as soon as the session key is derived."""

    __slots__ = ("secret",)

    def __init__(self, secret):
        self.secret = bytearray(secret)

    def erase(self) -> None:
        _erase(self.secret)

    def __len__(self):
        return len(self.secret)

    def __bytes__(self):
        return bytes(self.secret)

    def __enter__(self) -> "SharedSecret":
        return self

    def __exit__(self, *exc) -> None:
        self.erase()

    def __repr__(self):
        return f"SharedSecret(<{len(self.secret)} bytes>)"


class SessionKey:
    """Symmetric key derived for one session or file."""

    __slots__ = ("key", "salt", "algorithm", "derived_at")

    def __init__(self, key, salt, algorithm=CIPHER_ALGORITHM, derived_at=None):
        _require_key_length(key, "session key")
        self.key = bytearray(key)
        self.salt = bytes(salt)
        self.algorithm = algorithm
        self.derived_at = derived_at if derived_at is not None else _now()

    def erase(self) -> None:
        _erase(self.key)

    def __enter__(self) -> "SessionKey":
        return self

    def __exit__(self, *exc) -> None:
        self.erase()

    def __repr__(self):
        return f"SessionKey(algorithm={self.algorithm!r}, salt={self.salt.hex()!r})"


@dataclass(frozen=True)
class EncryptedPayload:
    ciphertext: bytes
    iv: bytes
    tag: bytes

    @property
    def total_size(self) -> int:
        return len(self.iv) + len(self.ciphertext) + len(self.tag)

    def to_dict(self) -> Dict[str, Any]:
        return {"ciphertext": self.ciphertext, "iv": self.iv, "tag": self.tag}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedPayload":
        return cls(
            ciphertext=bytes(data["ciphertext"]),
            iv=bytes(data["iv"]),
            tag=bytes(data["tag"]),
        )


@dataclass(frozen=True)
class EncryptedChunk:
    index: int
    iv: bytes
    tag: bytes
    ciphertext: bytes
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "iv": self.iv,
            "tag": self.tag,
            "ciphertext": self.ciphertext,
            "size": self.size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedChunk":
        return cls(
            index=int(data["index"]),
            iv=bytes(data["iv"]),
            tag=bytes(data["tag"]),
            ciphertext=bytes(data["ciphertext"]),
            size=int(data["size"]),
        )


@dataclass(frozen=True)
class EncryptedFile:
    """
    Ciphertext envelope for a whole file.

    ``encrypted_size`` counts ciphertext bytes only; IVs and tags travel in
    the chunk records.
    """

    file_name: str
    original_size: int
    encrypted_size: int
    chunks: List[EncryptedChunk]
    encrypted_file_key: EncryptedPayload
    file_salt: bytes
    algorithm: str = CIPHER_ALGORITHM
    encrypted_at: datetime = field(default_factory=_now)

    @property
    def chunk_count(self) -> int:
        return len(self.chunks)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_name": self.file_name,
            "original_size": self.original_size,
            "encrypted_size": self.encrypted_size,
            "chunks": [c.to_dict() for c in self.chunks],
            "encrypted_file_key": self.encrypted_file_key.to_dict(),
            "file_salt": self.file_salt,
            "algorithm": self.algorithm,
            "encrypted_at": self.encrypted_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedFile":
        return cls(
            file_name=data["file_name"],
            original_size=int(data["original_size"]),
            encrypted_size=int(data["encrypted_size"]),
            chunks=[EncryptedChunk.from_dict(c) for c in data["chunks"]],
            encrypted_file_key=EncryptedPayload.from_dict(data["encrypted_file_key"]),
            file_salt=bytes(data["file_salt"]),
            algorithm=data.get("algorithm", CIPHER_ALGORITHM),
            encrypted_at=_parse_time(data["encrypted_at"]),
        )


@dataclass(frozen=True)
class Signature:
    signature: bytes
    public_key: bytes
    algorithm: str = SIGNATURE_ALGORITHM
    signed_at: datetime = field(default_factory=_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "signature": self.signature,
            "public_key": self.public_key,
            "algorithm": self.algorithm,
            "signed_at": self.signed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Signature":
        return cls(
            signature=bytes(data["signature"]),
            public_key=bytes(data["public_key"]),
            algorithm=data.get("algorithm", SIGNATURE_ALGORITHM),
            signed_at=_parse_time(data["signed_at"]),
        )
