"""Runtime settings for the crypto core.

Defaults are safe for production use. ``CryptoSettings.from_env()`` lets an
embedding application override them through ``AIRLINK_*`` environment
variables without touching code, which is how the transport layer tunes chunk
size and session lifetime per platform.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
import os

from .exceptions import InvalidInputError


DEFAULT_CHUNK_SIZE = 1024 * 1024  # 1 MiB
DEFAULT_HKDF_INFO = b"airlink/v1/session-key"
DEFAULT_SESSION_MAX_MESSAGES = 100
DEFAULT_SESSION_ROTATION_SECONDS = 24 * 60 * 60


def _env_int(name: str, default: Optional[int], minimum: int = 1) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise InvalidInputError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise InvalidInputError(f"{name} must be >= {minimum}")
    return value


@dataclass(frozen=True)
class CryptoSettings:
    """Tunables shared by the file cipher, key derivation and sessions."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    workers: int = 1
    session_ttl_seconds: Optional[int] = None
    session_max_messages: int = DEFAULT_SESSION_MAX_MESSAGES
    session_rotation_seconds: int = DEFAULT_SESSION_ROTATION_SECONDS
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "CryptoSettings":
        return cls(
            chunk_size=_env_int("AIRLINK_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            workers=_env_int("AIRLINK_WORKERS", 1),
            session_ttl_seconds=_env_int("AIRLINK_SESSION_TTL", None),
            session_max_messages=_env_int(
                "AIRLINK_SESSION_MAX_MESSAGES", DEFAULT_SESSION_MAX_MESSAGES
            ),
            session_rotation_seconds=_env_int(
                "AIRLINK_SESSION_ROTATION", DEFAULT_SESSION_ROTATION_SECONDS
            ),
            log_level=os.getenv("AIRLINK_LOG_LEVEL", "INFO").upper(),
        )
