""" Utility for hashing operations. """

import hashlib
from pathlib import Path
from typing import Union

from .exceptions import IoError


CHUNK_SIZE = 65536  # 64KB


def sha256(data: bytes) -> bytes:
    """Return the raw 32-byte SHA-256 digest of ``data``."""
    return hashlib.sha256(data).digest()


def calculate_sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def calculate_sha256(file_path: Union[str, Path]) -> str:

    # Calculates the SHA-256 hash of a file, used for content addressing.

    digest = hashlib.sha256()
    try:
        with open(file_path, 'rb') as f:
            while True:
                data = f.read(CHUNK_SIZE)
                if not data:
                    break
                digest.update(data)
    except OSError as exc:
        raise IoError(f"failed to hash {Path(file_path).name}") from exc
    return digest.hexdigest()
