"""Ed25519 signatures for manifests and handshake transcripts."""

import logging
from typing import Tuple

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from airlink.core.exceptions import InvalidKeyError
from airlink.core.models import Signature
from .utils import require_length

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 64


def generate_signing_key_pair() -> Tuple[bytearray, bytes]:
    """Return ``(private_key, public_key)``; erase the private half when done."""
    private = Ed25519PrivateKey.generate()
    raw = bytearray(private.private_bytes_raw())
    return raw, private.public_key().public_bytes_raw()


def sign(data: bytes, private_key) -> Signature:
    require_length(private_key, 32, "signing key")
    private = Ed25519PrivateKey.from_private_bytes(bytes(private_key))
    public = private.public_key().public_bytes_raw()
    return Signature(signature=private.sign(bytes(data)), public_key=public)


def verify(data: bytes, signature: Signature, public_key: bytes) -> bool:
    """Return True when ``signature`` is valid for ``data`` under ``public_key``."""
    require_length(public_key, 32, "verification key")
    if len(signature.signature) != SIGNATURE_LENGTH:
        logger.warning("signature has the wrong length")
        return False
    try:
        Ed25519PublicKey.from_public_bytes(bytes(public_key)).verify(
            bytes(signature.signature), bytes(data)
        )
    except InvalidSignature:
        logger.warning("signature verification failed")
        return False
    except ValueError as exc:
        raise InvalidKeyError("verification key is not a valid Ed25519 point") from exc
    return True

