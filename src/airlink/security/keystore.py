"""OS keystore integration for an optional long-term device identity.

The X25519 identity private key is stored base64-encoded under a
service/account pair using `keyring`. This is opt-in convenience storage; do
not assume keyring provides hardware-backed security on all platforms. Only
the private half is stored, the public key is recomputed on load.
"""
import base64
import binascii
import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError, PasswordDeleteError

from airlink.core.exceptions import KeystoreError
from airlink.core.models import KeyPair
from .key_agreement import KEY_LENGTH, public_key_from_private
from .utils import secure_erase

logger = logging.getLogger(__name__)


def assess_keyring_backend() -> tuple[bool, str]:
    """Return (is_secure, message) describing the current keyring backend.

    Heuristics are used because `keyring` exposes different backends across
    platforms.
    """
    try:
        backend = keyring.get_keyring()
    except KeyringError as e:
        return False, f"failed to get keyring backend: {e}"

    name = backend.__class__.__name__
    priority = getattr(backend, "priority", None)

    insecure_indicators = ("Plaintext", "Uncrypted", "Null", "Fail", "File")
    if any(tok in name for tok in insecure_indicators):
        return False, f"insecure backend detected: {name}"

    if priority is not None and priority <= 0:
        return False, f"no suitable secure keyring backend available (priority={priority}, backend={name})"

    # treat known platform backends as acceptable
    if "Win" in name or "Keychain" in name or "SecretService" in name or "KWallet" in name:
        return True, f"backend looks acceptable: {name} (priority={priority})"

    return True, f"unknown backend '{name}', treat with caution (priority={priority})"


def save_identity(service: str, account: str, key_pair: KeyPair, force: bool = False) -> None:
    """Persist the identity private key under (service, account).

    Refuses backends that look insecure unless ``force`` is set.
    """
    if not force:
        secure, msg = assess_keyring_backend()
        if not secure:
            raise KeystoreError(f"refusing to persist identity key to OS keystore: {msg}")
    secret = base64.b64encode(bytes(key_pair.private_key)).decode("ascii")
    try:
        keyring.set_password(service, account, secret)
    except KeyringError as exc:
        raise KeystoreError("keyring backend failed to store the identity key") from exc
    logger.info("stored identity key for %s/%s", service, account)


def load_identity(service: str, account: str) -> Optional[KeyPair]:
    """Load the identity key pair, or None when nothing is stored."""
    try:
        secret = keyring.get_password(service, account)
    except KeyringError as exc:
        raise KeystoreError("keyring backend failed to load the identity key") from exc
    if secret is None:
        return None
    try:
        raw = bytearray(base64.b64decode(secret, validate=True))
    except (binascii.Error, ValueError):
        raise KeystoreError("stored identity key is not valid base64") from None
    try:
        if len(raw) != KEY_LENGTH:
            raise KeystoreError("stored identity key has the wrong length")
        return KeyPair(private_key=raw, public_key=public_key_from_private(raw))
    finally:
        secure_erase(raw)


def delete_identity(service: str, account: str) -> None:
    """Remove the identity key; a missing entry is not an error."""
    try:
        keyring.delete_password(service, account)
    except PasswordDeleteError:
        logger.debug("no identity key stored for %s/%s", service, account)
    except KeyringError as exc:
        raise KeystoreError("keyring backend failed to delete the identity key") from exc
