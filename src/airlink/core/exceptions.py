"""
Exceptions for the AirLink crypto core
Everything derives from AirLinkError so callers have a general error catcher
"""

from typing import Optional


class AirLinkError(Exception):
    # general container for errors
    pass


class CryptoError(AirLinkError):
    # base for everything raised by the security package
    pass


class InvalidKeyError(CryptoError):
    # key of the wrong length or format
    pass


class WeakKeyError(CryptoError):
    # ECDH produced the all-zero secret (low-order peer point)
    pass


class InvalidInputError(CryptoError):
    # empty or malformed arguments
    pass


class AuthenticationError(CryptoError):
    # AEAD tag mismatch; the message is fixed so it cannot act as an oracle

    def __init__(self, chunk_index: Optional[int] = None):
        self.chunk_index = chunk_index
        if chunk_index is None:
            super().__init__("authentication failed")
        else:
            super().__init__(f"authentication failed (chunk {chunk_index})")


class ChunkSequenceError(CryptoError):
    # chunk out of order, duplicated or missing
    pass


class IoError(CryptoError):
    # file read/write failure, chained from the underlying OSError
    pass


class EntropyUnavailableError(CryptoError):
    # the OS random source could not be used
    pass


class SessionClosedError(CryptoError):
    # secure session used after close() or expiry
    pass


class KeystoreError(CryptoError):
    # OS keystore refused or failed an operation
    pass
