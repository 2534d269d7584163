"""Chunked file encryption for transfers too large to hold in memory.

Layout of an encrypted file (see :class:`airlink.core.models.EncryptedFile`):

- a random 32-byte per-file key, wrapped with AES-256-GCM under the caller's
  master key once the whole file is streamed (AAD = ``b"airlink/v1/file-key"
  || file_salt || original_size (8 bytes) || chunk_count (8 bytes)``)
- a random 16-byte file salt
- an ordered list of chunks; chunk ``i`` is AES-256-GCM under the file key
  with a random 12-byte IV and AAD = ``file_salt || i`` (4 bytes, big-endian)

Binding the salt and index into every tag means a chunk cannot be replayed
into another file or moved to another position. Each chunk is authenticated
on its own, so the transport layer can retry or resume single chunks. The
wrapped key commits to the size and chunk count, so a file cut short at a
chunk boundary fails to unwrap.
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Tuple, Union

from airlink.core.config import CryptoSettings
from airlink.core.exceptions import (
    AuthenticationError,
    ChunkSequenceError,
    CryptoError,
    InvalidInputError,
    InvalidKeyError,
    IoError,
)
from airlink.core.models import EncryptedChunk, EncryptedFile, EncryptedPayload
from . import aead
from .entropy import EntropySource, default_entropy
from .utils import require_length, secure_erase

logger = logging.getLogger(__name__)

FILE_KEY_AAD = b"airlink/v1/file-key"
MAX_CHUNKS = 2 ** 32

PathLike = Union[str, os.PathLike]


def _chunk_aad(file_salt: bytes, index: int) -> bytes:
    return bytes(file_salt) + index.to_bytes(4, "big")


def _file_key_aad(file_salt: bytes, original_size: int, chunk_count: int) -> bytes:
    return (
        FILE_KEY_AAD
        + bytes(file_salt)
        + original_size.to_bytes(8, "big")
        + chunk_count.to_bytes(8, "big")
    )


def encrypt_chunk(
    file_key,
    index: int,
    data: bytes,
    file_salt: bytes,
    entropy: Optional[EntropySource] = None,
) -> EncryptedChunk:
    """Encrypt one chunk under the file key with a fresh random IV."""
    if not 0 <= index < MAX_CHUNKS:
        raise InvalidInputError("chunk index out of range")
    payload = aead.encrypt(
        data, file_key, associated_data=_chunk_aad(file_salt, index), entropy=entropy
    )
    return EncryptedChunk(
        index=index,
        iv=payload.iv,
        tag=payload.tag,
        ciphertext=payload.ciphertext,
        size=len(data),
    )


def decrypt_chunk(file_key, chunk: EncryptedChunk, file_salt: bytes) -> bytes:
    """Authenticate and decrypt one chunk; failures carry the chunk index."""
    if len(chunk.ciphertext) != chunk.size:
        raise InvalidInputError(f"chunk {chunk.index} size does not match its ciphertext")
    payload = EncryptedPayload(ciphertext=chunk.ciphertext, iv=chunk.iv, tag=chunk.tag)
    try:
        return aead.decrypt(payload, file_key, associated_data=_chunk_aad(file_salt, chunk.index))
    except AuthenticationError:
        raise AuthenticationError(chunk_index=chunk.index) from None


def iter_plain_chunks(source: PathLike, chunk_size: int) -> Iterator[Tuple[int, bytes]]:
    """Yield ``(index, data)`` for sequential reads of ``chunk_size`` bytes."""
    if chunk_size <= 0:
        raise InvalidInputError("chunk size must be positive")
    try:
        with open(source, "rb") as inf:
            index = 0
            while True:
                data = inf.read(chunk_size)
                if not data:
                    break
                yield index, data
                index += 1
    except OSError as exc:
        raise IoError(f"failed to read {Path(source).name}") from exc


class ChunkDecryptor:
    """
    Streaming reassembler for an encrypted file.

    Chunks must be fed in ascending index order starting at 0. A gap, a
    duplicate or a reordering raises ChunkSequenceError; a failed tag raises
    AuthenticationError and nothing from that chunk is written. Pass the
    authenticated ``original_size`` and chunk count of the file so that
    ``finish()`` can detect a stream cut short.
    """

    def __init__(
        self,
        file_key,
        file_salt: bytes,
        sink: BinaryIO,
        expected_size: Optional[int] = None,
        expected_chunks: Optional[int] = None,
    ):
        self._file_key = bytearray(file_key)
        self._file_salt = bytes(file_salt)
        self._sink = sink
        self.expected_size = expected_size
        self.expected_chunks = expected_chunks
        self.next_index = 0
        self.bytes_written = 0
        self._closed = False

    def feed(self, chunk: EncryptedChunk) -> int:
        """Decrypt ``chunk``, append it to the sink and return its size."""
        if self._closed:
            raise ChunkSequenceError("decryptor already finished")
        if chunk.index != self.next_index:
            raise ChunkSequenceError(
                f"expected chunk {self.next_index}, got chunk {chunk.index}"
            )
        if self.expected_chunks is not None and chunk.index >= self.expected_chunks:
            raise ChunkSequenceError(
                f"chunk {chunk.index} is beyond the declared {self.expected_chunks} chunks"
            )
        plaintext = decrypt_chunk(self._file_key, chunk, self._file_salt)
        if (
            self.expected_size is not None
            and self.bytes_written + len(plaintext) > self.expected_size
        ):
            raise ChunkSequenceError("chunks exceed the declared file size")
        try:
            self._sink.write(plaintext)
        except OSError as exc:
            raise IoError("failed to write decrypted chunk") from exc
        self.next_index += 1
        self.bytes_written += len(plaintext)
        logger.debug("decrypted chunk %d (%d bytes)", chunk.index, len(plaintext))
        return len(plaintext)

    def finish(self) -> int:
        """Check that the whole file arrived; returns total bytes written."""
        try:
            if self.expected_size is not None and self.bytes_written != self.expected_size:
                raise ChunkSequenceError(
                    f"missing chunks: {self.bytes_written} of {self.expected_size} bytes"
                )
            if self.expected_chunks is not None and self.next_index != self.expected_chunks:
                raise ChunkSequenceError(
                    f"missing chunks: {self.next_index} of {self.expected_chunks} chunks"
                )
            return self.bytes_written
        finally:
            self.close()

    def close(self) -> None:
        if not self._closed:
            secure_erase(self._file_key)
            self._closed = True

    def __enter__(self) -> "ChunkDecryptor":
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def _encrypt_window(
    pool: ThreadPoolExecutor,
    file_key,
    window: List[Tuple[int, bytes]],
    file_salt: bytes,
    entropy: EntropySource,
) -> List[EncryptedChunk]:
    # indices were fixed while reading; results come back in submit order
    futures = [
        pool.submit(encrypt_chunk, file_key, index, data, file_salt, entropy)
        for index, data in window
    ]
    return [f.result() for f in futures]


def encrypt_file(
    source_path: PathLike,
    master_key,
    chunk_size: Optional[int] = None,
    entropy: Optional[EntropySource] = None,
    workers: Optional[int] = None,
    settings: Optional[CryptoSettings] = None,
) -> EncryptedFile:
    """
    Encrypt ``source_path`` into an :class:`EncryptedFile`.

    The file is streamed ``chunk_size`` bytes at a time; with ``workers > 1``
    up to ``workers`` chunks are encrypted concurrently. Values not passed
    explicitly come from ``settings`` (1 MiB chunks and one worker by default).
    """
    settings = settings or CryptoSettings()
    if chunk_size is None:
        chunk_size = settings.chunk_size
    if workers is None:
        workers = settings.workers
    if chunk_size <= 0:
        raise InvalidInputError("chunk size must be positive")
    if workers < 1:
        raise InvalidInputError("workers must be at least 1")
    require_length(master_key, aead.KEY_SIZE, "master key")
    entropy = entropy or default_entropy()
    src = Path(source_path)

    file_key = entropy.generate_key()
    file_salt = entropy.generate_salt()
    chunks: List[EncryptedChunk] = []
    total = 0
    try:
        if workers == 1:
            for index, data in iter_plain_chunks(src, chunk_size):
                chunks.append(encrypt_chunk(file_key, index, data, file_salt, entropy))
                total += len(data)
                logger.debug("encrypted chunk %d (%d bytes)", index, len(data))
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                window: List[Tuple[int, bytes]] = []
                for item in iter_plain_chunks(src, chunk_size):
                    window.append(item)
                    if len(window) == workers:
                        chunks.extend(_encrypt_window(pool, file_key, window, file_salt, entropy))
                        window = []
                if window:
                    chunks.extend(_encrypt_window(pool, file_key, window, file_salt, entropy))
            total = sum(c.size for c in chunks)
        wrapped = aead.encrypt(
            file_key,
            master_key,
            associated_data=_file_key_aad(file_salt, total, len(chunks)),
            entropy=entropy,
        )
    finally:
        secure_erase(file_key)

    encrypted = EncryptedFile(
        file_name=src.name,
        original_size=total,
        encrypted_size=sum(len(c.ciphertext) for c in chunks),
        chunks=chunks,
        encrypted_file_key=wrapped,
        file_salt=file_salt,
    )
    logger.info("encrypted %s: %d bytes in %d chunks", src.name, total, len(chunks))
    return encrypted


def unwrap_file_key(encrypted_file: EncryptedFile, master_key) -> bytearray:
    """
    Recover the per-file key; the caller must erase it.

    Fails with AuthenticationError when ``original_size`` or the number of
    chunks differs from what was encrypted.
    """
    try:
        aad = _file_key_aad(
            encrypted_file.file_salt,
            encrypted_file.original_size,
            encrypted_file.chunk_count,
        )
    except OverflowError:
        # negative or oversized header fields can never have been encrypted
        raise AuthenticationError() from None
    file_key = bytearray(
        aead.decrypt(encrypted_file.encrypted_file_key, master_key, associated_data=aad)
    )
    if len(file_key) != aead.KEY_SIZE:
        secure_erase(file_key)
        raise InvalidKeyError("wrapped file key has the wrong length")
    return file_key


def decrypt_file(encrypted_file: EncryptedFile, master_key, output_path: PathLike) -> str:
    """
    Decrypt ``encrypted_file`` into ``output_path`` and return the path.

    Chunks are processed strictly in index order. On the first failure the
    output file is closed and removed; nothing after the failing chunk is
    written.
    """
    out = Path(output_path)
    file_key = unwrap_file_key(encrypted_file, master_key)
    try:
        try:
            sink = open(out, "wb")
        except OSError as exc:
            raise IoError(f"failed to open {out.name} for writing") from exc
        try:
            with sink, ChunkDecryptor(
                file_key,
                encrypted_file.file_salt,
                sink,
                expected_size=encrypted_file.original_size,
                expected_chunks=encrypted_file.chunk_count,
            ) as decryptor:
                for chunk in encrypted_file.chunks:
                    decryptor.feed(chunk)
                decryptor.finish()
        except (CryptoError, OSError) as exc:
            logger.warning("decryption of %s aborted: %s", encrypted_file.file_name, exc)
            try:
                out.unlink()
            except OSError:
                logger.warning("could not remove partial output %s", out.name)
            if isinstance(exc, CryptoError):
                raise
            raise IoError(f"failed to write {out.name}") from exc
    finally:
        secure_erase(file_key)

    logger.info(
        "decrypted %s: %d chunks -> %s",
        encrypted_file.file_name,
        len(encrypted_file.chunks),
        out.name,
    )
    return str(out)
