"""AES-256-GCM streaming encryption over a whole file."""

import hashlib
import os
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from ..common.constants import DEFAULT_WINDOW_SIZE
from ..utils import DecryptionFailure, EncryptionError

NONCE_SIZE = 12
TAG_SIZE = 16
OVERHEAD = NONCE_SIZE + TAG_SIZE


def derive_key(passphrase: str) -> bytes:
    """
    Turn a user passphrase into a 256-bit AES key.

    The passphrase is hashed once with SHA-256 and nothing else: there is no
    salt and no stretching, so the same passphrase always yields the same key
    and previously stored files stay readable.

    Args:
        passphrase: User passphrase

    Returns:
        32-byte key
    """
    if not passphrase:
        raise EncryptionError("Encryption key must not be empty.")
    return hashlib.sha256(passphrase.encode("utf-8")).digest()


def ciphertext_size(plaintext_size: int) -> int:
    """Size of the full ciphertext stream for a plaintext of the given size."""
    return plaintext_size + OVERHEAD


class StreamEncryptor:
    """
    One cipher session spanning a whole file.

    The output of successive ``update`` calls followed by ``finalize`` is
    ``nonce || ciphertext || tag``; it may be split anywhere for transport.
    """

    def __init__(self, passphrase: str, nonce: Optional[bytes] = None) -> None:
        self.nonce = nonce or os.urandom(NONCE_SIZE)
        if len(self.nonce) != NONCE_SIZE:
            raise EncryptionError(f"Nonce must be {NONCE_SIZE} bytes.")
        self._encryptor = Cipher(
            algorithms.AES(derive_key(passphrase)), modes.GCM(self.nonce)
        ).encryptor()
        self._started = False

    def update(self, data: bytes) -> bytes:
        out = self._encryptor.update(data)
        if not self._started:
            self._started = True
            return self.nonce + out
        return out

    def finalize(self) -> bytes:
        head = b"" if self._started else self.nonce
        self._started = True
        tail = self._encryptor.finalize()
        return head + tail + self._encryptor.tag


class StreamDecryptor:
    """
    Inverse of StreamEncryptor.

    Accepts ciphertext pieces cut at arbitrary boundaries. The last TAG_SIZE
    bytes seen are held back until ``finalize`` verifies them.
    """

    def __init__(self, passphrase: str) -> None:
        self._key = derive_key(passphrase)
        self._header = b""
        self._tail = b""
        self._decryptor = None

    def update(self, data: bytes) -> bytes:
        if self._decryptor is None:
            self._header += data
            if len(self._header) < NONCE_SIZE:
                return b""
            nonce = self._header[:NONCE_SIZE]
            data = self._header[NONCE_SIZE:]
            self._header = b""
            self._decryptor = Cipher(algorithms.AES(self._key), modes.GCM(nonce)).decryptor()

        buffered = self._tail + data
        if len(buffered) <= TAG_SIZE:
            self._tail = buffered
            return b""
        self._tail = buffered[-TAG_SIZE:]
        return self._decryptor.update(buffered[:-TAG_SIZE])

    def finalize(self) -> bytes:
        if self._decryptor is None or len(self._tail) < TAG_SIZE:
            raise DecryptionFailure("Ciphertext is truncated.")
        try:
            return self._decryptor.finalize_with_tag(self._tail)
        except InvalidTag as exc:
            raise DecryptionFailure(
                "Decryption failed. Wrong key or corrupted data."
            ) from exc


def encrypt_data(data: bytes, passphrase: str, window_size: int = DEFAULT_WINDOW_SIZE) -> bytes:
    """
    Encrypt a whole buffer window by window.

    Args:
        data: Plaintext
        passphrase: User passphrase
        window_size: Plaintext bytes encrypted per step

    Returns:
        nonce + ciphertext + tag
    """
    encryptor = StreamEncryptor(passphrase)
    view = memoryview(data)
    parts = []
    for offset in range(0, len(view), window_size):
        parts.append(encryptor.update(bytes(view[offset:offset + window_size])))
    parts.append(encryptor.finalize())
    return b"".join(parts)


def decrypt_data(data: bytes, passphrase: str) -> bytes:
    """
    Decrypt a buffer produced by encrypt_data or a concatenation of chunks.

    Raises:
        DecryptionFailure: If data is too short, the key is wrong or the
            ciphertext was modified
    """
    if len(data) < OVERHEAD:
        raise DecryptionFailure("Data too short to be encrypted.")
    decryptor = StreamDecryptor(passphrase)
    return decryptor.update(data) + decryptor.finalize()
