"""
secret_key.py — Secret store for HOTP/TOTP keys.

The raw secret lives in a fixed 1024-byte buffer that stays encrypted
("protected") while idle. Plaintext only exists as short-lived copies handed
out by get_secret() / protected_access().

Protection uses AES-256-CTR (cryptography) with a key generated once per
process, so protected buffers are only meaningful inside the process that
created them. CTR keeps the ciphertext the same size as the buffer, which lets
the buffer be encrypted and decrypted in place.

A SecretKey is NOT reentrant: the protect/unprotect toggle is not guarded, so
concurrent accesses on one instance must be serialized by the caller
(one lock per store).
"""

import logging
import secrets
from contextlib import contextmanager
from typing import Iterator, Union

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from . import base32
from .config import MAX_SECRET_BYTES, SECRET_BYTES
from .errors import ArgumentOutOfRangeError, MissingValueError, SecretFormatError, SecretTooLongError

logger = logging.getLogger(__name__)

# Same-process protection key; never leaves memory.
_PROCESS_KEY = secrets.token_bytes(32)
_NONCE_BYTES = 16
_BLOCK_BYTES = 16


def _wipe(buffer: bytearray) -> None:
    """Overwrite a plaintext copy with zeros."""
    buffer[:] = bytes(len(buffer))


class SecretKey:
    """
    Holds one OTP secret (1-1024 bytes).

    Construct from raw bytes or Base32 text; use SecretKey.generate() for a
    random secret. The content never changes after construction.

    Example:
        >>> key = SecretKey("GEZD GNBV GY3T QOJQ GEZD GNBV GY3T QOJQ")
        >>> with key.protected_access() as secret:
        ...     bytes(secret)
        b'12345678901234567890'
    """

    def __init__(self, secret: Union[bytes, bytearray, memoryview, str]):
        """
        Arguments:
            secret: raw bytes, or Base32 text. It should not be shorter than
                128 bits (16 bytes); 160 bits (20 bytes) is strongly recommended.

        Raises:
            MissingValueError: secret is None
            SecretTooLongError: more than 1024 bytes (raw or decoded)
            SecretFormatError: text is not valid Base32, or unsupported type
        """
        if secret is None:
            raise MissingValueError("Secret cannot be None.")

        if isinstance(secret, str):
            raw = base32.decode(secret, MAX_SECRET_BYTES)
        elif isinstance(secret, (bytes, bytearray, memoryview)):
            raw = bytearray(secret)
            if len(raw) > MAX_SECRET_BYTES:
                _wipe(raw)
                raise SecretTooLongError(
                    f"Secret cannot be longer than {MAX_SECRET_BYTES * 8} bits ({MAX_SECRET_BYTES} bytes)."
                )
        else:
            raise SecretFormatError(f"Unsupported secret type {type(secret).__name__}.")

        self._buffer = bytearray(MAX_SECRET_BYTES)
        # keystream output lands here, then is copied back and zeroed
        self._scratch = bytearray(MAX_SECRET_BYTES + _BLOCK_BYTES - 1)
        self._length = len(raw)
        self._nonce = b""
        self._protected = False
        try:
            self._buffer[:self._length] = raw
        finally:
            _wipe(raw)
        self._protect()

    @classmethod
    def generate(cls, length: int = SECRET_BYTES) -> "SecretKey":
        """
        Create a secret of `length` random bytes from the OS CSPRNG.

        Raises:
            ArgumentOutOfRangeError: length outside 1..1024
        """
        if not isinstance(length, int) or isinstance(length, bool) or not 1 <= length <= MAX_SECRET_BYTES:
            raise ArgumentOutOfRangeError(
                f"Secret length must be between 1 and {MAX_SECRET_BYTES} bytes."
            )
        raw = bytearray(secrets.token_bytes(length))
        try:
            return cls(raw)
        finally:
            _wipe(raw)

    # --- Protection --------------------------------------------------------
    def _protect(self) -> None:
        self._nonce = secrets.token_bytes(_NONCE_BYTES)
        self._apply_keystream()
        self._protected = True

    def _unprotect(self) -> None:
        self._apply_keystream()
        self._protected = False

    def _apply_keystream(self) -> None:
        # CTR: encryption and decryption are the same XOR with the keystream.
        cipher = Cipher(algorithms.AES(_PROCESS_KEY), modes.CTR(self._nonce))
        transform = cipher.encryptor()
        try:
            with memoryview(self._buffer) as view:
                written = transform.update_into(view, self._scratch)
            transform.finalize()
            with memoryview(self._scratch) as out:
                self._buffer[:] = out[:written]
        finally:
            _wipe(self._scratch)

    @property
    def is_protected(self) -> bool:
        return self._protected

    @property
    def length(self) -> int:
        """Length of the secret in bytes."""
        return self._length

    def __len__(self) -> int:
        return self._length

    # --- Access ------------------------------------------------------------
    def get_secret(self) -> bytearray:
        """
        Return a plaintext copy of the secret (exactly `length` bytes).

        The stored buffer is re-protected before this returns, whatever happens.
        It is up to the caller to wipe the returned copy.
        """
        copy = bytearray(self._length)
        self._unprotect()
        try:
            with memoryview(self._buffer) as view:
                copy[:] = view[:self._length]
        finally:
            self._protect()
        return copy

    @contextmanager
    def protected_access(self) -> Iterator[bytearray]:
        """
        Scoped plaintext access.

        Yields a fresh copy of the secret; the store is already protected again
        when the block starts, and the copy is zeroed when the block exits
        (normally or through an exception).
        """
        copy = self.get_secret()
        try:
            yield copy
        finally:
            _wipe(copy)

    def export_base32(self, *, spacing: bool = True, padding: bool = False, uppercase: bool = True) -> str:
        """
        Return the secret as Base32 text (default: groups of four, no padding,
        upper case). It is up to the caller to secure the returned string.
        """
        with self.protected_access() as secret:
            return base32.encode(secret, spacing=spacing, padding=padding, uppercase=uppercase)

    def __repr__(self) -> str:
        return f"<SecretKey length={self._length}>"
