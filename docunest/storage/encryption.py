"""
Envelope encryption for stored documents.

Each file gets its own random AES-256 key (the file encryption key, FEK) and
its own random 16-byte IV. The file is encrypted with AES-256-CBC under that
pair. The FEK and IV are then wrapped separately with AES-256-CBC under the
master key, so only the master key plus the document's own wrapped fields are
needed to read a file back.

The wrapping IVs are not random: they are derived from the master key as

    SHA-256(master_key || label)[:16]

with the labels "key-encryption-iv" and "iv-encryption-iv". Every document
already stored depends on that derivation, so it must stay byte-for-byte
stable. A conventional design would store a random IV next to each wrapped
value instead.

CBC carries no authentication tag. Tampering is usually caught by the PKCS7
padding check or the unwrapped length check, but that is not an integrity
guarantee.
"""
import base64
import binascii
import hashlib
import logging
import os
import re
from dataclasses import dataclass
from functools import lru_cache

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from docunest.config import get_settings
from docunest.errors import ConfigurationError, DecryptionError, EncryptionError

logger = logging.getLogger(__name__)

# AES-256 key size (32 bytes)
KEY_SIZE = 32
# AES block / CBC IV size (16 bytes)
IV_SIZE = 16

KEY_WRAP_LABEL = b"key-encryption-iv"
IV_WRAP_LABEL = b"iv-encryption-iv"

_HEX_KEY = re.compile(r"[0-9a-fA-F]{64}")


def derive_master_key(secret: str | None) -> bytes:
    """
    Turn the configured secret into a 32-byte master key.

    Exactly 64 hex characters are read as a hex-encoded key. Anything else,
    including a 64-character passphrase, is hashed with SHA-256.
    """
    if secret is None or not secret.strip():
        raise ConfigurationError("ENCRYPT_KEY is not set")

    if _HEX_KEY.fullmatch(secret):
        return bytes.fromhex(secret)

    return hashlib.sha256(secret.encode("utf-8")).digest()


def derive_wrap_iv(master_key: bytes, label: bytes) -> bytes:
    """Deterministic 16-byte wrapping IV for a master key and domain label."""
    return hashlib.sha256(master_key + label).digest()[:IV_SIZE]


def _cbc_encrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    padder = padding.PKCS7(algorithms.AES.block_size).padder()
    padded = padder.update(data) + padder.finalize()
    encryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).encryptor()
    return encryptor.update(padded) + encryptor.finalize()


def _cbc_decrypt(key: bytes, iv: bytes, data: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(data) + decryptor.finalize()
    unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


@dataclass(frozen=True)
class EncryptedPayload:
    """Result of encrypting one file. Wrapped values are base64 text for storage."""

    ciphertext: bytes
    wrapped_key: str
    wrapped_iv: str


class EnvelopeEncryptor:
    """
    Encrypts and decrypts file payloads under a single master key.

    Instances hold only the immutable master key and the two derived wrapping
    IVs, so one instance can be shared by concurrent requests.
    """

    def __init__(self, master_key: bytes):
        if not isinstance(master_key, (bytes, bytearray)) or len(master_key) != KEY_SIZE:
            raise ConfigurationError(f"Master key must be exactly {KEY_SIZE} bytes")
        self._master_key = bytes(master_key)
        self._key_wrap_iv = derive_wrap_iv(self._master_key, KEY_WRAP_LABEL)
        self._iv_wrap_iv = derive_wrap_iv(self._master_key, IV_WRAP_LABEL)

    @classmethod
    def from_secret(cls, secret: str | None) -> "EnvelopeEncryptor":
        """Build an encryptor from a hex key or passphrase."""
        return cls(derive_master_key(secret))

    @staticmethod
    def generate_file_key() -> bytes:
        """Generate a random AES-256 key for a single file."""
        return os.urandom(KEY_SIZE)

    @staticmethod
    def generate_file_iv() -> bytes:
        """Generate a random CBC IV for a single file."""
        return os.urandom(IV_SIZE)

    def wrap_key(self, file_key: bytes) -> str:
        """Wrap a file key under the master key. Returns base64 text."""
        wrapped = _cbc_encrypt(self._master_key, self._key_wrap_iv, file_key)
        return base64.b64encode(wrapped).decode("ascii")

    def wrap_iv(self, file_iv: bytes) -> str:
        """Wrap a file IV under the master key. Returns base64 text."""
        wrapped = _cbc_encrypt(self._master_key, self._iv_wrap_iv, file_iv)
        return base64.b64encode(wrapped).decode("ascii")

    def unwrap_key(self, wrapped_key: str) -> bytes:
        return self._unwrap(wrapped_key, self._key_wrap_iv, KEY_SIZE, "file key")

    def unwrap_iv(self, wrapped_iv: str) -> bytes:
        return self._unwrap(wrapped_iv, self._iv_wrap_iv, IV_SIZE, "file IV")

    def _unwrap(self, wrapped: str, wrap_iv: bytes, expected_size: int, what: str) -> bytes:
        try:
            raw = base64.b64decode(wrapped, validate=True)
            value = _cbc_decrypt(self._master_key, wrap_iv, raw)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionError(f"Could not unwrap {what}") from e

        if len(value) != expected_size:
            raise DecryptionError(f"Unwrapped {what} has wrong length")
        return value

    def encrypt(self, data: bytes) -> EncryptedPayload:
        """
        Encrypt a whole file with a fresh FEK/IV pair and wrap the pair.

        Raises EncryptionError if any cipher step fails; nothing is returned
        in that case, so callers have nothing partial to persist.
        """
        try:
            file_key = self.generate_file_key()
            file_iv = self.generate_file_iv()
            ciphertext = _cbc_encrypt(file_key, file_iv, bytes(data))
            payload = EncryptedPayload(
                ciphertext=ciphertext,
                wrapped_key=self.wrap_key(file_key),
                wrapped_iv=self.wrap_iv(file_iv),
            )
        except (ValueError, TypeError) as e:
            raise EncryptionError("File encryption failed") from e

        logger.debug(f"Encrypted {len(data)} bytes into {len(ciphertext)} bytes")
        return payload

    def decrypt(self, ciphertext: bytes, wrapped_key: str, wrapped_iv: str) -> bytes:
        """
        Unwrap the FEK/IV pair and decrypt the file. All-or-nothing.

        Raises DecryptionError on a wrong master key, corrupt stored bytes or
        a ciphertext paired with the wrong wrapped values.
        """
        file_iv = self.unwrap_iv(wrapped_iv)
        file_key = self.unwrap_key(wrapped_key)

        try:
            return _cbc_decrypt(file_key, file_iv, bytes(ciphertext))
        except (ValueError, TypeError) as e:
            raise DecryptionError("File decryption failed") from e


@lru_cache()
def get_file_encryptor() -> EnvelopeEncryptor:
    """Get the process-wide encryptor built from ENCRYPT_KEY (cached)."""
    encryptor = EnvelopeEncryptor.from_secret(get_settings().encrypt_key)
    logger.info("Envelope encryptor initialized")
    return encryptor
