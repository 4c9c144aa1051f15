"""Core cryptographic primitives for the vault.

Uses:
- Argon2id (argon2-cffi) for memory-hard key derivation
- AES-256-GCM (cryptography) for authenticated encryption

Ciphertext format (base64 encoded):
[nonce (12 bytes)] [ciphertext] [tag (16 bytes)]
"""

import base64
import binascii
import os

from argon2.exceptions import HashingError
from argon2.low_level import Type, hash_secret_raw
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .exceptions import (
    AuthenticationError,
    EncryptionError,
    InvalidFormatError,
    KeyDerivationError,
)

# Argon2id parameters
MEMORY_COST = 65536  # KiB (64 MB)
TIME_COST = 3
PARALLELISM = 4
KEY_SIZE = 32  # 256 bits for AES-256

SALT_SIZE = 16  # 128 bits, 22 base64 characters
MIN_SALT_SIZE = 8  # Argon2 lower bound

NONCE_SIZE = 12  # 96 bits for AES-GCM
TAG_SIZE = 16  # 128-bit authentication tag


def _b64decode_unpadded(value: str) -> bytes:
    """Decode standard base64 with or without trailing padding."""
    value = value.strip()
    padded = value + "=" * (-len(value) % 4)
    return base64.b64decode(padded, validate=True)


class KeyDerivation:
    """Derives encryption keys from the master password using Argon2id."""

    @staticmethod
    def generate_salt() -> str:
        """Generate a random salt as unpadded base64 text."""
        raw = os.urandom(SALT_SIZE)
        return base64.b64encode(raw).decode("ascii").rstrip("=")

    @staticmethod
    def decode_salt(salt: str) -> bytes:
        """
        Decode a stored salt.

        Raises:
            KeyDerivationError: If the salt is not base64 or is too short
        """
        if not isinstance(salt, str) or not salt:
            raise KeyDerivationError("Invalid salt")
        try:
            raw = _b64decode_unpadded(salt)
        except (binascii.Error, ValueError):
            raise KeyDerivationError("Invalid salt")
        if len(raw) < MIN_SALT_SIZE:
            raise KeyDerivationError("Invalid salt")
        return raw

    @staticmethod
    def derive_key(password: str, salt: str) -> bytes:
        """
        Derive a 256-bit key from password using Argon2id.

        The same password and salt always produce the same key; a successful
        decryption is the only proof that the password is correct.

        Args:
            password: Master password
            salt: Base64 salt stored in the vault file

        Returns:
            32-byte derived key
        """
        raw_salt = KeyDerivation.decode_salt(salt)
        try:
            return hash_secret_raw(
                secret=password.encode("utf-8"),
                salt=raw_salt,
                time_cost=TIME_COST,
                memory_cost=MEMORY_COST,
                parallelism=PARALLELISM,
                hash_len=KEY_SIZE,
                type=Type.ID,
            )
        except HashingError as e:
            raise KeyDerivationError(f"Failed to derive key: {e}")


class AuthenticatedCipher:
    """
    AES-256-GCM encryption of byte payloads.

    Every call to encrypt() draws a fresh random nonce, so encrypting the same
    plaintext twice under one key never yields the same output.
    """

    def __init__(self, key: bytes):
        """
        Initialize with a 256-bit key.

        Args:
            key: 32-byte encryption key (not base64 encoded)
        """
        if len(key) != KEY_SIZE:
            raise ValueError(f"Key must be {KEY_SIZE} bytes, got {len(key)}")
        self.aesgcm = AESGCM(key)

    def encrypt(self, plaintext: bytes) -> str:
        """Encrypt and return base64(nonce || ciphertext || tag)."""
        nonce = os.urandom(NONCE_SIZE)
        # ciphertext includes tag appended by AESGCM
        ciphertext = self.aesgcm.encrypt(nonce, plaintext, None)
        return base64.b64encode(nonce + ciphertext).decode("ascii")

    def decrypt(self, blob: str) -> bytes:
        """
        Decrypt a blob produced by encrypt().

        Raises:
            InvalidFormatError: Not base64, or too short to hold a nonce
            AuthenticationError: Wrong key, tampered or truncated ciphertext
        """
        try:
            combined = base64.b64decode(blob, validate=True)
        except (binascii.Error, ValueError, TypeError):
            raise InvalidFormatError()

        if len(combined) < NONCE_SIZE:
            raise InvalidFormatError()

        nonce = combined[:NONCE_SIZE]
        ciphertext = combined[NONCE_SIZE:]
        try:
            return self.aesgcm.decrypt(nonce, ciphertext, None)
        except InvalidTag:
            raise AuthenticationError()


def encrypt(key: bytes, plaintext: bytes) -> str:
    """Encrypt plaintext under key. See AuthenticatedCipher.encrypt."""
    try:
        cipher = AuthenticatedCipher(key)
    except ValueError as e:
        raise EncryptionError(f"Encryption failed: {e}")
    return cipher.encrypt(plaintext)


def decrypt(key: bytes, blob: str) -> bytes:
    """Decrypt blob under key. See AuthenticatedCipher.decrypt."""
    try:
        cipher = AuthenticatedCipher(key)
    except ValueError:
        raise AuthenticationError()
    return cipher.decrypt(blob)
