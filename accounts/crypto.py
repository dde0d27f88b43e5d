"""
Field-level encryption and password hashing for user records.

``FieldCipher`` is deterministic: the same plaintext always produces the same
ciphertext under a given key/IV. The users collection relies on this to look
up and enforce uniqueness of emails by comparing ciphertexts, and the token
service relies on it to match presented refresh tokens against the stored one.
"""

import base64
import binascii
import hashlib
import hmac
import secrets

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from utilities.config import SecurityConfig

SALT_BYTES = 16


class CipherError(Exception):
    """Ciphertext could not be decrypted with the configured key/IV."""


class FieldCipher:
    """AES-CBC with PKCS7 padding and a fixed key/IV; base64 text on the wire."""

    def __init__(self, key: bytes, iv: bytes):
        self._algorithm = algorithms.AES(key)
        self._iv = iv

    @classmethod
    def from_config(cls, security: SecurityConfig) -> "FieldCipher":
        return cls(security.encryption_key, security.encryption_iv)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a string for storage or transport."""
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        data = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = Cipher(self._algorithm, modes.CBC(self._iv)).encryptor()
        ciphertext = encryptor.update(data) + encryptor.finalize()
        return base64.b64encode(ciphertext).decode("ascii")

    def decrypt(self, token: str) -> str:
        """
        Decrypt a value produced by :meth:`encrypt`.

        Raises:
            CipherError: If the value is not valid base64, has a bad length,
                bad padding, or does not decode as UTF-8.
        """
        try:
            ciphertext = base64.b64decode(token.encode("ascii"), validate=True)
        except (binascii.Error, UnicodeEncodeError, AttributeError) as e:
            raise CipherError("value is not base64 encoded") from e

        if not ciphertext or len(ciphertext) % (algorithms.AES.block_size // 8):
            raise CipherError("ciphertext has an invalid length")

        decryptor = Cipher(self._algorithm, modes.CBC(self._iv)).decryptor()
        data = decryptor.update(ciphertext) + decryptor.finalize()

        try:
            unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
            plaintext = unpadder.update(data) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise CipherError("ciphertext does not decrypt under the configured key") from e


def generate_salt() -> str:
    """Random per-user salt, hex encoded."""
    return secrets.token_hex(SALT_BYTES)


def hash_password(plain_password: str, salt: str) -> str:
    """SHA-256 over password + salt, hex digest."""
    return hashlib.sha256((plain_password + salt).encode("utf-8")).hexdigest()


def check_password(plain_password: str, salt: str, password_hash: str) -> bool:
    """Constant-time comparison of a candidate password against a stored hash."""
    candidate = hash_password(plain_password, salt)
    return hmac.compare_digest(candidate, password_hash)
