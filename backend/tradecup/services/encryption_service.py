"""
Encryption Service for Exchange API Credentials

AES-256-GCM encryption of LBank API keys and secrets at rest.

Stored format (base64 of the concatenation):
    nonce (12 bytes) | tag (16 bytes) | ciphertext

The AES key is the SHA-256 digest of the operator-supplied ENCRYPTION_KEY
string, so any deployment holding the same string can decrypt.
"""

import base64
import binascii
import hashlib
import secrets
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from loguru import logger


class EncryptionError(Exception):
    """Raised when encryption operations fail"""
    pass


class DecryptionError(Exception):
    """Raised when decryption operations fail"""
    pass


class CredentialVault:
    """
    Encrypts and decrypts credential strings with AES-256-GCM.
    """

    # AES-256 requires 32 bytes (256 bits)
    KEY_LENGTH = 32

    # GCM nonce should be 12 bytes (96 bits)
    NONCE_LENGTH = 12

    # GCM authentication tag
    TAG_LENGTH = 16

    def __init__(self, secret: Optional[str]):
        """
        Args:
            secret: Operator-supplied key material (any non-empty string)

        Raises:
            EncryptionError: If no secret is configured
        """
        if not secret:
            raise EncryptionError("ENCRYPTION_KEY is not set")

        self._key = self.derive_key(secret)
        self._aesgcm = AESGCM(self._key)

    @classmethod
    def derive_key(cls, secret: str) -> bytes:
        """Hash the configured string into a 32-byte AES key."""
        return hashlib.sha256(secret.encode("utf-8")).digest()

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt plaintext, returning the base64 storage string.

        Raises:
            EncryptionError: If encryption fails
        """
        try:
            nonce = secrets.token_bytes(self.NONCE_LENGTH)

            # AESGCM appends the tag to the ciphertext
            sealed = self._aesgcm.encrypt(nonce, plaintext.encode("utf-8"), None)
            ciphertext, tag = sealed[:-self.TAG_LENGTH], sealed[-self.TAG_LENGTH:]

            return base64.b64encode(nonce + tag + ciphertext).decode("ascii")

        except Exception as e:
            logger.error(f"Encryption failed: {e}")
            raise EncryptionError(f"Encryption failed: {e}") from e

    def decrypt(self, token: str) -> str:
        """
        Decrypt a storage string produced by :meth:`encrypt`.

        Raises:
            DecryptionError: On malformed input, wrong key or tampering
        """
        try:
            combined = base64.b64decode(token, validate=True)
        except (binascii.Error, ValueError, TypeError) as e:
            raise DecryptionError(f"Decryption failed: invalid base64 ({e})") from e

        header = self.NONCE_LENGTH + self.TAG_LENGTH
        if len(combined) < header:
            raise DecryptionError("Decryption failed: ciphertext too short")

        nonce = combined[:self.NONCE_LENGTH]
        tag = combined[self.NONCE_LENGTH:header]
        ciphertext = combined[header:]

        try:
            plaintext = self._aesgcm.decrypt(nonce, ciphertext + tag, None)
        except InvalidTag as e:
            raise DecryptionError(
                "Decryption failed: Data authentication failed (wrong key or tampering)"
            ) from e

        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise DecryptionError(f"Decryption failed: {e}") from e


# Singleton instance
_credential_vault: Optional[CredentialVault] = None


def get_credential_vault() -> CredentialVault:
    """
    Get singleton CredentialVault keyed from settings.ENCRYPTION_KEY.
    """
    global _credential_vault
    if _credential_vault is None:
        from tradecup.core.config import settings

        _credential_vault = CredentialVault(settings.ENCRYPTION_KEY)
        logger.info("CredentialVault initialized")
    return _credential_vault
