"""
Unit Tests for Encryption Service

Tests for AES-256-GCM credential encryption with a SHA-256 derived key.
"""

import base64
import hashlib
import os

import pytest
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from tradecup.services.encryption_service import (
    CredentialVault,
    DecryptionError,
    EncryptionError,
)

TEST_ENCRYPTION_KEY = "test-encryption-key-for-unit-tests"


class TestCredentialVault:
    """Test suite for CredentialVault"""

    def test_encrypt_decrypt_roundtrip(self, vault):
        token = vault.encrypt("my-lbank-api-key")

        assert token != "my-lbank-api-key"
        assert vault.decrypt(token) == "my-lbank-api-key"

    def test_unicode_and_empty_plaintext(self, vault):
        for plaintext in ["", "ключ-🔑", "a" * 1024]:
            assert vault.decrypt(vault.encrypt(plaintext)) == plaintext

    def test_storage_layout(self, vault):
        plaintext = "secret-value"
        raw = base64.b64decode(vault.encrypt(plaintext))

        # nonce | tag | ciphertext, GCM ciphertext is as long as the plaintext
        assert len(raw) == vault.NONCE_LENGTH + vault.TAG_LENGTH + len(plaintext.encode())

    def test_nonce_is_random(self, vault):
        assert vault.encrypt("same") != vault.encrypt("same")

    def test_derive_key_is_sha256(self):
        key = CredentialVault.derive_key(TEST_ENCRYPTION_KEY)

        assert len(key) == CredentialVault.KEY_LENGTH
        assert key == hashlib.sha256(TEST_ENCRYPTION_KEY.encode()).digest()

    def test_decrypts_token_built_independently(self, vault):
        """Tokens from any implementation of the layout must decrypt"""
        key = hashlib.sha256(TEST_ENCRYPTION_KEY.encode()).digest()
        nonce = os.urandom(12)
        sealed = AESGCM(key).encrypt(nonce, b"external-secret", None)
        token = base64.b64encode(nonce + sealed[-16:] + sealed[:-16]).decode()

        assert vault.decrypt(token) == "external-secret"

    def test_wrong_key_fails(self, vault):
        token = vault.encrypt("my-secret")
        other = CredentialVault("a-different-key")

        with pytest.raises(DecryptionError, match="authentication failed"):
            other.decrypt(token)

    def test_tampered_ciphertext_fails(self, vault):
        raw = bytearray(base64.b64decode(vault.encrypt("my-secret")))
        raw[-1] ^= 0x01
        tampered = base64.b64encode(bytes(raw)).decode()

        with pytest.raises(DecryptionError):
            vault.decrypt(tampered)

    def test_tampered_tag_fails(self, vault):
        raw = bytearray(base64.b64decode(vault.encrypt("my-secret")))
        raw[vault.NONCE_LENGTH] ^= 0x01
        tampered = base64.b64encode(bytes(raw)).decode()

        with pytest.raises(DecryptionError):
            vault.decrypt(tampered)

    def test_invalid_base64_fails(self, vault):
        with pytest.raises(DecryptionError, match="invalid base64"):
            vault.decrypt("not base64 at all!!")

    def test_too_short_fails(self, vault):
        short = base64.b64encode(b"x" * 20).decode()

        with pytest.raises(DecryptionError, match="too short"):
            vault.decrypt(short)

    @pytest.mark.parametrize("secret", [None, ""])
    def test_missing_secret(self, secret):
        with pytest.raises(EncryptionError, match="ENCRYPTION_KEY is not set"):
            CredentialVault(secret)
