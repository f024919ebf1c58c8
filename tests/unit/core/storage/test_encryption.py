"""Tests for the PayloadEncryptor (Fernet-based cache payload encryption)."""

from __future__ import annotations

import math

import pytest
from cryptography.fernet import Fernet

from glowscore.core.storage.encryption import EncryptionError, PayloadEncryptor


@pytest.fixture
def key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def encryptor(key: str) -> PayloadEncryptor:
    return PayloadEncryptor(key)


class TestRoundTrip:
    def test_payload_round_trip(self, encryptor: PayloadEncryptor):
        data = {
            "kind": "face",
            "analysis": {"overall": {"current_score10": 6.2, "potential_range": {"min": 6.4, "max": 7.1}}},
        }
        token = encryptor.encrypt(data)
        assert isinstance(token, str)
        assert "current_score10" not in token
        assert encryptor.decrypt(token) == data

    def test_list_round_trip(self, encryptor: PayloadEncryptor):
        data = [{"key": "waist_to_hip", "value": 0.889}]
        assert encryptor.decrypt(encryptor.encrypt(data)) == data

    def test_null_round_trip(self, encryptor: PayloadEncryptor):
        assert encryptor.decrypt(encryptor.encrypt(None)) is None

    def test_empty_token_raises(self, encryptor: PayloadEncryptor):
        with pytest.raises(EncryptionError, match="empty token"):
            encryptor.decrypt("")

    def test_non_finite_payload_rejected(self, encryptor: PayloadEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.encrypt({"score": math.nan})


class TestKeyValidation:
    def test_empty_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            PayloadEncryptor("")

    def test_whitespace_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            PayloadEncryptor("   ")

    def test_invalid_key_raises(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            PayloadEncryptor("not-a-valid-fernet-key")


class TestCorruptData:
    def test_wrong_key_cannot_decrypt(self, encryptor: PayloadEncryptor):
        token = encryptor.encrypt({"secret": "data"})
        other = PayloadEncryptor(Fernet.generate_key().decode())
        with pytest.raises(EncryptionError, match="invalid token"):
            other.decrypt(token)

    def test_tampered_token_raises(self, encryptor: PayloadEncryptor):
        token = encryptor.encrypt({"data": 1})
        tampered = token[:-5] + "XXXXX"
        with pytest.raises(EncryptionError):
            encryptor.decrypt(tampered)

    def test_garbage_token_raises(self, encryptor: PayloadEncryptor):
        with pytest.raises(EncryptionError):
            encryptor.decrypt("not-a-valid-token")


class TestGenerateKey:
    def test_generates_valid_key(self):
        key = PayloadEncryptor.generate_key()
        assert isinstance(key, str)
        assert len(key) == 44  # base64-encoded 32 bytes

    def test_generated_key_works(self):
        enc = PayloadEncryptor(PayloadEncryptor.generate_key())
        assert enc.decrypt(enc.encrypt({"test": True})) == {"test": True}

    def test_each_key_is_unique(self):
        keys = {PayloadEncryptor.generate_key() for _ in range(10)}
        assert len(keys) == 10
