"""Fernet-based encryption for cached analysis payloads at rest.

A cached payload is derived from a user's photo, so the SQLite store can
encrypt it before writing. The lookup columns (hash, versions) stay in
plaintext so entries can be found and invalidated without decrypting.
"""

from __future__ import annotations

import json
from typing import Any

from cryptography.fernet import Fernet, InvalidToken


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class PayloadEncryptor:
    """Fernet round-trip for cache payloads. Payloads are JSON without NaN or Infinity.

    Usage::

        encryptor = PayloadEncryptor(key="...")
        token = encryptor.encrypt({"overall": {"current_score10": 6.2}})
        encryptor.decrypt(token)  # {"overall": {"current_score10": 6.2}}
    """

    def __init__(self, key: str) -> None:
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, data: Any) -> str:
        """Serialize ``data`` compactly and return the Fernet token."""
        try:
            plaintext = json.dumps(data, separators=(",", ":"), allow_nan=False).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc
        return self._fernet.encrypt(plaintext).decode("utf-8")

    def decrypt(self, token: str) -> Any:
        """Return the payload stored in ``token``.

        Raises:
            EncryptionError: If the token is empty, was written under another
                key, or does not hold JSON.
        """
        if not token:
            raise EncryptionError("Decryption failed: empty token")
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
            return json.loads(plaintext)
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        except ValueError as exc:
            raise EncryptionError(f"Decryption failed: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new Fernet key (URL-safe base64, 32 bytes)."""
        return Fernet.generate_key().decode("utf-8")
