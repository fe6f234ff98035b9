import base64
import hashlib
from collections.abc import Iterable, Mapping
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

from gamebin.core.config import Settings


class FieldEncryptor:
    """
    Fernet encryption for sensitive record fields before they leave the process.
    """

    DEFAULT_SENSITIVE_FIELDS = ("content", "title", "notes", "description")

    def __init__(self, secret_key: str, sensitive_fields: Iterable[str] | None = None):
        """
        Initialize the encryptor with a secret key.
        The secret key is hashed using SHA-256 to ensure it's a valid 32-byte Fernet key.
        """
        key_bytes = secret_key.encode("utf-8")
        h = hashlib.sha256(key_bytes).digest()
        fernet_key = base64.urlsafe_b64encode(h)
        self._fernet = Fernet(fernet_key)
        self.sensitive_fields = frozenset(
            sensitive_fields if sensitive_fields is not None else self.DEFAULT_SENSITIVE_FIELDS
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "FieldEncryptor | None":
        """Build an encryptor when encryption is enabled, else None."""
        if not settings.encryption_enabled:
            return None
        return cls(settings.encryption_key, settings.sensitive_fields)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt a plaintext string and return a base64-encoded ciphertext.
        """
        if not plaintext:
            return plaintext
        ciphertext = self._fernet.encrypt(plaintext.encode("utf-8"))
        return ciphertext.decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a base64-encoded ciphertext and return the original plaintext.
        Returns the original text if it is not a token for this key, so data
        written before encryption was enabled still loads.
        """
        if not ciphertext:
            return ciphertext
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
            return plaintext.decode("utf-8")
        except (InvalidToken, ValueError):
            return ciphertext

    def _transform(self, record: Mapping[str, Any], convert) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for key, value in record.items():
            if isinstance(value, Mapping):
                result[key] = self._transform(value, convert)
            elif key in self.sensitive_fields and isinstance(value, str) and value:
                result[key] = convert(value)
            else:
                result[key] = value
        return result

    def encrypt_sensitive_fields(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Return a copy of the record with sensitive string fields encrypted,
        including those of nested objects.
        """
        return self._transform(record, self.encrypt)

    def decrypt_sensitive_fields(self, record: Mapping[str, Any]) -> dict[str, Any]:
        """
        Return a copy of the record with sensitive string fields decrypted.
        """
        return self._transform(record, self.decrypt)
