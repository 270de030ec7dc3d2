"""Field-level encryption for messaging provider credentials.

Uses Fernet symmetric encryption. Values are stored with an ``enc:``
prefix; unprefixed values written before encryption was enabled are read
back unchanged.
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

ENCRYPTED_PREFIX = "enc:"


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""
    pass


class EncryptionService:
    """Encrypts and decrypts credential strings with a single Fernet key."""

    def __init__(self, key: str | None = None) -> None:
        """Initialize the service.

        Args:
            key: URL-safe base64 Fernet key; defaults to FIELD_ENCRYPTION_KEY
        """
        if key is None:
            from taller_inbox.settings import settings

            key = settings.field_encryption_key

        self._fernet: Optional[Fernet] = None
        if key:
            try:
                self._fernet = Fernet(key.encode())
            except (ValueError, TypeError) as e:
                logger.error(f"Invalid FIELD_ENCRYPTION_KEY format: {e}")
        if self._fernet is None:
            logger.warning("No encryption key configured - encryption disabled")

    @property
    def is_enabled(self) -> bool:
        """Check if encryption is enabled (key is configured)."""
        return self._fernet is not None

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a plaintext string.

        Returns:
            ``enc:``-prefixed token, or the plaintext when encryption is disabled
        """
        if not plaintext or self.is_encrypted(plaintext):
            return plaintext

        if not self._fernet:
            logger.warning("Encryption not enabled - storing plaintext")
            return plaintext

        token = self._fernet.encrypt(plaintext.encode())
        return f"{ENCRYPTED_PREFIX}{token.decode()}"

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt an encrypted string.

        Raises:
            EncryptionError: If the key is missing or wrong
        """
        if not ciphertext or not self.is_encrypted(ciphertext):
            return ciphertext

        if not self._fernet:
            raise EncryptionError("Cannot decrypt: encryption key not configured")

        try:
            return self._fernet.decrypt(ciphertext[len(ENCRYPTED_PREFIX):].encode()).decode()
        except InvalidToken as e:
            raise EncryptionError("Failed to decrypt: invalid token or wrong key") from e

    @staticmethod
    def is_encrypted(value: str | None) -> bool:
        """Check if a value is already encrypted."""
        return bool(value) and value.startswith(ENCRYPTED_PREFIX)


_encryption_service: Optional[EncryptionService] = None


def get_encryption_service() -> EncryptionService:
    """Get the process-wide encryption service."""
    global _encryption_service
    if _encryption_service is None:
        _encryption_service = EncryptionService()
    return _encryption_service


def encrypt_field(value: Optional[str]) -> Optional[str]:
    """Convenience function to encrypt a field value."""
    if value is None:
        return None
    return get_encryption_service().encrypt(value)


def decrypt_field(value: Optional[str]) -> Optional[str]:
    """Convenience function to decrypt a field value."""
    if value is None:
        return None
    return get_encryption_service().decrypt(value)
