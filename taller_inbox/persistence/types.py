"""Custom SQLAlchemy types for the application."""

from typing import Optional

from sqlalchemy import String, TypeDecorator

from taller_inbox.core.encryption import decrypt_field, encrypt_field


class EncryptedString(TypeDecorator):
    """String column that is encrypted at rest.

    Usage:
        api_key = Column(EncryptedString(255), nullable=True)
    """

    impl = String
    cache_ok = True

    def __init__(self, length: Optional[int] = None):
        # Fernet tokens are much longer than the plaintext
        super().__init__(max(length * 3, 512) if length else 512)

    def process_bind_param(self, value: Optional[str], dialect) -> Optional[str]:
        """Encrypt value before storing in database."""
        return encrypt_field(value)

    def process_result_value(self, value: Optional[str], dialect) -> Optional[str]:
        """Decrypt value when reading from database."""
        return decrypt_field(value)
