"""Tests for messaging credential encryption."""

import pytest
from conftest import create_organization
from cryptography.fernet import Fernet
from sqlalchemy import text

from taller_inbox.core.encryption import EncryptionError, EncryptionService
from taller_inbox.persistence.models import OrganizationMessagingConfig


@pytest.fixture
def key() -> str:
    return Fernet.generate_key().decode()


def test_round_trip(key):
    service = EncryptionService(key)

    encrypted = service.encrypt("waha-api-key")

    assert encrypted.startswith("enc:")
    assert encrypted != "waha-api-key"
    assert service.decrypt(encrypted) == "waha-api-key"


def test_encrypt_is_not_applied_twice(key):
    service = EncryptionService(key)
    encrypted = service.encrypt("waha-api-key")

    assert service.encrypt(encrypted) == encrypted


def test_plaintext_values_read_back_unchanged(key):
    assert EncryptionService(key).decrypt("legacy-plaintext") == "legacy-plaintext"


def test_disabled_service_passes_plaintext_through():
    service = EncryptionService("")

    assert service.is_enabled is False
    assert service.encrypt("waha-api-key") == "waha-api-key"


def test_wrong_key_raises(key):
    encrypted = EncryptionService(key).encrypt("waha-api-key")

    with pytest.raises(EncryptionError):
        EncryptionService(Fernet.generate_key().decode()).decrypt(encrypted)


def test_disabled_service_cannot_decrypt(key):
    encrypted = EncryptionService(key).encrypt("waha-api-key")

    with pytest.raises(EncryptionError):
        EncryptionService("").decrypt(encrypted)


@pytest.mark.asyncio
async def test_api_key_column_is_stored_encrypted(db_session, monkeypatch, key):
    monkeypatch.setattr("taller_inbox.core.encryption._encryption_service", EncryptionService(key))
    organization = await create_organization(db_session, session_name=None)
    config = OrganizationMessagingConfig(
        organization_id=organization.id,
        session_name="org-secret",
        api_url="http://waha.local:3000",
        api_key="waha-api-key",
    )
    db_session.add(config)
    await db_session.commit()

    stored = (
        await db_session.execute(
            text("SELECT api_key FROM organization_messaging_configs WHERE id = :id"),
            {"id": config.id},
        )
    ).scalar_one()
    await db_session.refresh(config)

    assert stored.startswith("enc:")
    assert config.api_key == "waha-api-key"
