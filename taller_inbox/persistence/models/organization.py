"""Organization and messaging configuration models."""

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from taller_inbox.persistence.database import Base
from taller_inbox.persistence.types import EncryptedString


class Organization(Base):
    """Organization model (the tenant isolation boundary)."""

    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    messaging_config = relationship(
        "OrganizationMessagingConfig",
        back_populates="organization",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name={self.name})>"


class OrganizationMessagingConfig(Base):
    """Messaging provider channel provisioned for one organization.

    ``session_name`` is the opaque session identifier the provider sends
    with every webhook event.
    """

    __tablename__ = "organization_messaging_configs"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(
        Integer, ForeignKey("organizations.id"), nullable=False, unique=True, index=True
    )
    session_name = Column(String(255), nullable=False, unique=True, index=True)
    api_url = Column(Text, nullable=True)
    api_key = Column(EncryptedString(255), nullable=True)
    whatsapp_connected = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="messaging_config")

    def __repr__(self) -> str:
        return (
            f"<OrganizationMessagingConfig(id={self.id}, organization_id={self.organization_id}, "
            f"session_name={self.session_name}, connected={self.whatsapp_connected})>"
        )
