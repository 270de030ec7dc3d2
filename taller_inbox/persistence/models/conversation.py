"""WhatsApp conversation and message models."""

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.orm import relationship

from taller_inbox.persistence.database import Base

DEFAULT_CUSTOMER_NAME = "Cliente WhatsApp"


class ConversationStatus(str, enum.Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class MessageDirection(str, enum.Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class Conversation(Base):
    """One messaging thread with a single customer inside one organization."""

    __tablename__ = "whatsapp_conversations"
    __table_args__ = (
        # One active thread per customer; closed history never blocks a new one
        Index(
            "uq_whatsapp_conversations_org_phone_active",
            "organization_id",
            "canonical_phone",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    # Canonical digits; legacy rows may still hold raw provider formatting
    canonical_phone = Column(String(50), nullable=False, index=True)
    display_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    status = Column(String(20), nullable=False, default=ConversationStatus.ACTIVE.value, index=True)
    last_message_at = Column(DateTime, nullable=True)
    last_message_text = Column(Text, nullable=True)
    messages_count = Column(Integer, nullable=False, default=0)
    is_lead = Column(Boolean, nullable=False, default=False)
    lead_id = Column(Integer, nullable=True)  # lookup cache only, Lead is the record
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    messages = relationship(
        "Message", back_populates="conversation", order_by="Message.sent_at", passive_deletes=True
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id}, organization_id={self.organization_id}, "
            f"phone={self.canonical_phone}, status={self.status})>"
        )


class Message(Base):
    """One inbound or outbound event within a conversation."""

    __tablename__ = "whatsapp_messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer, ForeignKey("whatsapp_conversations.id"), nullable=False, index=True
    )
    # Denormalized for isolation checks; always equals the conversation's
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    direction = Column(String(20), nullable=False)
    body = Column(Text, nullable=False, default="")
    message_type = Column(String(50), nullable=True)
    provider_message_id = Column(String(255), nullable=True, index=True)
    sent_at = Column(DateTime, nullable=False, index=True)
    raw_provider_payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Relationships
    conversation = relationship("Conversation", back_populates="messages")

    def __repr__(self) -> str:
        return (
            f"<Message(id={self.id}, conversation_id={self.conversation_id}, "
            f"direction={self.direction})>"
        )
