"""Lead model."""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from taller_inbox.persistence.database import Base


class LeadStatus(str, enum.Enum):
    """Sales pipeline stages, in pipeline order."""

    NEW = "new"
    CONTACTED = "contacted"
    QUALIFIED = "qualified"
    APPOINTMENT = "appointment"
    CONVERTED = "converted"
    LOST = "lost"


LEAD_STATUSES = [s.value for s in LeadStatus]


class Lead(Base):
    """Sales-pipeline record derived from a WhatsApp conversation."""

    __tablename__ = "leads"
    __table_args__ = (
        UniqueConstraint("organization_id", "phone", name="uq_leads_organization_phone"),
    )

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False, index=True)
    name = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=False, index=True)
    email = Column(String(255), nullable=True)
    estimated_value = Column(Numeric(12, 2), nullable=False, default=0)
    source = Column(String(50), nullable=False, default="whatsapp")
    assigned_to = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(String(50), nullable=False, default=LeadStatus.NEW.value, index=True)
    whatsapp_conversation_id = Column(
        Integer,
        ForeignKey("whatsapp_conversations.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
    converted_at = Column(DateTime, nullable=True)

    # Relationships
    conversation = relationship("Conversation", foreign_keys=[whatsapp_conversation_id])

    def __repr__(self) -> str:
        return (
            f"<Lead(id={self.id}, organization_id={self.organization_id}, "
            f"phone={self.phone}, status={self.status})>"
        )
