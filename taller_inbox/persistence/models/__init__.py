"""Database models."""

from taller_inbox.persistence.models.conversation import (
    Conversation,
    ConversationStatus,
    Message,
    MessageDirection,
)
from taller_inbox.persistence.models.lead import LEAD_STATUSES, Lead, LeadStatus
from taller_inbox.persistence.models.organization import Organization, OrganizationMessagingConfig

__all__ = [
    "Organization",
    "OrganizationMessagingConfig",
    "Conversation",
    "ConversationStatus",
    "Message",
    "MessageDirection",
    "Lead",
    "LeadStatus",
    "LEAD_STATUSES",
]
