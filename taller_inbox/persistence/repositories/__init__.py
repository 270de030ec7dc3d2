"""Organization-scoped repositories."""

from taller_inbox.persistence.repositories.conversation_repository import ConversationRepository
from taller_inbox.persistence.repositories.lead_repository import LeadRepository
from taller_inbox.persistence.repositories.message_repository import MessageRepository
from taller_inbox.persistence.repositories.organization_repository import (
    OrganizationConfigRepository,
)

__all__ = [
    "ConversationRepository",
    "LeadRepository",
    "MessageRepository",
    "OrganizationConfigRepository",
]
