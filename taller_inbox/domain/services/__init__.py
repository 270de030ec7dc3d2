"""Domain services."""

from taller_inbox.domain.services.conversation_store import ConversationStore
from taller_inbox.domain.services.lead_converter import LeadConverter
from taller_inbox.domain.services.lead_service import LeadService
from taller_inbox.domain.services.message_appender import MessageAppender
from taller_inbox.domain.services.reconciliation import DuplicateReconciliationJob
from taller_inbox.domain.services.tenant_resolver import TenantResolver
from taller_inbox.domain.services.webhook_receiver import WebhookReceiver

__all__ = [
    "ConversationStore",
    "LeadConverter",
    "LeadService",
    "MessageAppender",
    "DuplicateReconciliationJob",
    "TenantResolver",
    "WebhookReceiver",
]
