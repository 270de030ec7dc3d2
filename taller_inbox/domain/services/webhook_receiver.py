"""Inbound WhatsApp provider event processing."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import ValidationError
from taller_inbox.core.phone import extract_sender_phone, normalize_phone
from taller_inbox.core.tenant_context import bind_log_context
from taller_inbox.domain.services.conversation_store import ConversationStore
from taller_inbox.domain.services.message_appender import MessageAppender
from taller_inbox.domain.services.tenant_resolver import TenantResolver
from taller_inbox.infrastructure.redis import RedisClient, redis_client
from taller_inbox.persistence.models.conversation import MessageDirection
from taller_inbox.persistence.repositories.organization_repository import (
    OrganizationConfigRepository,
)
from taller_inbox.settings import settings

logger = logging.getLogger(__name__)

INBOUND_MESSAGE_EVENTS = frozenset({"message", "message.any"})
SESSION_STATUS_EVENT = "session.status"
CONNECTED_STATUSES = frozenset({"WORKING", "connected"})
GROUP_CHAT_SUFFIX = "@g.us"


@dataclass
class InboundEvent:
    """Provider event envelope: ``{event, session, payload}``."""

    event_type: str | None
    session_id: str | None
    payload: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_envelope(cls, envelope: dict[str, Any]) -> "InboundEvent":
        payload = envelope.get("payload")
        return cls(
            event_type=envelope.get("event"),
            session_id=envelope.get("session"),
            payload=payload if isinstance(payload, dict) else {},
        )

    @property
    def from_me(self) -> bool:
        value = self.payload.get("fromMe")
        return value is True or value == "true"

    @property
    def sender_address(self) -> str | None:
        return self.payload.get("from") or self.payload.get("chatId")

    @property
    def is_group(self) -> bool:
        for key in ("from", "chatId"):
            value = self.payload.get(key)
            if isinstance(value, str) and value.endswith(GROUP_CHAT_SUFFIX):
                return True
        return False

    @property
    def provider_message_id(self) -> str | None:
        value = self.payload.get("id")
        if value is None or value == "":
            return None
        return str(value)

    @property
    def body(self) -> str:
        return self.payload.get("body") or self.payload.get("text") or ""

    @property
    def sent_at(self) -> datetime:
        """Provider timestamp (epoch seconds) as naive UTC, or receipt time."""
        ts = self.payload.get("timestamp")
        if isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 0:
            return datetime.fromtimestamp(ts, tz=timezone.utc).replace(tzinfo=None)
        return datetime.utcnow()


@dataclass
class WebhookResult:
    """Outcome reported back to the provider."""

    success: bool = True
    message: str | None = None
    conversation_id: int | None = None


class WebhookReceiver:
    """Turn provider events into conversations and messages.

    Side effects are strictly additive. Events we intentionally ignore are
    acknowledged as successful so the provider does not retry them.
    """

    def __init__(self, session: AsyncSession, redis: RedisClient | None = None) -> None:
        self.session = session
        self.redis = redis or redis_client
        self.tenant_resolver = TenantResolver(session)
        self.conversation_store = ConversationStore(session)
        self.message_appender = MessageAppender(session)

    async def handle(self, event: InboundEvent) -> WebhookResult:
        """Process one provider event.

        Raises:
            ValidationError: Sender address is missing or has no digits
            TenantResolutionError: Session is not provisioned for any organization
        """
        if event.event_type == SESSION_STATUS_EVENT:
            return await self._handle_session_status(event)

        if event.event_type not in INBOUND_MESSAGE_EVENTS:
            logger.debug(f"Ignoring provider event {event.event_type!r}")
            return WebhookResult(message="ignored")

        if event.from_me:
            return WebhookResult(message="ignored: own message")

        if event.is_group:
            return WebhookResult(message="ignored: group chat")

        sender = extract_sender_phone(event.sender_address)
        if not sender:
            raise ValidationError("Could not extract sender phone", session_id=event.session_id)

        organization_id = await self.tenant_resolver.resolve(event.session_id)

        with bind_log_context(organization_id=organization_id):
            if await self._is_duplicate_delivery(event):
                logger.info(
                    "Duplicate provider delivery ignored",
                    extra={"provider_message_id": event.provider_message_id},
                )
                return WebhookResult(message="duplicate")

            canonical_phone = normalize_phone(sender)
            result = await self.conversation_store.find_or_create(
                organization_id, canonical_phone, event.payload.get("pushName")
            )
            conversation = result.value

            with bind_log_context(organization_id=organization_id, conversation_id=conversation.id):
                sent_at = event.sent_at
                body = event.body
                await self.message_appender.append(
                    conversation,
                    MessageDirection.INBOUND,
                    body,
                    event.provider_message_id,
                    sent_at,
                    message_type=event.payload.get("type"),
                    raw_provider_payload=event.payload,
                )
                await self.conversation_store.record_inbound(conversation, body, sent_at)
                logger.info(
                    "Inbound message stored",
                    extra={"new_conversation": not result.existing},
                )
                return WebhookResult(message="processed", conversation_id=conversation.id)

    async def _handle_session_status(self, event: InboundEvent) -> WebhookResult:
        status = event.payload.get("status")
        config = await self.tenant_resolver.find_config(event.session_id)
        if config is None:
            logger.warning(f"Session status for unknown session {event.session_id!r}")
            return WebhookResult(message="ignored: unknown session")

        connected = status in CONNECTED_STATUSES
        await OrganizationConfigRepository(self.session).set_connected(
            config.organization_id, connected
        )
        logger.info(
            f"Messaging session is now {status}",
            extra={"organization_id": config.organization_id, "whatsapp_connected": connected},
        )
        return WebhookResult(message="session status updated")

    async def _is_duplicate_delivery(self, event: InboundEvent) -> bool:
        if not settings.webhook_dedup_enabled:
            return False
        provider_message_id = event.provider_message_id
        if not provider_message_id:
            return False
        key = f"whatsapp_msg:{event.session_id}:{provider_message_id}"
        claimed = await self.redis.setnx(key, "1", ttl=settings.webhook_dedup_ttl_seconds)
        return not claimed
