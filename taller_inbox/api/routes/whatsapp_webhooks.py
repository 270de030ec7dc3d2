"""WhatsApp provider webhook endpoints."""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.domain.services.webhook_receiver import InboundEvent, WebhookReceiver
from taller_inbox.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class WhatsAppWebhookEnvelope(BaseModel):
    """Provider event envelope. Unknown top-level keys are tolerated."""

    model_config = ConfigDict(extra="allow")

    event: str | None = None
    session: str | None = None
    payload: dict[str, Any] = Field(default_factory=dict)


class WebhookAckResponse(BaseModel):
    """Acknowledgment returned to the provider."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str | None = None
    conversation_id: str | None = Field(default=None, alias="conversationId")


@router.get("/whatsapp")
async def verify_whatsapp_webhook() -> dict[str, str]:
    """Endpoint the provider pings when the webhook URL is registered."""
    return {"status": "ok"}


@router.post(
    "/whatsapp",
    response_model=WebhookAckResponse,
    response_model_exclude_none=True,
)
async def whatsapp_inbound_webhook(
    envelope: WhatsAppWebhookEnvelope,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> WebhookAckResponse:
    """Handle an inbound WhatsApp provider event.

    Ignored events (unknown kinds, own messages, group chats) are
    acknowledged with success so the provider does not retry them.
    Unparseable senders return 400 and unknown sessions 404, rendered by
    the application's error handlers.

    Args:
        envelope: ``{event, session, payload}``
        db: Database session

    Returns:
        Acknowledgment with the conversation id when a message was stored
    """
    event = InboundEvent(
        event_type=envelope.event,
        session_id=envelope.session,
        payload=envelope.payload,
    )
    result = await WebhookReceiver(db).handle(event)
    return WebhookAckResponse(
        success=result.success,
        message=result.message,
        conversation_id=str(result.conversation_id) if result.conversation_id is not None else None,
    )
