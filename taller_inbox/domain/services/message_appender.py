"""Persist messages into conversations."""

from datetime import datetime
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.persistence.models.conversation import Conversation, Message, MessageDirection
from taller_inbox.persistence.repositories.message_repository import MessageRepository


class MessageAppender:
    """Pure insert of messages; organization is always taken from the conversation."""

    def __init__(self, session: AsyncSession) -> None:
        self.message_repo = MessageRepository(session)

    async def append(
        self,
        conversation: Conversation,
        direction: MessageDirection | str,
        body: str,
        provider_message_id: str | None,
        sent_at: datetime,
        message_type: str | None = None,
        raw_provider_payload: dict[str, Any] | None = None,
    ) -> Message:
        """Append a message to a conversation.

        Args:
            conversation: Owning conversation
            direction: inbound or outbound
            body: Message text
            provider_message_id: Provider's id for the message, if any
            sent_at: Provider timestamp (naive UTC)
            message_type: Provider message type (chat, image, ...)
            raw_provider_payload: Payload object as received

        Returns:
            Created message
        """
        direction = MessageDirection(direction).value
        return await self.message_repo.create(
            conversation.organization_id,
            conversation_id=conversation.id,
            direction=direction,
            body=body or "",
            provider_message_id=provider_message_id,
            sent_at=sent_at,
            message_type=message_type,
            raw_provider_payload=raw_provider_payload,
        )
