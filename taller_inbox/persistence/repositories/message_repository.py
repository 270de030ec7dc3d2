"""Message repository."""

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.persistence.models.conversation import Message
from taller_inbox.persistence.repositories.base import BaseRepository


class MessageRepository(BaseRepository[Message]):
    """Repository for WhatsApp messages."""

    def __init__(self, session: AsyncSession):
        """Initialize message repository."""
        super().__init__(Message, session)

    async def get_by_conversation(self, organization_id: int, conversation_id: int) -> list[Message]:
        """Get messages of a conversation in chronological order.

        Insertion order is not meaningful for concurrent deliveries, so
        ordering is by ``sent_at`` with the provider id as tiebreaker.
        """
        stmt = (
            select(Message)
            .where(
                Message.organization_id == organization_id,
                Message.conversation_id == conversation_id,
            )
            .order_by(Message.sent_at.asc(), Message.provider_message_id.asc(), Message.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_for_conversation(self, organization_id: int, conversation_id: int) -> int:
        """Count message rows referencing a conversation."""
        stmt = select(func.count(Message.id)).where(
            Message.organization_id == organization_id,
            Message.conversation_id == conversation_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def reassign(self, organization_id: int, from_conversation_id: int, to_conversation_id: int) -> int:
        """Stage a bulk move of messages to another conversation; the caller commits.

        Returns:
            Number of messages moved
        """
        stmt = (
            update(Message)
            .where(
                Message.organization_id == organization_id,
                Message.conversation_id == from_conversation_id,
            )
            .values(conversation_id=to_conversation_id)
        )
        result = await self.execute_write(stmt, organization_id=organization_id)
        return result.rowcount
