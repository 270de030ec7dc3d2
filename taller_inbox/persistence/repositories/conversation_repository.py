"""Conversation repository."""

from datetime import datetime

from sqlalchemy import Row, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.persistence.models.conversation import (
    DEFAULT_CUSTOMER_NAME,
    Conversation,
    ConversationStatus,
    Message,
)
from taller_inbox.persistence.repositories.base import BaseRepository


class ConversationRepository(BaseRepository[Conversation]):
    """Repository for WhatsApp conversations."""

    def __init__(self, session: AsyncSession):
        """Initialize conversation repository."""
        super().__init__(Conversation, session)

    async def get_active_by_phone(
        self, organization_id: int, canonical_phone: str
    ) -> Conversation | None:
        """Get the active conversation for a customer phone.

        Args:
            organization_id: Organization ID
            canonical_phone: Normalized phone

        Returns:
            Conversation or None if not found
        """
        stmt = (
            select(Conversation)
            .where(
                Conversation.organization_id == organization_id,
                Conversation.canonical_phone == canonical_phone,
                Conversation.status == ConversationStatus.ACTIVE.value,
            )
            .order_by(Conversation.created_at.asc(), Conversation.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def increment_inbound(
        self,
        organization_id: int,
        conversation_id: int,
        body: str,
        sent_at: datetime,
    ) -> None:
        """Bump counters for one inbound message in a single UPDATE."""
        stmt = (
            update(Conversation)
            .where(
                Conversation.organization_id == organization_id,
                Conversation.id == conversation_id,
            )
            .values(
                messages_count=Conversation.messages_count + 1,
                last_message_at=sent_at,
                last_message_text=body,
                updated_at=datetime.utcnow(),
            )
        )
        await self.execute_write(
            stmt, organization_id=organization_id, conversation_id=conversation_id
        )
        await self.commit(organization_id=organization_id, conversation_id=conversation_id)

    async def set_display_name(
        self, organization_id: int, conversation_id: int, display_name: str
    ) -> None:
        """Replace a missing or placeholder display name."""
        stmt = (
            update(Conversation)
            .where(
                Conversation.organization_id == organization_id,
                Conversation.id == conversation_id,
                or_(
                    Conversation.display_name.is_(None),
                    Conversation.display_name == DEFAULT_CUSTOMER_NAME,
                ),
            )
            .values(display_name=display_name)
        )
        await self.execute_write(
            stmt, organization_id=organization_id, conversation_id=conversation_id
        )
        await self.commit(organization_id=organization_id, conversation_id=conversation_id)

    async def link_lead(self, organization_id: int, conversation_id: int, lead_id: int) -> None:
        """Point the conversation's lead cache at a lead."""
        stmt = (
            update(Conversation)
            .where(
                Conversation.organization_id == organization_id,
                Conversation.id == conversation_id,
            )
            .values(is_lead=True, lead_id=lead_id, updated_at=datetime.utcnow())
        )
        await self.execute_write(
            stmt, organization_id=organization_id, conversation_id=conversation_id
        )
        await self.commit(organization_id=organization_id, conversation_id=conversation_id)

    async def list_for_reconciliation(self, organization_id: int) -> list[Row]:
        """Snapshot every conversation of an organization, oldest first.

        Returns plain rows so callers can keep using them after a rollback.
        """
        stmt = (
            select(
                Conversation.id,
                Conversation.canonical_phone,
                Conversation.status,
                Conversation.is_lead,
                Conversation.lead_id,
                Conversation.messages_count,
                Conversation.created_at,
            )
            .where(Conversation.organization_id == organization_id)
            .order_by(Conversation.created_at.asc(), Conversation.id.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.all())

    async def update_fields(self, organization_id: int, conversation_id: int, **values) -> None:
        """Stage an UPDATE of the given columns; the caller commits."""
        stmt = (
            update(Conversation)
            .where(
                Conversation.organization_id == organization_id,
                Conversation.id == conversation_id,
            )
            .values(updated_at=datetime.utcnow(), **values)
        )
        await self.execute_write(
            stmt, organization_id=organization_id, conversation_id=conversation_id
        )

    async def delete_by_id(self, organization_id: int, conversation_id: int) -> int:
        """Stage deletion of a conversation row; the caller commits.

        Returns:
            Number of rows deleted
        """
        stmt = delete(Conversation).where(
            Conversation.organization_id == organization_id,
            Conversation.id == conversation_id,
        )
        result = await self.execute_write(
            stmt, organization_id=organization_id, conversation_id=conversation_id
        )
        return result.rowcount

    async def refresh_counters(self, organization_id: int, conversation_id: int) -> int:
        """Recompute counters from the message rows and commit.

        Returns:
            The recomputed message count
        """
        count_stmt = select(func.count(Message.id)).where(
            Message.organization_id == organization_id,
            Message.conversation_id == conversation_id,
        )
        count = (await self.session.execute(count_stmt)).scalar_one()

        last_stmt = (
            select(Message.sent_at, Message.body)
            .where(
                Message.organization_id == organization_id,
                Message.conversation_id == conversation_id,
            )
            .order_by(Message.sent_at.desc(), Message.id.desc())
            .limit(1)
        )
        last = (await self.session.execute(last_stmt)).first()

        values = {"messages_count": count}
        if last is not None:
            values["last_message_at"] = last.sent_at
            values["last_message_text"] = last.body
        await self.update_fields(organization_id, conversation_id, **values)
        await self.commit(organization_id=organization_id, conversation_id=conversation_id)
        return count
