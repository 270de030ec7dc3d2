"""Lead repository."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.persistence.models.lead import Lead
from taller_inbox.persistence.repositories.base import BaseRepository


class LeadRepository(BaseRepository[Lead]):
    """Repository for Lead entities."""

    def __init__(self, session: AsyncSession):
        """Initialize lead repository."""
        super().__init__(Lead, session)

    async def get_by_conversation(self, organization_id: int, conversation_id: int) -> Lead | None:
        """Get lead by WhatsApp conversation ID.

        Args:
            organization_id: Organization ID
            conversation_id: Conversation ID

        Returns:
            Lead or None if not found
        """
        stmt = (
            select(Lead)
            .where(
                Lead.organization_id == organization_id,
                Lead.whatsapp_conversation_id == conversation_id,
            )
            .order_by(Lead.created_at.asc(), Lead.id.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def list_for_organization(
        self,
        organization_id: int,
        status: str | None = None,
        created_since: datetime | None = None,
    ) -> list[Lead]:
        """List an organization's leads, newest first.

        Args:
            organization_id: Organization ID
            status: Optional pipeline status filter
            created_since: Only leads created at or after this time
        """
        stmt = select(Lead).where(Lead.organization_id == organization_id)
        if status:
            stmt = stmt.where(Lead.status == status)
        if created_since is not None:
            stmt = stmt.where(Lead.created_at >= created_since)
        stmt = stmt.order_by(Lead.created_at.desc(), Lead.id.desc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def repoint_conversation(
        self, organization_id: int, from_conversation_id: int, to_conversation_id: int
    ) -> int:
        """Stage moving leads from one conversation to another; the caller commits."""
        stmt = (
            update(Lead)
            .where(
                Lead.organization_id == organization_id,
                Lead.whatsapp_conversation_id == from_conversation_id,
            )
            .values(whatsapp_conversation_id=to_conversation_id, updated_at=datetime.utcnow())
        )
        result = await self.execute_write(stmt, organization_id=organization_id)
        return result.rowcount

    async def update_phone(self, organization_id: int, lead_id: int, phone: str) -> None:
        """Rewrite a lead's phone and commit.

        Raises:
            UniquenessRaceError: Another lead of the organization already has that phone
        """
        stmt = (
            update(Lead)
            .where(Lead.organization_id == organization_id, Lead.id == lead_id)
            .values(phone=phone, updated_at=datetime.utcnow())
        )
        await self.execute_write(stmt, organization_id=organization_id, lead_id=lead_id)
        await self.commit(organization_id=organization_id, lead_id=lead_id)

    async def update_status(self, organization_id: int, lead_id: int, status: str) -> None:
        """Set a lead's pipeline status and commit; ``converted`` stamps converted_at."""
        values = {"status": status, "updated_at": datetime.utcnow()}
        if status == "converted":
            values["converted_at"] = datetime.utcnow()
        stmt = (
            update(Lead)
            .where(Lead.organization_id == organization_id, Lead.id == lead_id)
            .values(**values)
        )
        await self.execute_write(stmt, organization_id=organization_id, lead_id=lead_id)
        await self.commit(organization_id=organization_id, lead_id=lead_id)
