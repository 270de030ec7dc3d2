"""Organization messaging configuration repository."""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.persistence.models.organization import OrganizationMessagingConfig
from taller_inbox.persistence.repositories.base import BaseRepository


class OrganizationConfigRepository(BaseRepository[OrganizationMessagingConfig]):
    """Repository for per-organization messaging channels.

    Lookups by session name are the one place we query without an
    organization filter: the session is how we find the organization.
    """

    def __init__(self, session: AsyncSession):
        """Initialize messaging config repository."""
        super().__init__(OrganizationMessagingConfig, session)

    async def get_by_session_name(self, session_name: str) -> OrganizationMessagingConfig | None:
        """Get the messaging config owning a provider session.

        Args:
            session_name: Provider session identifier

        Returns:
            Config or None if no organization provisioned that session
        """
        stmt = select(OrganizationMessagingConfig).where(
            OrganizationMessagingConfig.session_name == session_name
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_connected(self, organization_id: int, connected: bool) -> None:
        """Record the provider session state for an organization."""
        stmt = (
            update(OrganizationMessagingConfig)
            .where(OrganizationMessagingConfig.organization_id == organization_id)
            .values(whatsapp_connected=connected)
        )
        await self.execute_write(stmt, organization_id=organization_id)
        await self.commit(organization_id=organization_id)
