"""Map provider session identifiers to organizations."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import TenantResolutionError
from taller_inbox.persistence.models.organization import OrganizationMessagingConfig
from taller_inbox.persistence.repositories.organization_repository import (
    OrganizationConfigRepository,
)

logger = logging.getLogger(__name__)


class TenantResolver:
    """Resolve the organization owning a messaging session."""

    def __init__(self, session: AsyncSession) -> None:
        self.config_repo = OrganizationConfigRepository(session)

    async def find_config(self, session_id: str | None) -> OrganizationMessagingConfig | None:
        """Get the messaging config for a session, or None."""
        if not session_id:
            return None
        return await self.config_repo.get_by_session_name(session_id)

    async def resolve(self, session_id: str | None) -> int:
        """Get the organization id for a session.

        Raises:
            TenantResolutionError: No organization provisioned this session
        """
        config = await self.find_config(session_id)
        if config is None:
            logger.warning(f"No organization found for messaging session {session_id!r}")
            raise TenantResolutionError(session_id)
        return config.organization_id
