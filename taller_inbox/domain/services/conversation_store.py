"""Conversation store: one active thread per (organization, phone)."""

import logging
from datetime import datetime

from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import ConversationNotFoundError, StoreError, UniquenessRaceError
from taller_inbox.core.results import AlreadyExists, Created, UpsertResult
from taller_inbox.persistence.models.conversation import (
    DEFAULT_CUSTOMER_NAME,
    Conversation,
    ConversationStatus,
)
from taller_inbox.persistence.repositories.conversation_repository import ConversationRepository

logger = logging.getLogger(__name__)


class ConversationStore:
    """Find-or-create and counter maintenance for conversations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize conversation store."""
        self.session = session
        self.conversation_repo = ConversationRepository(session)

    async def get(self, organization_id: int, conversation_id: int) -> Conversation:
        """Load a conversation of the organization.

        Raises:
            ConversationNotFoundError: Missing, or owned by another organization
        """
        conversation = await self.conversation_repo.get_by_id(organization_id, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(organization_id, conversation_id)
        return conversation

    async def find_or_create(
        self,
        organization_id: int,
        canonical_phone: str,
        display_name_hint: str | None = None,
    ) -> UpsertResult[Conversation]:
        """Get the active conversation for a phone, creating it if needed.

        Two deliveries for a new customer can race here. The loser's insert
        hits the partial unique index; it re-reads and returns the winner.

        Args:
            organization_id: Organization ID
            canonical_phone: Normalized phone
            display_name_hint: Provider-supplied customer name, if any

        Returns:
            Created(conversation) or AlreadyExists(conversation)
        """
        hint = (display_name_hint or "").strip() or None

        existing = await self.conversation_repo.get_active_by_phone(organization_id, canonical_phone)
        if existing is not None:
            await self._adopt_name(existing, hint)
            return AlreadyExists(existing)

        try:
            conversation = await self.conversation_repo.create(
                organization_id,
                canonical_phone=canonical_phone,
                display_name=hint or DEFAULT_CUSTOMER_NAME,
                status=ConversationStatus.ACTIVE.value,
                messages_count=0,
                is_lead=False,
            )
        except UniquenessRaceError:
            winner = await self.conversation_repo.get_active_by_phone(organization_id, canonical_phone)
            if winner is None:
                # Constraint fired but the row is gone: closed or merged underneath us
                raise StoreError(
                    "Conversation create conflicted but no active row was found",
                    organization_id=organization_id,
                )
            logger.info(
                "Conversation create lost race, using existing row",
                extra={"conversation_id": winner.id},
            )
            await self._adopt_name(winner, hint)
            return AlreadyExists(winner)

        logger.info("Created conversation", extra={"conversation_id": conversation.id})
        return Created(conversation)

    async def record_inbound(self, conversation: Conversation, body: str, sent_at: datetime) -> None:
        """Bump counters and last-message fields for one inbound message.

        The increment is a single UPDATE, so concurrent deliveries never lose
        a count; the last-message fields are last-writer-wins.
        """
        await self.conversation_repo.increment_inbound(
            conversation.organization_id, conversation.id, body, sent_at
        )

    async def refresh_counters(self, organization_id: int, conversation_id: int) -> int:
        """Recompute counters from the message rows."""
        return await self.conversation_repo.refresh_counters(organization_id, conversation_id)

    async def _adopt_name(self, conversation: Conversation, hint: str | None) -> None:
        if not hint or conversation.display_name not in (None, DEFAULT_CUSTOMER_NAME):
            return
        await self.conversation_repo.set_display_name(
            conversation.organization_id, conversation.id, hint
        )
