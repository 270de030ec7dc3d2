"""Promote WhatsApp conversations into sales leads."""

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import StoreError, UniquenessRaceError
from taller_inbox.core.phone import format_display_phone, normalize_phone, phones_match
from taller_inbox.core.results import AlreadyExists, Created, UpsertResult
from taller_inbox.core.tenant_context import bind_log_context
from taller_inbox.domain.services.conversation_store import ConversationStore
from taller_inbox.persistence.models.conversation import DEFAULT_CUSTOMER_NAME
from taller_inbox.persistence.models.lead import Lead, LeadStatus
from taller_inbox.persistence.repositories.conversation_repository import ConversationRepository
from taller_inbox.persistence.repositories.lead_repository import LeadRepository

logger = logging.getLogger(__name__)

DEFAULT_LEAD_SOURCE = "whatsapp"


def lead_name_for(display_name: str | None, phone: str) -> str:
    """Pick a lead name: the customer's name, or the formatted phone.

    The placeholder name given to unnamed conversations is not a name.
    """
    name = (display_name or "").strip()
    if name and name != DEFAULT_CUSTOMER_NAME:
        return name
    return format_display_phone(phone)


def find_race_winner(leads: list[Lead], phone: str) -> Lead | None:
    """Locate the lead a concurrent converter created for ``phone``.

    Exact phone match first, then last-10-digit match, then the first
    record as last resort.
    """
    if not leads:
        return None
    canonical = normalize_phone(phone)
    for lead in leads:
        if normalize_phone(lead.phone) == canonical:
            return lead
    for lead in leads:
        if phones_match(lead.phone, phone):
            return lead
    logger.warning(
        "No lead matches the conflicting phone, falling back to first lead",
        extra={"lead_id": leads[0].id},
    )
    return leads[0]


class LeadConverter:
    """Create exactly one lead per customer, whoever converts first.

    The insert is optimistic. A uniqueness violation on
    (organization_id, phone) means another request converted this customer
    already; we find that lead, link the conversation to it and report it
    as existing.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.conversation_store = ConversationStore(session)
        self.conversation_repo = ConversationRepository(session)
        self.lead_repo = LeadRepository(session)

    async def convert(
        self,
        organization_id: int,
        conversation_id: int,
        estimated_value: Decimal | float | int = 0,
        assigned_to: str | None = None,
        notes: str | None = None,
        lead_source: str = DEFAULT_LEAD_SOURCE,
    ) -> UpsertResult[Lead]:
        """Convert a conversation into a lead.

        Args:
            organization_id: Caller's organization
            conversation_id: Conversation to convert
            estimated_value: Expected deal value
            assigned_to: Salesperson, if any
            notes: Free-form notes
            lead_source: Lead origin label

        Returns:
            Created(lead) for a fresh lead, AlreadyExists(lead) otherwise

        Raises:
            ConversationNotFoundError: Conversation is not in the organization
        """
        with bind_log_context(organization_id=organization_id, conversation_id=conversation_id):
            conversation = await self.conversation_store.get(organization_id, conversation_id)

            if conversation.is_lead and conversation.lead_id:
                lead = await self.lead_repo.get_by_id(organization_id, conversation.lead_id)
                if lead is not None:
                    return AlreadyExists(lead)
                logger.warning(
                    "Conversation points at a missing lead, converting again",
                    extra={"lead_id": conversation.lead_id},
                )

            lead = await self.lead_repo.get_by_conversation(organization_id, conversation_id)
            if lead is not None:
                await self.conversation_repo.link_lead(organization_id, conversation_id, lead.id)
                logger.info("Relinked conversation to its lead", extra={"lead_id": lead.id})
                return AlreadyExists(lead)

            phone = normalize_phone(conversation.canonical_phone)
            try:
                lead = await self.lead_repo.create(
                    organization_id,
                    name=lead_name_for(conversation.display_name, phone),
                    phone=phone,
                    email=conversation.customer_email,
                    estimated_value=Decimal(str(estimated_value or 0)),
                    source=lead_source or DEFAULT_LEAD_SOURCE,
                    assigned_to=assigned_to,
                    notes=notes,
                    status=LeadStatus.NEW.value,
                    whatsapp_conversation_id=conversation_id,
                )
            except UniquenessRaceError:
                return await self._link_race_winner(organization_id, conversation_id, phone)

            await self.conversation_repo.link_lead(organization_id, conversation_id, lead.id)
            logger.info("Created lead from conversation", extra={"lead_id": lead.id})
            return Created(lead)

    async def _link_race_winner(
        self, organization_id: int, conversation_id: int, phone: str
    ) -> AlreadyExists[Lead]:
        leads = await self.lead_repo.list_for_organization(organization_id)
        lead = find_race_winner(leads, phone)
        if lead is None:
            raise StoreError(
                "Lead create conflicted but no lead was found",
                organization_id=organization_id,
                conversation_id=conversation_id,
            )
        await self.conversation_repo.link_lead(organization_id, conversation_id, lead.id)
        logger.info("Lead create lost race, linked existing lead", extra={"lead_id": lead.id})
        return AlreadyExists(lead)
