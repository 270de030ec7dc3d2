"""Collapse duplicate conversations that share a normalized phone."""

import logging
from dataclasses import asdict, dataclass

from sqlalchemy import Row
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import InboxError, UniquenessRaceError
from taller_inbox.core.phone import (
    CANONICAL_MEXICO_LENGTH,
    MEXICO_COUNTRY_CODE,
    MEXICO_MOBILE_PREFIX,
    normalize_phone,
    phone_suffix,
)
from taller_inbox.core.tenant_context import bind_log_context
from taller_inbox.domain.services.conversation_store import ConversationStore
from taller_inbox.persistence.models.conversation import ConversationStatus
from taller_inbox.persistence.repositories.conversation_repository import ConversationRepository
from taller_inbox.persistence.repositories.lead_repository import LeadRepository
from taller_inbox.persistence.repositories.message_repository import MessageRepository

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationSummary:
    """Counts reported by one reconciliation run."""

    organization_id: int
    phones_normalized: int = 0
    conversations_merged: int = 0
    groups_processed: int = 0
    errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


def target_phone(members: list[Row]) -> str:
    """Phone a merged group ends up with.

    The country-coded mobile form wins; otherwise the oldest row's
    normalized phone is kept.
    """
    candidates = [normalize_phone(row.canonical_phone) for row in members]
    for candidate in candidates:
        if len(candidate) == CANONICAL_MEXICO_LENGTH and candidate.startswith(
            MEXICO_COUNTRY_CODE + MEXICO_MOBILE_PREFIX
        ):
            return candidate
    return candidates[0]


def group_by_phone(rows: list[Row]) -> dict[str, list[Row]]:
    """Group conversation rows that belong to the same customer.

    Rows match when their normalized phones share the last 10 digits, so
    national-only legacy rows join their country-coded twins. Input order
    is kept inside each group and groups are keyed by ``target_phone``.
    Rows whose phone has no digits are never grouped with anything.
    """
    buckets: dict[str, list[Row]] = {}
    for row in rows:
        key = phone_suffix(row.canonical_phone) or f"raw:{row.id}"
        buckets.setdefault(key, []).append(row)

    groups: dict[str, list[Row]] = {}
    for key, members in buckets.items():
        if key.startswith("raw:"):
            groups[key] = members
        else:
            groups[target_phone(members)] = members
    return groups


class DuplicateReconciliationJob:
    """Offline repair of legacy duplicate conversations for one organization.

    Must not run concurrently with itself or with live webhook traffic for
    the same organization. Safe to re-run: a second pass over repaired data
    changes nothing.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.conversation_repo = ConversationRepository(session)
        self.message_repo = MessageRepository(session)
        self.lead_repo = LeadRepository(session)
        self.conversation_store = ConversationStore(session)

    async def run(self, organization_id: int) -> ReconciliationSummary:
        """Normalize phones and merge duplicate conversations.

        Args:
            organization_id: Organization to repair

        Returns:
            Summary of what changed
        """
        summary = ReconciliationSummary(organization_id=organization_id)

        with bind_log_context(organization_id=organization_id):
            rows = await self.conversation_repo.list_for_reconciliation(organization_id)
            groups = group_by_phone(rows)
            logger.info(
                f"Reconciling {len(rows)} conversations in {len(groups)} phone groups"
            )

            for canonical_phone, members in groups.items():
                if canonical_phone.startswith("raw:"):
                    continue
                if len(members) == 1:
                    await self._normalize_conversation_phone(
                        organization_id, members[0], canonical_phone, summary
                    )
                else:
                    summary.groups_processed += 1
                    await self._merge_group(organization_id, canonical_phone, members, summary)

            logger.info("Reconciliation finished", extra=summary.to_dict())
        return summary

    async def _merge_group(
        self,
        organization_id: int,
        canonical_phone: str,
        members: list[Row],
        summary: ReconciliationSummary,
    ) -> None:
        survivor, duplicates = members[0], members[1:]
        survivor_lead_id = survivor.lead_id if survivor.is_lead else None
        reactivate = False

        with bind_log_context(organization_id=organization_id, conversation_id=survivor.id):
            for duplicate in duplicates:
                try:
                    moved = await self.message_repo.reassign(organization_id, duplicate.id, survivor.id)
                    await self.lead_repo.repoint_conversation(organization_id, duplicate.id, survivor.id)
                    await self.conversation_repo.delete_by_id(organization_id, duplicate.id)
                    if survivor_lead_id is None and duplicate.is_lead and duplicate.lead_id:
                        await self.conversation_repo.update_fields(
                            organization_id, survivor.id, is_lead=True, lead_id=duplicate.lead_id
                        )
                    await self.conversation_repo.commit(
                        organization_id=organization_id, conversation_id=duplicate.id
                    )
                except (InboxError, SQLAlchemyError) as e:
                    await self.session.rollback()
                    summary.errors += 1
                    logger.error(
                        f"Failed to merge duplicate conversation: {e}",
                        extra={"duplicate_conversation_id": duplicate.id},
                    )
                    continue

                if survivor_lead_id is None and duplicate.is_lead and duplicate.lead_id:
                    survivor_lead_id = duplicate.lead_id
                if duplicate.status == ConversationStatus.ACTIVE.value:
                    reactivate = True
                summary.conversations_merged += 1
                logger.info(
                    f"Merged duplicate conversation ({moved} messages moved)",
                    extra={"duplicate_conversation_id": duplicate.id},
                )

            # Runs only after the duplicates are gone so it cannot hit their active rows
            values = {}
            if survivor.canonical_phone != canonical_phone:
                values["canonical_phone"] = canonical_phone
            if reactivate and survivor.status != ConversationStatus.ACTIVE.value:
                values["status"] = ConversationStatus.ACTIVE.value
            if values:
                try:
                    await self.conversation_repo.update_fields(organization_id, survivor.id, **values)
                    await self.conversation_repo.commit(
                        organization_id=organization_id, conversation_id=survivor.id
                    )
                    if "canonical_phone" in values:
                        summary.phones_normalized += 1
                except UniquenessRaceError:
                    summary.errors += 1
                    logger.warning(
                        "Survivor phone still collides with an active conversation, leaving for next run"
                    )
                except (InboxError, SQLAlchemyError) as e:
                    await self.session.rollback()
                    summary.errors += 1
                    logger.error(f"Failed to update survivor conversation: {e}")

            if survivor_lead_id:
                await self._normalize_lead_phone(organization_id, survivor_lead_id, canonical_phone)

            try:
                count = await self.conversation_store.refresh_counters(organization_id, survivor.id)
            except InboxError as e:
                summary.errors += 1
                logger.error(f"Failed to recompute survivor counters: {e}")
            else:
                logger.info(f"Survivor now owns {count} messages")

    async def _normalize_conversation_phone(
        self,
        organization_id: int,
        row: Row,
        canonical_phone: str,
        summary: ReconciliationSummary,
    ) -> None:
        if row.canonical_phone == canonical_phone:
            return
        with bind_log_context(organization_id=organization_id, conversation_id=row.id):
            try:
                await self.conversation_repo.update_fields(
                    organization_id, row.id, canonical_phone=canonical_phone
                )
                await self.conversation_repo.commit(
                    organization_id=organization_id, conversation_id=row.id
                )
            except UniquenessRaceError:
                summary.errors += 1
                logger.warning("Normalized phone collides with an active conversation, skipping")
                return
            except (InboxError, SQLAlchemyError) as e:
                await self.session.rollback()
                summary.errors += 1
                logger.error(f"Failed to normalize conversation phone: {e}")
                return

            summary.phones_normalized += 1
            if row.is_lead and row.lead_id:
                await self._normalize_lead_phone(organization_id, row.lead_id, canonical_phone)

    async def _normalize_lead_phone(self, organization_id: int, lead_id: int, canonical_phone: str) -> None:
        lead = await self.lead_repo.get_by_id(organization_id, lead_id)
        if lead is None or lead.phone == canonical_phone:
            return
        try:
            await self.lead_repo.update_phone(organization_id, lead_id, canonical_phone)
        except UniquenessRaceError:
            logger.warning(
                "Another lead already has the normalized phone, skipping",
                extra={"lead_id": lead_id},
            )
        except InboxError as e:
            logger.error(f"Failed to normalize lead phone: {e}", extra={"lead_id": lead_id})
        else:
            logger.info("Normalized lead phone", extra={"lead_id": lead_id})
