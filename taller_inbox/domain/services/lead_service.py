"""Lead pipeline: status transitions, listing and statistics."""

import calendar
import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.core.errors import LeadNotFoundError, ValidationError
from taller_inbox.persistence.models.lead import LEAD_STATUSES, Lead, LeadStatus
from taller_inbox.persistence.repositories.lead_repository import LeadRepository

logger = logging.getLogger(__name__)

TIME_FILTERS = ("all", "today", "week", "month", "quarter", "year")


def _months_ago(now: datetime, months: int) -> datetime:
    month_index = now.month - 1 - months
    year = now.year + month_index // 12
    month = month_index % 12 + 1
    day = min(now.day, calendar.monthrange(year, month)[1])
    return now.replace(year=year, month=month, day=day)


def time_filter_start(time_filter: str, now: datetime | None = None) -> datetime | None:
    """Earliest created_at included by a stats time filter.

    Args:
        time_filter: One of all, today, week, month, quarter, year
        now: Reference time (naive UTC), defaults to utcnow

    Returns:
        Lower bound, or None for ``all``

    Raises:
        ValidationError: Unknown filter
    """
    if time_filter not in TIME_FILTERS:
        raise ValidationError(f"Invalid time filter: {time_filter}")
    now = now or datetime.utcnow()
    if time_filter == "today":
        return now.replace(hour=0, minute=0, second=0, microsecond=0)
    if time_filter == "week":
        return now - timedelta(days=7)
    if time_filter == "month":
        return _months_ago(now, 1)
    if time_filter == "quarter":
        return _months_ago(now, 3)
    if time_filter == "year":
        return _months_ago(now, 12)
    return None


def compute_lead_stats(leads: list[Lead]) -> dict[str, Any]:
    """Aggregate pipeline statistics over a list of leads."""
    total = len(leads)
    by_status = {status: 0 for status in LEAD_STATUSES}
    total_value = Decimal("0")
    converted_value = Decimal("0")

    for lead in leads:
        if lead.status in by_status:
            by_status[lead.status] += 1
        value = Decimal(lead.estimated_value or 0)
        total_value += value
        if lead.status == LeadStatus.CONVERTED.value:
            converted_value += value

    def rate(count: int) -> float:
        return round(count / total * 100, 2) if total else 0.0

    return {
        "total": total,
        "by_status": by_status,
        "conversion_rate": rate(by_status[LeadStatus.CONVERTED.value]),
        "loss_rate": rate(by_status[LeadStatus.LOST.value]),
        "total_value": float(total_value),
        "converted_value": float(converted_value),
        "average_value": round(float(total_value) / total, 2) if total else 0.0,
    }


class LeadService:
    """Service for the sales pipeline view of leads."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.lead_repo = LeadRepository(session)

    async def list_leads(self, organization_id: int, status: str | None = None) -> list[Lead]:
        """List leads, optionally by status.

        Raises:
            ValidationError: Unknown status
        """
        if status and status not in LEAD_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        return await self.lead_repo.list_for_organization(organization_id, status=status)

    async def update_status(self, organization_id: int, lead_id: int, status: str) -> Lead:
        """Move a lead to another pipeline stage.

        Args:
            organization_id: Organization ID
            lead_id: Lead ID
            status: Target status

        Returns:
            Updated lead

        Raises:
            ValidationError: Unknown status
            LeadNotFoundError: Lead is not in the organization
        """
        if status not in LEAD_STATUSES:
            raise ValidationError(
                f"Invalid status. Must be one of: {', '.join(LEAD_STATUSES)}",
                lead_id=lead_id,
            )
        lead = await self.lead_repo.get_by_id(organization_id, lead_id)
        if lead is None:
            raise LeadNotFoundError(organization_id, lead_id)

        previous = lead.status
        await self.lead_repo.update_status(organization_id, lead_id, status)
        await self.session.refresh(lead)
        logger.info(
            f"Lead status changed {previous} -> {status}",
            extra={"organization_id": organization_id, "lead_id": lead_id},
        )
        return lead

    async def get_stats(self, organization_id: int, time_filter: str = "all") -> dict[str, Any]:
        """Pipeline statistics for leads created within the time filter."""
        since = time_filter_start(time_filter)
        leads = await self.lead_repo.list_for_organization(organization_id, created_since=since)
        return compute_lead_stats(leads)
