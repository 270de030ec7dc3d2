"""Leads API endpoints."""

import logging
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.api.deps import require_organization
from taller_inbox.domain.services.lead_converter import DEFAULT_LEAD_SOURCE, LeadConverter
from taller_inbox.domain.services.lead_service import LeadService
from taller_inbox.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class LeadResponse(BaseModel):
    """Lead response model."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    organization_id: int
    name: str | None
    phone: str
    email: str | None
    estimated_value: float
    source: str
    assigned_to: str | None
    notes: str | None
    status: str
    whatsapp_conversation_id: int | None
    created_at: datetime
    converted_at: datetime | None


class LeadsListResponse(BaseModel):
    """Leads list response."""

    success: bool = True
    data: list[LeadResponse]
    total: int


class LeadResultResponse(BaseModel):
    """Single lead response."""

    success: bool = True
    data: LeadResponse


class ConvertedLeadResponse(LeadResultResponse):
    """Lead conversion result; ``existing`` marks an earlier or concurrent conversion."""

    existing: bool


class ConvertConversationRequest(BaseModel):
    """Convert-conversation request."""

    conversation_id: int
    estimated_value: float = Field(default=0, ge=0)
    assigned_to: str | None = None
    notes: str | None = None
    lead_source: str = DEFAULT_LEAD_SOURCE


class LeadStatusUpdate(BaseModel):
    """Lead status update request."""

    status: str  # new, contacted, qualified, appointment, converted, lost


class LeadStatsResponse(BaseModel):
    """Pipeline statistics."""

    total: int
    by_status: dict[str, int]
    conversion_rate: float
    loss_rate: float
    total_value: float
    converted_value: float
    average_value: float


@router.get("", response_model=LeadsListResponse)
async def list_leads(
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_id: Annotated[int, Depends(require_organization)],
    status: str | None = Query(None),
) -> LeadsListResponse:
    """List leads for the current organization, optionally filtered by status."""
    leads = await LeadService(db).list_leads(organization_id, status=status)
    return LeadsListResponse(
        data=[LeadResponse.model_validate(lead) for lead in leads],
        total=len(leads),
    )


@router.get("/stats", response_model=LeadStatsResponse)
async def get_lead_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_id: Annotated[int, Depends(require_organization)],
    time_filter: str = Query("all"),
) -> LeadStatsResponse:
    """Pipeline statistics for leads created within ``time_filter``."""
    stats = await LeadService(db).get_stats(organization_id, time_filter)
    return LeadStatsResponse(**stats)


@router.post("/from-conversation", response_model=ConvertedLeadResponse)
async def convert_conversation_to_lead(
    request: ConvertConversationRequest,
    response: Response,
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_id: Annotated[int, Depends(require_organization)],
) -> ConvertedLeadResponse:
    """Convert a WhatsApp conversation into a lead.

    Returns 201 when this call created the lead and 200 when the customer
    was already converted, by this conversation or a concurrent request.
    """
    result = await LeadConverter(db).convert(
        organization_id,
        request.conversation_id,
        estimated_value=request.estimated_value,
        assigned_to=request.assigned_to,
        notes=request.notes,
        lead_source=request.lead_source,
    )
    response.status_code = status.HTTP_200_OK if result.existing else status.HTTP_201_CREATED
    return ConvertedLeadResponse(
        data=LeadResponse.model_validate(result.value),
        existing=result.existing,
    )


@router.put("/{lead_id}/status", response_model=LeadResultResponse)
async def update_lead_status(
    lead_id: int,
    update: LeadStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    organization_id: Annotated[int, Depends(require_organization)],
) -> LeadResultResponse:
    """Move a lead to another pipeline stage."""
    lead = await LeadService(db).update_status(organization_id, lead_id, update.status)
    return LeadResultResponse(data=LeadResponse.model_validate(lead))
