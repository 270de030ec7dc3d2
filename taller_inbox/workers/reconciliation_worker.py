"""Duplicate conversation reconciliation worker.

Operator-triggered, one organization per call. Must not overlap with live
webhook traffic for that organization.
"""

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from taller_inbox.api.deps import require_admin
from taller_inbox.domain.services.reconciliation import DuplicateReconciliationJob
from taller_inbox.persistence.database import get_db

logger = logging.getLogger(__name__)

router = APIRouter()


class ReconcileRequest(BaseModel):
    """Reconciliation task payload."""

    organization_id: int


@router.post("/reconcile-conversations")
async def reconcile_conversations_task(
    request: ReconcileRequest,
    db: Annotated[AsyncSession, Depends(get_db)],
    _admin: Annotated[dict[str, Any], Depends(require_admin)],
) -> dict[str, Any]:
    """Merge duplicate conversations and normalize phones for one organization."""
    logger.info(
        "Reconciliation requested",
        extra={"organization_id": request.organization_id},
    )
    summary = await DuplicateReconciliationJob(db).run(request.organization_id)
    return summary.to_dict()
