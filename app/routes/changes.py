"""
Audit trail endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional

from app.core.database import get_session
from app.core.security import require_admin
from app.handlers.audit import get_audit_entries, set_audit_status
from app.handlers.auth import ActorContext
from app.models.audit import AuditEntryRead, AuditStatus, AuditStatusUpdate

router = APIRouter(prefix="/changes", tags=["changes"])


@router.get("", response_model=List[AuditEntryRead])
async def list_changes_endpoint(
    status_filter: Optional[AuditStatus] = Query(default=None, alias="status"),
    entity_type: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Audit entries, newest first."""
    return await get_audit_entries(session, status_filter, entity_type, limit)


@router.patch("/{entry_id}/status", response_model=AuditEntryRead)
async def review_change_endpoint(
    entry_id: int,
    review: AuditStatusUpdate,
    actor: ActorContext = Depends(require_admin),
    session: AsyncSession = Depends(get_session)
):
    """Accept or revert a pending change."""
    try:
        return await set_audit_status(session, entry_id, review.status)
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
