"""
Action Log API Endpoints.

Read-only view of the audit trail written by account and document changes.
"""

from typing import Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.db.session import get_db
from backend.app.schemas.audit import ActionLogResponse, ActionLogListResponse
from backend.app.services.audit import get_audit_trail, count_audit_trail

router = APIRouter(prefix="/action-logs", tags=["Action Logs"])


@router.get("", response_model=ActionLogListResponse)
async def list_action_logs(
    action: Optional[str] = Query(None, description="Filter by action type"),
    entity_type: Optional[str] = Query(None, description="Filter by collection, e.g. payments"),
    entity_id: Optional[int] = Query(None, description="Filter by record ID"),
    actor: Optional[str] = Query(None, description="Filter by acting user"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(100, ge=1, le=500, description="Items per page"),
    db: AsyncSession = Depends(get_db)
):
    """
    Get the action log, most recent first.

    Document entries carry the account balance before and after the change
    in their metadata.
    """
    filters = dict(action=action, entity_type=entity_type, entity_id=entity_id, actor_username=actor)
    logs = await get_audit_trail(db=db, limit=page_size, offset=(page - 1) * page_size, **filters)
    total = await count_audit_trail(db=db, **filters)

    return ActionLogListResponse(
        logs=[ActionLogResponse.model_validate(log) for log in logs],
        total=total,
        page=page,
        page_size=page_size
    )
