"""Audit log endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import AuditLogEntryResponse, AuditLogListResponse
from ..services.audit_log import query_audit_log

router = APIRouter(prefix="/audit-logs", tags=["audit"])


@router.get("", response_model=AuditLogListResponse)
def get_audit_logs(
    limit: int = Query(50, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    user_id: Optional[str] = Query(None, alias="userId"),
    action: Optional[str] = None,
    entity: Optional[str] = None,
    current_user: User = Depends(PermissionChecker("canViewAudit")),
    db: Session = Depends(get_db),
):
    """Get audit entries newest first (optionally filtered by actor, action, entity)."""
    entries, total = query_audit_log(
        db,
        limit=limit,
        offset=offset,
        user_id=user_id,
        action=action.upper() if action else None,
        entity=entity.upper() if entity else None,
    )
    return AuditLogListResponse(
        data=[AuditLogEntryResponse.model_validate(entry) for entry in entries],
        total=total,
        limit=limit,
        offset=offset,
    )
