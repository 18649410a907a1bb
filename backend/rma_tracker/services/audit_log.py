"""Append-only audit log.

Appends are best-effort: they run after the business transaction has been
committed, in their own commit, and report failure as a returned
``AuditWriteFailure`` instead of raising.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import AuditLog

logger = logging.getLogger(__name__)


class AuditAction(str, Enum):
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    VIEW = "VIEW"


class AuditEntity(str, Enum):
    USER = "USER"
    CUSTOMER = "CUSTOMER"
    RMA = "RMA"
    SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class AuditWriteFailure:
    """Outcome of an audit append that could not be stored."""

    action: str
    entity: str
    entity_id: str | None
    reason: str


def _serialize_details(details: Any) -> str | None:
    if details is None:
        return None
    if isinstance(details, str):
        return details
    return json.dumps(details, default=str, sort_keys=True)


def record_audit_event(
    db: Session,
    *,
    user_id: str,
    action: AuditAction | str,
    entity: AuditEntity | str,
    entity_id: str | None = None,
    details: Any = None,
    ip_address: str | None = None,
) -> AuditWriteFailure | None:
    """Append one audit entry. Never raises for storage or serialization errors."""
    action_value = AuditAction(action).value
    entity_value = AuditEntity(entity).value
    try:
        db.add(
            AuditLog(
                user_id=user_id,
                action=action_value,
                entity=entity_value,
                entity_id=entity_id,
                details=_serialize_details(details),
                ip_address=ip_address,
            )
        )
        db.commit()
    except (SQLAlchemyError, TypeError, ValueError) as exc:
        db.rollback()
        logger.exception(
            "Failed to write audit log entry action=%s entity=%s entity_id=%s",
            action_value,
            entity_value,
            entity_id,
        )
        return AuditWriteFailure(
            action=action_value,
            entity=entity_value,
            entity_id=entity_id,
            reason=str(exc),
        )

    logger.info("audit %s on %s id=%s by %s", action_value, entity_value, entity_id, user_id)
    return None


def query_audit_log(
    db: Session,
    *,
    limit: int = 50,
    offset: int = 0,
    user_id: str | None = None,
    action: str | None = None,
    entity: str | None = None,
) -> tuple[list[AuditLog], int]:
    """Entries newest first plus the total matching the filters."""
    query = db.query(AuditLog)
    if user_id:
        query = query.filter(AuditLog.user_id == user_id)
    if action:
        query = query.filter(AuditLog.action == action)
    if entity:
        query = query.filter(AuditLog.entity == entity)

    total = query.count()
    entries = (
        query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return entries, total
