"""Operator notification store and best-effort emitter."""
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain_errors import NotFoundError
from ..models import Notification

logger = logging.getLogger(__name__)

PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"


def _serialize_metadata(metadata: Any) -> str | None:
    if metadata is None:
        return None
    if isinstance(metadata, str):
        return metadata
    return json.dumps(metadata, default=str, sort_keys=True)


def _get_notification_or_404(db: Session, notification_id: str) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise NotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")
    return notification


def create_notification(db: Session, *, type: str, message: str, metadata: Any = None) -> Notification:
    notification = Notification(
        type=type,
        message=message,
        meta_data=_serialize_metadata(metadata),
        is_read=False,
    )
    db.add(notification)
    db.commit()
    return notification


def emit_notification(db: Session, *, type: str, message: str, metadata: Any = None) -> Notification | None:
    """Best-effort variant of create_notification: None means it was not stored."""
    try:
        return create_notification(db, type=type, message=message, metadata=metadata)
    except (SQLAlchemyError, TypeError, ValueError):
        db.rollback()
        logger.exception("Failed to emit %s notification", type)
        return None


def list_notifications(db: Session, *, limit: int = 50, offset: int = 0) -> list[Notification]:
    return (
        db.query(Notification)
        .order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


def list_unread_notifications(db: Session) -> list[Notification]:
    return (
        db.query(Notification)
        .filter(Notification.is_read.is_(False))
        .order_by(Notification.created_at.desc())
        .all()
    )


def count_unread_notifications(db: Session) -> int:
    return db.query(Notification).filter(Notification.is_read.is_(False)).count()


def mark_notification_read(db: Session, notification_id: str) -> Notification:
    notification = _get_notification_or_404(db, notification_id)
    notification.is_read = True
    db.commit()
    return notification


def mark_all_notifications_read(db: Session) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.is_read.is_(False))
        .update({"is_read": True}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)


def delete_notification(db: Session, notification_id: str) -> None:
    notification = _get_notification_or_404(db, notification_id)
    db.delete(notification)
    db.commit()
