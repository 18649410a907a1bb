"""Password-reset request: store a reset token and tell the admins."""
from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from urllib.parse import urlencode

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..models import Notification, User
from ..services.notifications import PASSWORD_RESET_REQUEST, emit_notification
from ..services.service_cycle_rules import now_utc

logger = logging.getLogger(__name__)


def request_password_reset_use_case(*, db: Session, email: str) -> tuple[User | None, Notification | None]:
    """Record a reset request for an active user.

    Unknown or inactive emails are accepted silently so the endpoint cannot be
    used to probe for accounts. The notification is best-effort.
    """
    normalized = (email or "").strip().lower()
    user = db.query(User).filter(
        func.lower(User.email) == normalized,
        User.is_active.is_(True),
    ).first()
    if not user:
        logger.info("auth.password_reset_requested unknown_or_inactive=true")
        return None, None

    now = now_utc()
    reset_token = secrets.token_hex(32)
    user.reset_token = reset_token
    user.reset_token_expiry = now + timedelta(minutes=settings.PASSWORD_RESET_TOKEN_TTL_MINUTES)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Failed to persist password reset token")
        raise

    reset_url = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?{urlencode({'token': reset_token})}"
    notification = emit_notification(
        db,
        type=PASSWORD_RESET_REQUEST,
        message=f"Password reset requested for {user.name} ({user.email})",
        metadata={
            "email": user.email,
            "userName": user.name,
            "resetToken": reset_token,
            "resetUrl": reset_url,
            "timestamp": now.isoformat(),
        },
    )
    return user, notification
