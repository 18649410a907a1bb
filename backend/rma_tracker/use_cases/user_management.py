"""Admin-side user management: profile and role edits, activation, removal.

Accounts are provisioned by the identity service. These use-cases only
maintain the local copy, and always keep at least one active admin.
"""
from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.orm import Session

from ..domain_errors import DomainError, NotFoundError, ValidationError
from ..models import USER_ROLES, User
from ..services.service_cycle_rules import normalize_optional_text
from .customer_lifecycle import EMAIL_PATTERN

logger = logging.getLogger(__name__)

ADMIN_ROLE = "ADMIN"


def _forbidden(message: str, code: str) -> DomainError:
    return DomainError(code=code, http_status=403, message=message)


def _is_last_active_admin(db: Session, user: User) -> bool:
    if user.role != ADMIN_ROLE or not user.is_active:
        return False
    others = (
        db.query(User)
        .filter(User.role == ADMIN_ROLE, User.is_active.is_(True), User.id != user.id)
        .count()
    )
    return others == 0


def _validated_role(role: str | None) -> str:
    canonical = (normalize_optional_text(role) or "").upper()
    if canonical not in USER_ROLES:
        raise ValidationError(
            f"Unknown role: {role!r}",
            code="USER_ROLE_INVALID",
            field="role",
            details={"allowed": list(USER_ROLES)},
        )
    return canonical


def _validated_email(db: Session, user: User, email: str | None) -> str:
    cleaned = (normalize_optional_text(email) or "").lower()
    if not EMAIL_PATTERN.match(cleaned):
        raise ValidationError("Invalid email format", code="USER_EMAIL_INVALID", field="email")
    taken = db.query(User).filter(User.email == cleaned, User.id != user.id).first()
    if taken:
        raise DomainError(
            code="USER_EMAIL_TAKEN",
            http_status=409,
            message="Email is already used by another account",
            details={"field": "email"},
        )
    return cleaned


def list_users(*, db: Session) -> list[User]:
    return db.query(User).order_by(User.name, User.email).all()


def get_user_or_404(*, db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError(f"User with ID {user_id} not found", code="USER_NOT_FOUND")
    return user


def update_user_use_case(*, db: Session, actor: User, user_id: str, changes: dict[str, Any]) -> User:
    """Partial update of name, email and role.

    Admins cannot change their own role, and the last active admin cannot be demoted.
    """
    user = get_user_or_404(db=db, user_id=user_id)

    if changes.get("role") is not None:
        role = _validated_role(changes["role"])
        if role != user.role:
            if user.id == actor.id:
                raise _forbidden("Cannot change your own role", "USER_SELF_ROLE_CHANGE")
            if _is_last_active_admin(db, user):
                raise _forbidden("Cannot demote the last admin account", "USER_LAST_ADMIN")
        user.role = role

    if "name" in changes:
        name = normalize_optional_text(changes["name"])
        if name is None:
            raise ValidationError("User name is required", code="USER_NAME_REQUIRED", field="name")
        user.name = name

    if "email" in changes:
        user.email = _validated_email(db, user, changes["email"])

    db.commit()
    logger.info("user.updated id=%s by=%s", user.id, actor.id)
    return user


def set_user_active_use_case(*, db: Session, actor: User, user_id: str, is_active: bool) -> User:
    user = get_user_or_404(db=db, user_id=user_id)

    if not is_active:
        if user.id == actor.id:
            raise _forbidden("Cannot deactivate your own account", "USER_SELF_DEACTIVATION")
        if _is_last_active_admin(db, user):
            raise _forbidden("Cannot deactivate the last admin account", "USER_LAST_ADMIN")

    user.is_active = is_active
    db.commit()
    logger.info("user.status_changed id=%s active=%s by=%s", user.id, is_active, actor.id)
    return user


def delete_user_use_case(*, db: Session, actor: User, user_id: str) -> None:
    user = get_user_or_404(db=db, user_id=user_id)

    if user.id == actor.id:
        raise _forbidden("Cannot delete your own account", "USER_SELF_DELETION")
    if _is_last_active_admin(db, user):
        raise _forbidden("Cannot delete the last admin account", "USER_LAST_ADMIN")

    db.delete(user)
    db.commit()
    logger.info("user.deleted id=%s by=%s", user_id, actor.id)
