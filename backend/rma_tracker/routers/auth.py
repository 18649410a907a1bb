"""Auth endpoints.

Login and token issuance live in the identity service; this router only
accepts password-reset requests.
"""
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas import ForgotPasswordRequest, MessageResponse
from ..security import audit_request
from ..services.audit_log import AuditAction, AuditEntity
from ..use_cases.password_reset import request_password_reset_use_case

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If an account with that email exists, a password reset request has been sent"


@router.post("/forgot-password", response_model=MessageResponse)
def forgot_password(
    data: ForgotPasswordRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Record a reset request. The response never reveals whether the email exists."""
    user, notification = request_password_reset_use_case(db=db, email=data.email)
    if user is not None:
        if notification is None:
            logger.warning("Password reset stored for user %s but admin notification failed", user.id)
        # Unauthenticated request: the requesting user is the actor.
        audit_request(
            db,
            request,
            actor=user,
            action=AuditAction.UPDATE,
            entity=AuditEntity.USER,
            entity_id=user.id,
            status_code=200,
            extra={"event": "password_reset_requested"},
        )
    return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)
