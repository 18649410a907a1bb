"""User management endpoints (admin only)."""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from ..auth import PermissionChecker
from ..database import get_db
from ..models import User
from ..schemas import MessageResponse, UserResponse, UserStatusUpdate, UserUpdate
from ..security import audit_request
from ..services.audit_log import AuditAction, AuditEntity
from ..use_cases.user_management import (
    delete_user_use_case,
    get_user_or_404,
    list_users,
    set_user_active_use_case,
    update_user_use_case,
)

router = APIRouter(prefix="/users", tags=["users"])

manage_users = PermissionChecker("canManageUsers")


@router.get("", response_model=list[UserResponse])
def get_users(
    current_user: User = Depends(manage_users),
    db: Session = Depends(get_db),
):
    return [UserResponse.model_validate(user) for user in list_users(db=db)]


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: str,
    current_user: User = Depends(manage_users),
    db: Session = Depends(get_db),
):
    return UserResponse.model_validate(get_user_or_404(db=db, user_id=user_id))


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    data: UserUpdate,
    request: Request,
    current_user: User = Depends(manage_users),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    user = update_user_use_case(db=db, actor=current_user, user_id=user_id, changes=changes)
    response = UserResponse.model_validate(user)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.USER,
        entity_id=user_id,
        status_code=200,
        extra={"fields": sorted(changes)},
    )
    return response


@router.patch("/{user_id}/status", response_model=UserResponse)
def update_user_status(
    user_id: str,
    data: UserStatusUpdate,
    request: Request,
    current_user: User = Depends(manage_users),
    db: Session = Depends(get_db),
):
    """Activate or deactivate an account."""
    user = set_user_active_use_case(db=db, actor=current_user, user_id=user_id, is_active=data.is_active)
    response = UserResponse.model_validate(user)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.USER,
        entity_id=user_id,
        status_code=200,
        extra={"isActive": data.is_active},
    )
    return response


@router.delete("/{user_id}", response_model=MessageResponse)
def delete_user(
    user_id: str,
    request: Request,
    current_user: User = Depends(manage_users),
    db: Session = Depends(get_db),
):
    delete_user_use_case(db=db, actor=current_user, user_id=user_id)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.DELETE,
        entity=AuditEntity.USER,
        entity_id=user_id,
        status_code=200,
    )
    return MessageResponse(message="User deleted successfully")
