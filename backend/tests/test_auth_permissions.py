from __future__ import annotations

import time
from types import SimpleNamespace

import pytest
from fastapi import HTTPException
from fastapi.testclient import TestClient
from jose import jwt

from rma_tracker.auth import (
    ROLE_PERMISSIONS,
    PermissionChecker,
    check_permission,
    decode_token,
)
from rma_tracker.config import settings
from rma_tracker.database import get_db
from rma_tracker.main import app


def _token(*, sub="user-admin", exp_offset=3600, iat_offset=0, secret=None, **extra) -> str:
    now = int(time.time())
    claims = {"sub": sub, "iat": now + iat_offset, "exp": now + exp_offset, **extra}
    return jwt.encode(claims, secret or settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


@pytest.mark.parametrize(
    ("role", "expected"),
    [
        (
            "ADMIN",
            {
                "canManageRmas": True,
                "canManageCustomers": True,
                "canDeleteData": True,
                "canViewAudit": True,
                "canManageNotifications": True,
                "canManageUsers": True,
            },
        ),
        (
            "USER",
            {
                "canManageRmas": True,
                "canManageCustomers": True,
                "canDeleteData": True,
                "canViewAudit": False,
                "canManageNotifications": False,
                "canManageUsers": False,
            },
        ),
    ],
)
def test_role_permission_matrix(role, expected) -> None:
    assert ROLE_PERMISSIONS[role] == expected


def test_unknown_role_or_permission_is_denied() -> None:
    assert check_permission(SimpleNamespace(role="GUEST"), "canManageRmas") is False
    assert check_permission(SimpleNamespace(role="ADMIN"), "canLaunchRockets") is False


def test_permission_checker_raises_403_for_missing_permission() -> None:
    checker = PermissionChecker("canViewAudit")
    with pytest.raises(HTTPException) as exc_info:
        checker(current_user=SimpleNamespace(role="USER"))
    assert exc_info.value.status_code == 403


def test_permission_checker_passes_user_through() -> None:
    user = SimpleNamespace(role="ADMIN")
    assert PermissionChecker("canViewAudit")(current_user=user) is user


def test_decode_token_accepts_valid_token() -> None:
    assert decode_token(_token())["sub"] == "user-admin"


def test_decode_token_tolerates_small_clock_skew() -> None:
    payload = decode_token(_token(exp_offset=-(settings.JWT_LEEWAY_SECONDS - 5)))
    assert payload["sub"] == "user-admin"


@pytest.mark.parametrize(
    "token_kwargs",
    [
        {"exp_offset": -3600},
        {"iat_offset": 3600},
        {"secret": "some-other-secret"},
    ],
)
def test_decode_token_rejects_bad_tokens(token_kwargs) -> None:
    with pytest.raises(HTTPException) as exc_info:
        decode_token(_token(**token_kwargs))
    assert exc_info.value.status_code == 401


def test_decode_token_requires_exp() -> None:
    token = jwt.encode({"sub": "user-admin"}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(HTTPException):
        decode_token(token)


@pytest.fixture
def token_client(db):
    def _get_db():
        yield db

    app.dependency_overrides[get_db] = _get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


def test_bearer_token_resolves_active_user(token_client, admin_user) -> None:
    response = token_client.get(
        "/api/v1/audit-logs",
        headers={"Authorization": f"Bearer {_token(sub=admin_user.id)}"},
    )
    assert response.status_code == 200


def test_bearer_token_for_inactive_user_is_rejected(token_client, db, admin_user) -> None:
    admin_user.is_active = False
    db.commit()

    response = token_client.get(
        "/api/v1/rmas",
        headers={"Authorization": f"Bearer {_token(sub=admin_user.id)}"},
    )
    assert response.status_code == 401


def test_bearer_token_for_regular_user_cannot_read_audit(token_client, regular_user) -> None:
    response = token_client.get(
        "/api/v1/audit-logs",
        headers={"Authorization": f"Bearer {_token(sub=regular_user.id)}"},
    )
    assert response.status_code == 403
