"""Request-level security helpers (client IP resolution and actor audit trail)."""

from __future__ import annotations

import ipaddress

from fastapi import Request
from sqlalchemy.orm import Session

from .config import settings
from .models import User
from .services.audit_log import AuditAction, AuditEntity, AuditWriteFailure, record_audit_event


def get_client_ip(request: Request) -> str:
    if settings.TRUST_PROXY_HEADERS:
        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            try:
                ipaddress.ip_address(real_ip)
                return real_ip
            except ValueError:
                pass

        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            # X-Forwarded-For may contain a list: client, proxy1, proxy2
            candidate = forwarded.split(",")[0].strip()
            try:
                ipaddress.ip_address(candidate)
                return candidate
            except ValueError:
                pass

    if request.client:
        return request.client.host
    return "unknown"


def audit_request(
    db: Session,
    request: Request,
    *,
    actor: User,
    action: AuditAction,
    entity: AuditEntity,
    entity_id: str | None,
    status_code: int,
    extra: dict | None = None,
) -> AuditWriteFailure | None:
    """Audit a successful mutating request on behalf of the authenticated actor."""
    details: dict[str, object] = {
        "method": request.method,
        "url": str(request.url.path),
        "statusCode": status_code,
    }
    if extra:
        details.update(extra)
    return record_audit_event(
        db,
        user_id=actor.id,
        action=action,
        entity=entity,
        entity_id=entity_id,
        details=details,
        ip_address=get_client_ip(request),
    )
