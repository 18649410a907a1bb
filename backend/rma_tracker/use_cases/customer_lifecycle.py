"""Customer lifecycle use-cases, including the two customer deletion modes."""
from __future__ import annotations

import logging
import re
import uuid
from typing import Any

from sqlalchemy.orm import Session

from ..domain_errors import NotFoundError, ValidationError
from ..models import Customer, Rma
from ..services.service_cycle_rules import normalize_optional_text

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
UPDATABLE_FIELDS = ("name", "contact_person", "email", "phone", "address")


def generate_customer_id() -> str:
    return f"CUST-{uuid.uuid4().hex[:12].upper()}"


def _validated_name(name: str | None) -> str:
    cleaned = normalize_optional_text(name)
    if cleaned is None:
        raise ValidationError("Customer name is required", code="CUSTOMER_NAME_REQUIRED", field="name")
    return cleaned


def _validated_email(email: str | None) -> str | None:
    cleaned = normalize_optional_text(email)
    if cleaned is not None and not EMAIL_PATTERN.match(cleaned):
        raise ValidationError("Invalid email format", code="CUSTOMER_EMAIL_INVALID", field="email")
    return cleaned


def get_customer_or_404(*, db: Session, customer_id: str) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(
            f"Customer with ID {customer_id} not found",
            code="CUSTOMER_NOT_FOUND",
        )
    return customer


def count_customer_rmas(*, db: Session, customer_id: str) -> int:
    """Number of RMAs still referencing the customer (drives the delete-mode prompt)."""
    return db.query(Rma).filter(Rma.customer_id == customer_id).count()


def create_customer_use_case(
    *,
    db: Session,
    name: str,
    contact_person: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
) -> Customer:
    """Create customer after validating name and email shape."""
    customer = Customer(
        id=generate_customer_id(),
        name=_validated_name(name),
        contact_person=normalize_optional_text(contact_person),
        email=_validated_email(email),
        phone=normalize_optional_text(phone),
        address=normalize_optional_text(address),
    )
    db.add(customer)
    db.commit()
    logger.info("customer.created id=%s", customer.id)
    return customer


def update_customer_use_case(*, db: Session, customer_id: str, changes: dict[str, Any]) -> Customer:
    """Apply a partial update, re-validating every supplied field."""
    customer = get_customer_or_404(db=db, customer_id=customer_id)

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field == "name":
            customer.name = _validated_name(value)
        elif field == "email":
            customer.email = _validated_email(value)
        else:
            setattr(customer, field, normalize_optional_text(value))

    db.commit()
    return customer


def delete_customer_cascading(*, db: Session, customer_id: str) -> int:
    """Delete customer and every RMA referencing it. Returns the number of RMAs removed."""
    customer = get_customer_or_404(db=db, customer_id=customer_id)

    rmas = db.query(Rma).filter(Rma.customer_id == customer_id).all()
    for rma in rmas:
        # ORM cascade removes devices, cycles and history with the RMA.
        db.delete(rma)
    db.delete(customer)

    db.commit()
    logger.info("customer.deleted id=%s mode=cascade rmas=%d", customer_id, len(rmas))
    return len(rmas)


def delete_customer_with_preservation(*, db: Session, customer_id: str) -> int:
    """Snapshot customer identity onto its RMAs, detach them, then delete the customer.

    Returns the number of RMAs preserved.
    """
    customer = get_customer_or_404(db=db, customer_id=customer_id)

    preserved = db.query(Rma).filter(Rma.customer_id == customer_id).update(
        {
            "customer_name": customer.name,
            "customer_email": customer.email,
            "customer_phone": customer.phone,
            "customer_id": None,
        },
        synchronize_session="fetch",
    )
    db.delete(customer)

    db.commit()
    logger.info("customer.deleted id=%s mode=preserve rmas=%d", customer_id, preserved)
    return int(preserved or 0)
