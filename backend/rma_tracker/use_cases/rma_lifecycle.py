"""RMA aggregate use-cases: create, read, scalar update and cascading delete."""
from __future__ import annotations

import logging
import secrets
import string
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.orm import Session, selectinload

from ..domain_errors import NotFoundError, ValidationError
from ..models import Customer, Device, Rma, ServiceCycle
from ..services.service_cycle_rules import (
    INITIAL_STATUS,
    next_last_update_date,
    normalize_optional_text,
    now_utc,
    validate_status,
)

logger = logging.getLogger(__name__)

RMA_ID_PREFIX = "RMA-"
RMA_ID_ALPHABET = string.ascii_uppercase + string.digits
RMA_ID_LENGTH = 6
RMA_ID_MAX_ATTEMPTS = 10
MAX_DEVICE_QUANTITY = 10000
UPDATABLE_FIELDS = ("date_of_incident", "date_of_report", "attachment")


@dataclass(frozen=True)
class DeviceInput:
    serial_number: str
    article_number: str | None = None
    quantity: int = 1


@dataclass(frozen=True)
class ServiceCycleInput:
    device_serial_number: str
    status: str = INITIAL_STATUS
    issue_description: str | None = None
    accessories_included: str | None = None


def hydrated_rma_query(db: Session):
    """RMA query with customer, devices, cycles and history eagerly loaded."""
    return db.query(Rma).options(
        selectinload(Rma.customer),
        selectinload(Rma.devices),
        selectinload(Rma.service_cycles).selectinload(ServiceCycle.history),
    )


def get_rma_or_404(*, db: Session, rma_id: str) -> Rma:
    rma = hydrated_rma_query(db).filter(Rma.id == rma_id).first()
    if not rma:
        raise NotFoundError(f"RMA with ID {rma_id} not found", code="RMA_NOT_FOUND")
    return rma


def list_customer_rmas(*, db: Session, customer_id: str) -> list[Rma]:
    return (
        hydrated_rma_query(db)
        .filter(Rma.customer_id == customer_id)
        .order_by(Rma.creation_date.desc())
        .all()
    )


def generate_rma_id(db: Session) -> str:
    """Short human-readable id, retried until unused."""
    for _ in range(RMA_ID_MAX_ATTEMPTS):
        suffix = "".join(secrets.choice(RMA_ID_ALPHABET) for _ in range(RMA_ID_LENGTH))
        candidate = f"{RMA_ID_PREFIX}{suffix}"
        if not db.query(Rma.id).filter(Rma.id == candidate).first():
            return candidate
    raise RuntimeError("Could not allocate a free RMA id")


def _validated_devices(devices: Sequence[DeviceInput]) -> list[Device]:
    if not devices:
        raise ValidationError("At least one device is required", code="RMA_DEVICES_REQUIRED", field="devices")

    seen: set[str] = set()
    duplicates: list[str] = []
    validated: list[Device] = []
    for index, device in enumerate(devices):
        serial = normalize_optional_text(device.serial_number)
        if serial is None:
            raise ValidationError(
                "Serial number is required",
                code="DEVICE_SERIAL_REQUIRED",
                field=f"devices[{index}].serialNumber",
            )
        quantity = device.quantity if device.quantity is not None else 1
        if quantity < 1 or quantity > MAX_DEVICE_QUANTITY:
            raise ValidationError(
                f"Quantity must be between 1 and {MAX_DEVICE_QUANTITY}",
                code="DEVICE_QUANTITY_INVALID",
                field=f"devices[{index}].quantity",
            )
        if serial in seen:
            duplicates.append(serial)
        seen.add(serial)
        validated.append(
            Device(
                serial_number=serial,
                article_number=normalize_optional_text(device.article_number),
                quantity=quantity,
            )
        )

    if duplicates:
        raise ValidationError(
            "Duplicate serial numbers are not allowed in the same RMA",
            code="DUPLICATE_DEVICE_SERIAL",
            field="devices",
            details={"serialNumbers": sorted(set(duplicates))},
        )
    return validated


def _validated_cycles(
    cycles: Sequence[ServiceCycleInput],
    *,
    device_serials: set[str],
    at: datetime,
) -> list[ServiceCycle]:
    if not cycles:
        raise ValidationError(
            "At least one service cycle is required",
            code="RMA_SERVICE_CYCLES_REQUIRED",
            field="serviceCycles",
        )

    validated: list[ServiceCycle] = []
    for index, cycle in enumerate(cycles):
        serial = normalize_optional_text(cycle.device_serial_number)
        if serial not in device_serials:
            raise ValidationError(
                f"Service cycle references non-existent device serial: {cycle.device_serial_number}",
                code="SERVICE_CYCLE_DEVICE_NOT_FOUND",
                field=f"serviceCycles[{index}].deviceSerialNumber",
            )
        validated.append(
            ServiceCycle(
                device_serial_number=serial,
                status=validate_status(cycle.status, field=f"serviceCycles[{index}].status"),
                creation_date=at,
                status_date=at,
                issue_description=normalize_optional_text(cycle.issue_description),
                accessories_included=normalize_optional_text(cycle.accessories_included),
            )
        )
    return validated


def create_rma_use_case(
    *,
    db: Session,
    customer_id: str,
    devices: Sequence[DeviceInput],
    service_cycles: Sequence[ServiceCycleInput],
    date_of_incident: date,
    date_of_report: date,
    is_injury_related: bool = False,
    injury_details: str | None = None,
    attachment: str | None = None,
) -> Rma:
    """Create RMA with its devices and initial service cycles as one unit.

    Nothing is added to the session until every check has passed, and the
    whole aggregate is committed at once.
    """
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFoundError(f"Customer with ID {customer_id} not found", code="CUSTOMER_NOT_FOUND")

    now = now_utc()
    device_rows = _validated_devices(devices)
    cycle_rows = _validated_cycles(
        service_cycles,
        device_serials={device.serial_number for device in device_rows},
        at=now,
    )

    details = normalize_optional_text(injury_details)
    if is_injury_related and details is None:
        raise ValidationError(
            "Injury details are required for injury-related RMAs",
            code="INJURY_DETAILS_REQUIRED",
            field="injuryDetails",
        )

    rma = Rma(
        id=generate_rma_id(db),
        customer_id=customer.id,
        creation_date=now,
        last_update_date=now,
        date_of_incident=date_of_incident,
        date_of_report=date_of_report,
        attachment=normalize_optional_text(attachment),
        is_injury_related=bool(is_injury_related),
        injury_details=details if is_injury_related else None,
    )
    rma.devices = device_rows
    rma.service_cycles = cycle_rows
    db.add(rma)

    db.commit()
    logger.info(
        "rma.created id=%s customer=%s devices=%d cycles=%d",
        rma.id,
        customer_id,
        len(device_rows),
        len(cycle_rows),
    )
    return get_rma_or_404(db=db, rma_id=rma.id)


def update_rma_use_case(*, db: Session, rma_id: str, changes: dict[str, Any]) -> Rma:
    """Update RMA-level scalar fields. last_update_date is always refreshed."""
    rma = get_rma_or_404(db=db, rma_id=rma_id)

    for field, value in changes.items():
        if field not in UPDATABLE_FIELDS:
            continue
        if field == "attachment":
            rma.attachment = normalize_optional_text(value)
        elif value is not None:
            setattr(rma, field, value)

    rma.last_update_date = next_last_update_date(rma.last_update_date)
    db.commit()
    return rma


def delete_rma_use_case(*, db: Session, rma_id: str) -> None:
    """Delete RMA together with devices, service cycles and their history."""
    rma = get_rma_or_404(db=db, rma_id=rma_id)
    db.delete(rma)
    db.commit()
    logger.info("rma.deleted id=%s", rma_id)
