"""Service-cycle use-cases: status changes with history, and re-opening devices."""
from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.orm import Session, selectinload

from ..domain_errors import NotFoundError, ValidationError
from ..models import Rma, ServiceCycle, ServiceHistory
from ..services.service_cycle_rules import (
    INITIAL_STATUS,
    next_last_update_date,
    normalize_optional_text,
    now_utc,
    select_active_cycle,
    validate_status,
)
from .rma_lifecycle import get_rma_or_404

logger = logging.getLogger(__name__)


def _apply_status_change(
    *,
    rma: Rma,
    cycle: ServiceCycle,
    new_status: str,
    notes: str | None,
) -> datetime:
    """Status, history append and RMA bump, staged for a single commit."""
    now = now_utc()
    canonical = validate_status(new_status, field="newStatus")

    cycle.status = canonical
    cycle.status_date = now
    cycle.history.append(
        ServiceHistory(
            status=canonical,
            date=now,
            notes=normalize_optional_text(notes),
        )
    )
    rma.last_update_date = next_last_update_date(rma.last_update_date, at=now)
    return rma.last_update_date


def update_cycle_status_by_serial_use_case(
    *,
    db: Session,
    rma_id: str,
    device_serial_number: str,
    new_status: str,
    notes: str | None = None,
) -> datetime:
    """Move the device's active cycle to ``new_status``. Returns the new last_update_date.

    Backward moves are accepted; every call appends one history event.
    """
    rma = get_rma_or_404(db=db, rma_id=rma_id)
    serial = normalize_optional_text(device_serial_number)
    cycle = select_active_cycle(rma.service_cycles, serial)
    if cycle is None:
        raise NotFoundError(
            f"Service cycle not found for device: {device_serial_number}",
            code="SERVICE_CYCLE_NOT_FOUND",
            details={"rmaId": rma_id, "deviceSerialNumber": serial},
        )

    old_status = cycle.status
    last_update_date = _apply_status_change(
        rma=rma,
        cycle=cycle,
        new_status=new_status,
        notes=notes,
    )
    db.commit()
    logger.info(
        "service_cycle.status_changed rma=%s cycle=%s serial=%s %s -> %s",
        rma_id,
        cycle.id,
        serial,
        old_status,
        cycle.status,
    )
    return last_update_date


def update_cycle_status_use_case(
    *,
    db: Session,
    cycle_id: int,
    new_status: str,
    notes: str | None = None,
) -> ServiceCycle:
    """Same transition as the serial-addressed variant, addressed by cycle id."""
    cycle = (
        db.query(ServiceCycle)
        .options(selectinload(ServiceCycle.history), selectinload(ServiceCycle.rma))
        .filter(ServiceCycle.id == cycle_id)
        .first()
    )
    if not cycle:
        raise NotFoundError(
            f"Service cycle with ID {cycle_id} not found",
            code="SERVICE_CYCLE_NOT_FOUND",
        )

    _apply_status_change(rma=cycle.rma, cycle=cycle, new_status=new_status, notes=notes)
    db.commit()
    return cycle


def add_service_cycle_use_case(
    *,
    db: Session,
    rma_id: str,
    device_serial_number: str,
    status: str = INITIAL_STATUS,
    issue_description: str | None = None,
    accessories_included: str | None = None,
) -> ServiceCycle:
    """Open a new cycle for a device already on the RMA."""
    rma = get_rma_or_404(db=db, rma_id=rma_id)

    serial = normalize_optional_text(device_serial_number)
    if not any(device.serial_number == serial for device in rma.devices):
        raise ValidationError(
            f"Device with serial {device_serial_number} not found in this RMA",
            code="SERVICE_CYCLE_DEVICE_NOT_FOUND",
            field="deviceSerialNumber",
        )

    now = now_utc()
    cycle = ServiceCycle(
        rma_id=rma.id,
        device_serial_number=serial,
        status=validate_status(status),
        creation_date=now,
        status_date=now,
        issue_description=normalize_optional_text(issue_description),
        accessories_included=normalize_optional_text(accessories_included),
    )
    rma.service_cycles.append(cycle)
    rma.last_update_date = next_last_update_date(rma.last_update_date, at=now)

    db.commit()
    logger.info("service_cycle.created rma=%s cycle=%s serial=%s", rma_id, cycle.id, serial)
    return cycle
