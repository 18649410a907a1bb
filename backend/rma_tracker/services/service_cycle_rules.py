"""Service-cycle status and timestamp invariant helpers."""

from __future__ import annotations

from datetime import datetime, timezone

from ..domain_errors import ValidationError
from ..models import SERVICE_CYCLE_STATUSES


INITIAL_STATUS = "Pending"
_CANONICAL_STATUSES: dict[str, str] = {status.lower(): status for status in SERVICE_CYCLE_STATUSES}


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    if dt is None:
        return None
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_status(status: str | None) -> str | None:
    """Map user input to the canonical spelling, or None when unknown."""
    if not status:
        return None
    key = " ".join(status.split()).lower()
    return _CANONICAL_STATUSES.get(key)


def validate_status(status: str | None, *, field: str = "status") -> str:
    """Return the canonical status or raise.

    Any known status may follow any other, backwards included, so operators
    can correct mistakes. Only the vocabulary is checked.
    """
    canonical = normalize_status(status)
    if canonical is None:
        raise ValidationError(
            f"Unknown service cycle status: {status!r}",
            code="INVALID_SERVICE_CYCLE_STATUS",
            field=field,
            details={"allowed": list(SERVICE_CYCLE_STATUSES)},
        )
    return canonical


def next_last_update_date(current: datetime | None, *, at: datetime | None = None) -> datetime:
    """Bump value for RMA.last_update_date that never moves backwards."""
    ts = as_utc(at) or now_utc()
    previous = as_utc(current)
    if previous is not None and previous > ts:
        return previous
    return ts


def select_active_cycle(cycles, device_serial_number: str):
    """Most recently created cycle for the device, or None."""
    candidates = [cycle for cycle in cycles if cycle.device_serial_number == device_serial_number]
    if not candidates:
        return None
    return max(
        candidates,
        key=lambda cycle: (as_utc(cycle.creation_date) or datetime.min.replace(tzinfo=timezone.utc), cycle.id or 0),
    )


def normalize_optional_text(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None
