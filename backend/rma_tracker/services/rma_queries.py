"""Read-only listing, search and filtering over RMAs and customers."""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..models import Customer, Rma, ServiceCycle
from ..use_cases.rma_lifecycle import hydrated_rma_query
from .service_cycle_rules import normalize_status


@dataclass(frozen=True)
class RmaFilters:
    search: str | None = None
    statuses: tuple[str, ...] = field(default_factory=tuple)
    customer_id: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    is_injury_related: bool | None = None


@dataclass(frozen=True)
class PageInfo:
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


def parse_status_list(raw: str | None) -> tuple[str, ...]:
    """Comma-separated status names to canonical names; unknown names are kept as-is."""
    if not raw:
        return ()
    statuses: list[str] = []
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        statuses.append(normalize_status(item) or item)
    return tuple(statuses)


def _start_of_day(value: date) -> datetime:
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _apply_rma_filters(query, filters: RmaFilters):
    if filters.customer_id:
        query = query.filter(Rma.customer_id == filters.customer_id)

    if filters.search:
        pattern = f"%{filters.search.strip()}%"
        query = query.outerjoin(Customer, Rma.customer_id == Customer.id).filter(
            or_(
                Rma.id.ilike(pattern),
                Customer.name.ilike(pattern),
                Rma.customer_name.ilike(pattern),
            )
        )

    # date_to is inclusive of the whole calendar day
    if filters.date_from:
        query = query.filter(Rma.creation_date >= _start_of_day(filters.date_from))
    if filters.date_to:
        query = query.filter(Rma.creation_date < _start_of_day(filters.date_to + timedelta(days=1)))

    if filters.statuses:
        query = query.filter(Rma.service_cycles.any(ServiceCycle.status.in_(filters.statuses)))

    if filters.is_injury_related is not None:
        query = query.filter(Rma.is_injury_related.is_(filters.is_injury_related))

    return query


def list_rmas(
    db: Session,
    *,
    filters: RmaFilters,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[Rma], PageInfo]:
    """Newest-created first, with the total for pagination."""
    query = _apply_rma_filters(hydrated_rma_query(db), filters)

    total = query.count()
    rmas = (
        query.order_by(Rma.creation_date.desc(), Rma.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return rmas, PageInfo(page=page, limit=limit, total=total)


def list_rmas_for_export(db: Session, *, filters: RmaFilters) -> list[Rma]:
    query = _apply_rma_filters(hydrated_rma_query(db), filters)
    return query.order_by(Rma.creation_date.desc(), Rma.id.desc()).all()


def list_customers(
    db: Session,
    *,
    search: str | None = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Customer], PageInfo]:
    """Customers by name, matching search against name, contact person or email."""
    query = db.query(Customer)
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        query = query.filter(
            or_(
                Customer.name.ilike(pattern),
                Customer.contact_person.ilike(pattern),
                Customer.email.ilike(pattern),
            )
        )

    total = query.count()
    customers = (
        query.order_by(Customer.name.asc(), Customer.id.asc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return customers, PageInfo(page=page, limit=limit, total=total)
