"""CSV export of filtered RMAs."""
from __future__ import annotations

import csv
import io
from collections.abc import Iterable

from ..models import Rma

EXPORT_HEADERS = (
    "RMA ID",
    "Creation Date",
    "Customer Name",
    "Customer Company",
    "Device Serials",
    "Current Status",
    "Safety Incident",
    "Injury Details",
)


def _export_row(rma: Rma) -> list[str]:
    customer = rma.customer
    contact_name = (customer.contact_person if customer else None) or rma.customer_name or "N/A"
    company_name = (customer.name if customer else None) or rma.customer_name or "Unknown Company"
    serials = "; ".join(device.serial_number for device in rma.devices) or "N/A"

    # Distinct statuses in first-seen order
    statuses = list(dict.fromkeys(cycle.status for cycle in rma.service_cycles))
    current_status = "; ".join(statuses) or "Pending"

    return [
        rma.id,
        rma.creation_date.isoformat() if rma.creation_date else "",
        contact_name,
        company_name,
        serials,
        current_status,
        "Yes" if rma.is_injury_related else "No",
        rma.injury_details or "",
    ]


def render_rmas_csv(rmas: Iterable[Rma]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(EXPORT_HEADERS)
    for rma in rmas:
        writer.writerow(_export_row(rma))
    return buffer.getvalue()
