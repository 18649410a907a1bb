"""RMA endpoints."""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request, Response
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..config import settings
from ..database import get_db
from ..models import User
from ..schemas import (
    CycleStatusUpdateRequest,
    PaginationMeta,
    RmaCreate,
    RmaListResponse,
    RmaResponse,
    RmaUpdate,
    ServiceCycleCreate,
    ServiceCycleResponse,
    StatusUpdateRequest,
    StatusUpdateResponse,
)
from ..security import audit_request
from ..services.audit_log import AuditAction, AuditEntity
from ..services.rma_export import render_rmas_csv
from ..services.rma_queries import RmaFilters, list_rmas, list_rmas_for_export, parse_status_list
from ..use_cases.rma_lifecycle import (
    DeviceInput,
    ServiceCycleInput,
    create_rma_use_case,
    delete_rma_use_case,
    get_rma_or_404,
    update_rma_use_case,
)
from ..use_cases.service_cycles import (
    add_service_cycle_use_case,
    update_cycle_status_by_serial_use_case,
    update_cycle_status_use_case,
)

router = APIRouter(prefix="/rmas", tags=["rmas"])


def _rma_filters(
    search: Optional[str] = None,
    status: Optional[str] = None,
    customer_id: Optional[str] = Query(None, alias="customerId"),
    date_from: Optional[date] = Query(None, alias="dateFrom"),
    date_to: Optional[date] = Query(None, alias="dateTo"),
    is_injury_related: Optional[bool] = Query(None, alias="isInjuryRelated"),
) -> RmaFilters:
    return RmaFilters(
        search=search or None,
        statuses=parse_status_list(status),
        customer_id=customer_id or None,
        date_from=date_from,
        date_to=date_to,
        is_injury_related=is_injury_related,
    )


@router.get("", response_model=RmaListResponse)
def get_rmas(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.RMA_DEFAULT_PAGE_SIZE, ge=1, le=settings.RMA_MAX_PAGE_SIZE),
    filters: RmaFilters = Depends(_rma_filters),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List RMAs newest first with pagination, search and filters."""
    rmas, page_info = list_rmas(db, filters=filters, page=page, limit=limit)
    return RmaListResponse(
        data=[RmaResponse.model_validate(rma) for rma in rmas],
        pagination=PaginationMeta(
            page=page_info.page,
            limit=page_info.limit,
            total=page_info.total,
            total_pages=page_info.total_pages,
        ),
    )


@router.get("/export")
def export_rmas(
    filters: RmaFilters = Depends(_rma_filters),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Export filtered RMAs as CSV."""
    content = render_rmas_csv(list_rmas_for_export(db, filters=filters))
    filename = f"rma-export-{date.today().isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put("/cycles/{cycle_id}/status", response_model=ServiceCycleResponse)
def update_cycle_status(
    cycle_id: int,
    data: CycleStatusUpdateRequest,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageRmas")),
    db: Session = Depends(get_db),
):
    """Update a service cycle's status by cycle id."""
    cycle = update_cycle_status_use_case(
        db=db,
        cycle_id=cycle_id,
        new_status=data.status,
        notes=data.notes,
    )
    response = ServiceCycleResponse.model_validate(cycle)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.RMA,
        entity_id=cycle.rma_id,
        status_code=200,
        extra={"cycleId": cycle_id, "newStatus": response.status},
    )
    return response


@router.get("/{rma_id}", response_model=RmaResponse)
def get_rma(
    rma_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Get RMA with customer, devices, cycles and history."""
    return RmaResponse.model_validate(get_rma_or_404(db=db, rma_id=rma_id))


@router.post("", response_model=RmaResponse, status_code=201)
def create_rma(
    data: RmaCreate,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageRmas")),
    db: Session = Depends(get_db),
):
    """Create RMA with its devices and initial service cycles."""
    rma = create_rma_use_case(
        db=db,
        customer_id=data.customer_id,
        devices=[
            DeviceInput(
                serial_number=device.serial_number,
                article_number=device.article_number,
                quantity=device.quantity,
            )
            for device in data.devices
        ],
        service_cycles=[
            ServiceCycleInput(
                device_serial_number=cycle.device_serial_number,
                status=cycle.status,
                issue_description=cycle.issue_description,
                accessories_included=cycle.accessories_included,
            )
            for cycle in data.service_cycles
        ],
        date_of_incident=data.date_of_incident,
        date_of_report=data.date_of_report,
        is_injury_related=data.is_injury_related,
        injury_details=data.injury_details,
        attachment=data.attachment,
    )
    response = RmaResponse.model_validate(rma)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.CREATE,
        entity=AuditEntity.RMA,
        entity_id=response.id,
        status_code=201,
    )
    return response


@router.put("/{rma_id}", response_model=RmaResponse)
def update_rma(
    rma_id: str,
    data: RmaUpdate,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageRmas")),
    db: Session = Depends(get_db),
):
    """Update RMA scalar fields (dates, attachment)."""
    rma = update_rma_use_case(db=db, rma_id=rma_id, changes=data.model_dump(exclude_unset=True))
    response = RmaResponse.model_validate(rma)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.RMA,
        entity_id=rma_id,
        status_code=200,
    )
    return response


@router.delete("/{rma_id}", status_code=204)
def delete_rma(
    rma_id: str,
    request: Request,
    current_user: User = Depends(PermissionChecker("canDeleteData")),
    db: Session = Depends(get_db),
):
    """Delete RMA with devices, cycles and history."""
    delete_rma_use_case(db=db, rma_id=rma_id)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.DELETE,
        entity=AuditEntity.RMA,
        entity_id=rma_id,
        status_code=204,
    )
    return Response(status_code=204)


@router.patch("/{rma_id}/status", response_model=StatusUpdateResponse)
def update_rma_status(
    rma_id: str,
    data: StatusUpdateRequest,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageRmas")),
    db: Session = Depends(get_db),
):
    """Move a device's active service cycle to a new status."""
    last_update_date = update_cycle_status_by_serial_use_case(
        db=db,
        rma_id=rma_id,
        device_serial_number=data.device_serial_number,
        new_status=data.new_status,
        notes=data.notes,
    )
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.RMA,
        entity_id=rma_id,
        status_code=200,
        extra={"deviceSerialNumber": data.device_serial_number, "newStatus": data.new_status},
    )
    return StatusUpdateResponse(last_update_date=last_update_date)


@router.post("/{rma_id}/cycles", response_model=ServiceCycleResponse, status_code=201)
def add_service_cycle(
    rma_id: str,
    data: ServiceCycleCreate,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageRmas")),
    db: Session = Depends(get_db),
):
    """Open a new service cycle for a device already on the RMA."""
    cycle = add_service_cycle_use_case(
        db=db,
        rma_id=rma_id,
        device_serial_number=data.device_serial_number,
        status=data.status,
        issue_description=data.issue_description,
        accessories_included=data.accessories_included,
    )
    response = ServiceCycleResponse.model_validate(cycle)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.RMA,
        entity_id=rma_id,
        status_code=201,
        extra={"cycleId": response.id, "deviceSerialNumber": response.device_serial_number},
    )
    return response
