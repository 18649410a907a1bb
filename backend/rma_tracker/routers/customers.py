"""Customer endpoints."""
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..auth import PermissionChecker, get_current_user
from ..config import settings
from ..database import get_db
from ..models import User
from ..schemas import (
    CustomerCreate,
    CustomerDeleteResponse,
    CustomerDetailResponse,
    CustomerListResponse,
    CustomerResponse,
    CustomerUpdate,
    PaginationMeta,
    RmaResponse,
)
from ..security import audit_request
from ..services.audit_log import AuditAction, AuditEntity
from ..services.rma_queries import list_customers
from ..use_cases.customer_lifecycle import (
    count_customer_rmas,
    create_customer_use_case,
    delete_customer_cascading,
    delete_customer_with_preservation,
    get_customer_or_404,
    update_customer_use_case,
)
from ..use_cases.rma_lifecycle import list_customer_rmas

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("", response_model=CustomerListResponse)
def get_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.CUSTOMER_DEFAULT_PAGE_SIZE, ge=1, le=settings.RMA_MAX_PAGE_SIZE),
    search: Optional[str] = None,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    customers, page_info = list_customers(db, search=search, page=page, limit=limit)
    return CustomerListResponse(
        data=[CustomerResponse.model_validate(customer) for customer in customers],
        pagination=PaginationMeta(
            page=page_info.page,
            limit=page_info.limit,
            total=page_info.total,
            total_pages=page_info.total_pages,
        ),
    )


@router.get("/{customer_id}", response_model=CustomerDetailResponse)
def get_customer(
    customer_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Customer with a summary of its RMAs; rmaCount lets clients warn before deleting."""
    customer = get_customer_or_404(db=db, customer_id=customer_id)
    detail = CustomerDetailResponse.model_validate(customer)
    detail.rma_count = count_customer_rmas(db=db, customer_id=customer_id)
    return detail


@router.get("/{customer_id}/rmas", response_model=list[RmaResponse])
def get_customer_rmas(
    customer_id: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_customer_or_404(db=db, customer_id=customer_id)
    return [RmaResponse.model_validate(rma) for rma in list_customer_rmas(db=db, customer_id=customer_id)]


@router.post("", response_model=CustomerResponse, status_code=201)
def create_customer(
    data: CustomerCreate,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageCustomers")),
    db: Session = Depends(get_db),
):
    customer = create_customer_use_case(
        db=db,
        name=data.name,
        contact_person=data.contact_person,
        email=data.email,
        phone=data.phone,
        address=data.address,
    )
    response = CustomerResponse.model_validate(customer)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.CREATE,
        entity=AuditEntity.CUSTOMER,
        entity_id=response.id,
        status_code=201,
    )
    return response


@router.put("/{customer_id}", response_model=CustomerResponse)
def update_customer(
    customer_id: str,
    data: CustomerUpdate,
    request: Request,
    current_user: User = Depends(PermissionChecker("canManageCustomers")),
    db: Session = Depends(get_db),
):
    customer = update_customer_use_case(
        db=db,
        customer_id=customer_id,
        changes=data.model_dump(exclude_unset=True),
    )
    response = CustomerResponse.model_validate(customer)
    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.UPDATE,
        entity=AuditEntity.CUSTOMER,
        entity_id=customer_id,
        status_code=200,
    )
    return response


@router.delete("/{customer_id}", response_model=CustomerDeleteResponse)
def delete_customer(
    customer_id: str,
    request: Request,
    delete_rmas: bool = Query(False, alias="deleteRmas"),
    current_user: User = Depends(PermissionChecker("canDeleteData")),
    db: Session = Depends(get_db),
):
    """Delete customer; RMAs are either removed with it or kept with a name snapshot."""
    if delete_rmas:
        deleted = delete_customer_cascading(db=db, customer_id=customer_id)
        response = CustomerDeleteResponse(
            message="Customer and associated RMAs deleted",
            deleted_rmas=deleted,
        )
    else:
        preserved = delete_customer_with_preservation(db=db, customer_id=customer_id)
        response = CustomerDeleteResponse(
            message="Customer deleted, RMAs preserved",
            preserved_rmas=preserved,
        )

    audit_request(
        db,
        request,
        actor=current_user,
        action=AuditAction.DELETE,
        entity=AuditEntity.CUSTOMER,
        entity_id=customer_id,
        status_code=200,
        extra={
            "deleteRmas": delete_rmas,
            "deletedRmas": response.deleted_rmas,
            "preservedRmas": response.preserved_rmas,
        },
    )
    return response
