"""Pydantic schemas for API.

Wire format is camelCase; snake_case field names are accepted on input too.
"""
from pydantic import AliasChoices, BaseModel, Field, ConfigDict, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional
from datetime import date, datetime


class ApiModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# Customer schemas
class CustomerCreate(ApiModel):
    name: str = Field(max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)


class CustomerUpdate(ApiModel):
    name: Optional[str] = Field(default=None, max_length=255)
    contact_person: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)
    address: Optional[str] = Field(default=None, max_length=500)


class CustomerResponse(ApiModel):
    id: str
    name: str
    contact_person: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None


class CustomerRmaSummary(ApiModel):
    id: str
    creation_date: datetime
    last_update_date: datetime


class CustomerDetailResponse(CustomerResponse):
    rmas: list[CustomerRmaSummary] = []
    rma_count: int = 0


class CustomerDeleteResponse(ApiModel):
    message: str
    deleted_rmas: int = 0
    preserved_rmas: int = 0


# Device / service cycle schemas
class DeviceCreate(ApiModel):
    article_number: Optional[str] = Field(default=None, max_length=255)
    serial_number: str = Field(max_length=255)
    quantity: int = Field(default=1, ge=1, le=10000)


class DeviceResponse(ApiModel):
    article_number: Optional[str] = None
    serial_number: str
    quantity: int


class ServiceCycleCreate(ApiModel):
    """Initial or additional cycle; client-side fields like history are ignored."""
    device_serial_number: str = Field(max_length=255)
    status: str = "Pending"
    issue_description: Optional[str] = Field(default=None, max_length=2000)
    accessories_included: Optional[str] = Field(default=None, max_length=1000)


class HistoryEventResponse(ApiModel):
    id: int
    status: str
    date: datetime
    notes: Optional[str] = None


class ServiceCycleResponse(ApiModel):
    id: int
    device_serial_number: str
    status: str
    creation_date: datetime
    status_date: datetime
    issue_description: Optional[str] = None
    accessories_included: Optional[str] = None
    history: list[HistoryEventResponse] = []


# RMA schemas
class CustomerRef(ApiModel):
    id: str


class RmaCreate(ApiModel):
    customer_id: Optional[str] = None
    customer: Optional[CustomerRef] = None
    devices: list[DeviceCreate] = Field(default_factory=list, max_length=50)
    service_cycles: list[ServiceCycleCreate] = Field(default_factory=list)
    date_of_incident: date
    date_of_report: date
    is_injury_related: bool = False
    injury_details: Optional[str] = Field(default=None, max_length=2000)
    attachment: Optional[str] = Field(default=None, max_length=500)

    @model_validator(mode="after")
    def _resolve_customer_id(self):
        # Older clients send {"customer": {"id": ...}} instead of customerId.
        if not self.customer_id and self.customer is not None:
            self.customer_id = self.customer.id
        if not self.customer_id:
            raise ValueError("customerId is required")
        return self


class RmaUpdate(ApiModel):
    """Scalar fields only; devices and cycles have their own endpoints."""
    date_of_incident: Optional[date] = None
    date_of_report: Optional[date] = None
    attachment: Optional[str] = Field(default=None, max_length=500)


class RmaResponse(ApiModel):
    id: str
    customer_id: Optional[str] = None
    customer: Optional[CustomerResponse] = None
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    creation_date: datetime
    last_update_date: datetime
    date_of_incident: date
    date_of_report: date
    attachment: Optional[str] = None
    is_injury_related: bool = False
    injury_details: Optional[str] = None
    devices: list[DeviceResponse] = []
    service_cycles: list[ServiceCycleResponse] = []


class StatusUpdateRequest(ApiModel):
    device_serial_number: str = Field(min_length=1)
    new_status: str = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)


class StatusUpdateResponse(ApiModel):
    last_update_date: datetime


class CycleStatusUpdateRequest(ApiModel):
    status: str = Field(min_length=1)
    notes: Optional[str] = Field(default=None, max_length=2000)


# Pagination
class PaginationMeta(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RmaListResponse(ApiModel):
    data: list[RmaResponse]
    pagination: PaginationMeta


class CustomerListResponse(ApiModel):
    data: list[CustomerResponse]
    pagination: PaginationMeta


# Audit schemas
class AuditLogEntryResponse(ApiModel):
    id: int
    user_id: str
    action: str
    entity: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: datetime


class AuditLogListResponse(ApiModel):
    data: list[AuditLogEntryResponse]
    total: int
    limit: int
    offset: int


# Notification schemas
class NotificationResponse(ApiModel):
    id: str
    type: str
    message: str
    # ORM attribute is meta_data ('metadata' is reserved by SQLAlchemy)
    meta_data: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("meta_data", "metadata"),
        serialization_alias="metadata",
    )
    is_read: bool
    created_at: datetime


class CountResponse(ApiModel):
    count: int


# User schemas
class UserResponse(ApiModel):
    id: str
    email: str
    name: str
    role: str
    is_active: bool
    created_at: Optional[datetime] = None


class UserUpdate(ApiModel):
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = Field(default=None, max_length=20)


class UserStatusUpdate(ApiModel):
    is_active: bool


# Auth schemas
class ForgotPasswordRequest(ApiModel):
    email: str = Field(min_length=1, max_length=255)


class MessageResponse(ApiModel):
    message: str
