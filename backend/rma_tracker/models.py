"""SQLAlchemy models for customers, RMAs, devices, service cycles and side channels."""
from sqlalchemy import (
    Boolean, Column, String, Integer, Date, DateTime, Text,
    ForeignKey, CheckConstraint, Index, UniqueConstraint, event
)
from sqlalchemy.orm import relationship
import uuid
from datetime import datetime, timezone
from .database import Base


SERVICE_CYCLE_STATUSES = ("Pending", "Received", "In Repair", "Repaired", "Shipped", "Closed")
AUDIT_ACTIONS = ("LOGIN", "LOGOUT", "CREATE", "UPDATE", "DELETE", "VIEW")
AUDIT_ENTITIES = ("USER", "CUSTOMER", "RMA", "SYSTEM")
USER_ROLES = ("ADMIN", "USER")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Authenticated actor. Provisioned by the identity service."""
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="USER")
    is_active = Column(Boolean, nullable=False, default=True)
    reset_token = Column(String(128), nullable=True, index=True)
    reset_token_expiry = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (
        CheckConstraint(role.in_(USER_ROLES), name="chk_user_role"),
    )


class Customer(Base):
    """Customer model. Owns RMAs by reference only."""
    __tablename__ = "customers"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    contact_person = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Relationships
    rmas = relationship("Rma", back_populates="customer", order_by="Rma.creation_date.desc()")


class Rma(Base):
    """RMA root aggregate."""
    __tablename__ = "rmas"

    id = Column(String(20), primary_key=True)
    # Cleared when the customer is deleted with snapshot preservation.
    customer_id = Column(
        String(64),
        ForeignKey("customers.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    creation_date = Column(DateTime(timezone=True), nullable=False, index=True)
    last_update_date = Column(DateTime(timezone=True), nullable=False)
    date_of_incident = Column(Date, nullable=False)
    date_of_report = Column(Date, nullable=False)
    attachment = Column(String(500), nullable=True)
    is_injury_related = Column(Boolean, nullable=False, default=False)
    injury_details = Column(Text, nullable=True)

    # Frozen copy of the owning customer, set only by snapshot-preserve delete.
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="rmas")
    devices = relationship(
        "Device",
        back_populates="rma",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="Device.id",
    )
    service_cycles = relationship(
        "ServiceCycle",
        back_populates="rma",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ServiceCycle.id",
    )


class Device(Base):
    """Returned device. Immutable after creation."""
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rma_id = Column(String(20), ForeignKey("rmas.id", ondelete="CASCADE"), nullable=False, index=True)
    article_number = Column(String(255), nullable=True)
    serial_number = Column(String(255), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)

    __table_args__ = (
        UniqueConstraint("rma_id", "serial_number", name="uq_devices_rma_serial"),
        CheckConstraint("quantity > 0", name="chk_device_quantity_positive"),
    )

    # Relationships
    rma = relationship("Rma", back_populates="devices")


class ServiceCycle(Base):
    """Repair ticket for one device within an RMA."""
    __tablename__ = "service_cycles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rma_id = Column(String(20), ForeignKey("rmas.id", ondelete="CASCADE"), nullable=False, index=True)
    device_serial_number = Column(String(255), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="Pending")
    creation_date = Column(DateTime(timezone=True), nullable=False)
    status_date = Column(DateTime(timezone=True), nullable=False)
    issue_description = Column(Text, nullable=True)
    accessories_included = Column(Text, nullable=True)

    __table_args__ = (
        CheckConstraint(status.in_(SERVICE_CYCLE_STATUSES), name="chk_service_cycle_status"),
        Index("idx_service_cycles_rma_device", "rma_id", "device_serial_number"),
    )

    # Relationships
    rma = relationship("Rma", back_populates="service_cycles")
    history = relationship(
        "ServiceHistory",
        back_populates="service_cycle",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ServiceHistory.id",
    )


class ServiceHistory(Base):
    """Status-change record of a service cycle. Append-only."""
    __tablename__ = "service_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    service_cycle_id = Column(
        Integer,
        ForeignKey("service_cycles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status = Column(String(20), nullable=False)
    date = Column(DateTime(timezone=True), nullable=False)
    notes = Column(Text, nullable=True)

    # Relationships
    service_cycle = relationship("ServiceCycle", back_populates="history")


class AuditLog(Base):
    """Audit log entry. Append-only and independent of the RMA aggregate."""
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False, index=True)
    action = Column(String(20), nullable=False, index=True)
    entity = Column(String(20), nullable=False, index=True)
    entity_id = Column(String(64), nullable=True)
    details = Column(Text, nullable=True)  # JSON-serialized
    ip_address = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)

    __table_args__ = (
        CheckConstraint(action.in_(AUDIT_ACTIONS), name="chk_audit_action"),
        CheckConstraint(entity.in_(AUDIT_ENTITIES), name="chk_audit_entity"),
        Index("idx_audit_log_entity", "entity", "entity_id"),
    )


class Notification(Base):
    """Operator-facing notification (e.g. password reset requested)."""
    __tablename__ = "notifications"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    type = Column(String(50), nullable=False)
    message = Column(Text, nullable=False)
    meta_data = Column("metadata", Text, nullable=True)  # 'metadata' is reserved by SQLAlchemy
    is_read = Column(Boolean, nullable=False, default=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, index=True)


@event.listens_for(ServiceHistory, "before_update")
def _reject_history_update(_mapper, _connection, target):
    raise ValueError(f"Service history event {target.id} is append-only and cannot be modified")


@event.listens_for(AuditLog, "before_update")
def _reject_audit_update(_mapper, _connection, target):
    raise ValueError(f"Audit log entry {target.id} is append-only and cannot be modified")
