"""initial schema: users, customers, rmas, devices, service cycles, history, audit log, notifications

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

SERVICE_CYCLE_STATUSES = "('Pending', 'Received', 'In Repair', 'Repaired', 'Shipped', 'Closed')"


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="USER"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("reset_token", sa.String(128), nullable=True),
        sa.Column("reset_token_expiry", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.CheckConstraint("role IN ('ADMIN', 'USER')", name="chk_user_role"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_reset_token", "users", ["reset_token"])

    op.create_table(
        "customers",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_person", sa.String(255)),
        sa.Column("email", sa.String(255)),
        sa.Column("phone", sa.String(50)),
        sa.Column("address", sa.String(500)),
        sa.Column("created_at", sa.DateTime(timezone=True)),
        sa.Column("updated_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_customers_name", "customers", ["name"])

    op.create_table(
        "rmas",
        sa.Column("id", sa.String(20), primary_key=True),
        sa.Column("customer_id", sa.String(64), sa.ForeignKey("customers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("creation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_update_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("date_of_incident", sa.Date(), nullable=False),
        sa.Column("date_of_report", sa.Date(), nullable=False),
        sa.Column("attachment", sa.String(500)),
        sa.Column("is_injury_related", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("injury_details", sa.Text()),
        sa.Column("customer_name", sa.String(255)),
        sa.Column("customer_email", sa.String(255)),
        sa.Column("customer_phone", sa.String(50)),
    )
    op.create_index("ix_rmas_customer_id", "rmas", ["customer_id"])
    op.create_index("ix_rmas_creation_date", "rmas", ["creation_date"])

    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("rma_id", sa.String(20), sa.ForeignKey("rmas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("article_number", sa.String(255)),
        sa.Column("serial_number", sa.String(255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default="1"),
        sa.UniqueConstraint("rma_id", "serial_number", name="uq_devices_rma_serial"),
        sa.CheckConstraint("quantity > 0", name="chk_device_quantity_positive"),
    )
    op.create_index("ix_devices_rma_id", "devices", ["rma_id"])
    op.create_index("ix_devices_serial_number", "devices", ["serial_number"])

    op.create_table(
        "service_cycles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("rma_id", sa.String(20), sa.ForeignKey("rmas.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_serial_number", sa.String(255), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="Pending"),
        sa.Column("creation_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("issue_description", sa.Text()),
        sa.Column("accessories_included", sa.Text()),
        sa.CheckConstraint(f"status IN {SERVICE_CYCLE_STATUSES}", name="chk_service_cycle_status"),
    )
    op.create_index("ix_service_cycles_rma_id", "service_cycles", ["rma_id"])
    op.create_index("ix_service_cycles_device_serial_number", "service_cycles", ["device_serial_number"])
    op.create_index("idx_service_cycles_rma_device", "service_cycles", ["rma_id", "device_serial_number"])

    op.create_table(
        "service_history",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "service_cycle_id",
            sa.Integer(),
            sa.ForeignKey("service_cycles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("notes", sa.Text()),
    )
    op.create_index("ix_service_history_service_cycle_id", "service_history", ["service_cycle_id"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("action", sa.String(20), nullable=False),
        sa.Column("entity", sa.String(20), nullable=False),
        sa.Column("entity_id", sa.String(64)),
        sa.Column("details", sa.Text()),
        sa.Column("ip_address", sa.String(64)),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "action IN ('LOGIN', 'LOGOUT', 'CREATE', 'UPDATE', 'DELETE', 'VIEW')",
            name="chk_audit_action",
        ),
        sa.CheckConstraint("entity IN ('USER', 'CUSTOMER', 'RMA', 'SYSTEM')", name="chk_audit_entity"),
    )
    op.create_index("ix_audit_log_user_id", "audit_log", ["user_id"])
    op.create_index("ix_audit_log_action", "audit_log", ["action"])
    op.create_index("ix_audit_log_entity", "audit_log", ["entity"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])
    op.create_index("idx_audit_log_entity", "audit_log", ["entity", "entity_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(64), primary_key=True),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("metadata", sa.Text()),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True)),
    )
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])


def downgrade() -> None:
    op.drop_table("notifications")
    op.drop_table("audit_log")
    op.drop_table("service_history")
    op.drop_table("service_cycles")
    op.drop_table("devices")
    op.drop_table("rmas")
    op.drop_table("customers")
    op.drop_table("users")
