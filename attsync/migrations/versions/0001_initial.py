"""Initial device ingestion schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

device_status = sa.Enum("Active", "Inactive", name="device_status")


def upgrade() -> None:
    op.create_table(
        "devices",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("serial_number", sa.String(length=100), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("make", sa.String(length=100), nullable=True),
        sa.Column("model", sa.String(length=100), nullable=True),
        sa.Column("status", device_status, nullable=False),
        sa.Column("service_provider_id", sa.Integer(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=True),
        sa.Column("branch_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_devices_serial_number", "devices", ["serial_number"], unique=True)

    op.create_table(
        "employee_device_mappings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("device_id", sa.Integer(), sa.ForeignKey("devices.id", ondelete="CASCADE"), nullable=False),
        sa.Column("device_emp_code", sa.String(length=64), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.UniqueConstraint("device_id", "device_emp_code", name="uq_employee_device_mappings_device_code"),
    )
    op.create_index("ix_employee_device_mappings_device_id", "employee_device_mappings", ["device_id"])
    op.create_index("ix_employee_device_mappings_employee_id", "employee_device_mappings", ["employee_id"])

    op.create_table(
        "raw_punches",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("device_id", sa.Integer(), sa.ForeignKey("devices.id", ondelete="SET NULL"), nullable=True),
        sa.Column("device_serial", sa.String(length=100), nullable=False),
        sa.Column("device_emp_code", sa.Text(), nullable=False),
        sa.Column("log_time", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'0'")),
        sa.Column("work_code", sa.Text(), nullable=False, server_default=sa.text("'0'")),
        sa.Column("raw_line", sa.Text(), nullable=False),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("reconcile_attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_skip_reason", sa.String(length=64), nullable=True),
        sa.Column("parked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_raw_punches_device_id", "raw_punches", ["device_id"])
    op.create_index("ix_raw_punches_created_at", "raw_punches", ["created_at"])
    op.create_index("ix_raw_punches_processed_id", "raw_punches", ["processed", "id"])

    op.create_table(
        "attendance_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("service_provider_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("device_id", sa.Integer(), sa.ForeignKey("devices.id", ondelete="SET NULL"), nullable=True),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column(
            "raw_punch_id",
            sa.Integer(),
            sa.ForeignKey("raw_punches.id", ondelete="SET NULL"),
            nullable=True,
            unique=True,
        ),
        sa.Column("punch_timestamp", sa.Text(), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("google_map_link", sa.Text(), nullable=True),
        sa.Column("location", sa.Text(), nullable=True),
        sa.Column("mobile_device_id", sa.String(length=255), nullable=True),
        sa.Column("mobile_device_info", sa.Text(), nullable=True),
        sa.Column("exported", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
    )
    op.create_index("ix_attendance_records_device_id", "attendance_records", ["device_id"])
    op.create_index("ix_attendance_records_employee_id", "attendance_records", ["employee_id"])
    op.create_index("ix_attendance_records_created_at", "attendance_records", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_attendance_records_created_at", table_name="attendance_records")
    op.drop_index("ix_attendance_records_employee_id", table_name="attendance_records")
    op.drop_index("ix_attendance_records_device_id", table_name="attendance_records")
    op.drop_table("attendance_records")
    op.drop_index("ix_raw_punches_processed_id", table_name="raw_punches")
    op.drop_index("ix_raw_punches_created_at", table_name="raw_punches")
    op.drop_index("ix_raw_punches_device_id", table_name="raw_punches")
    op.drop_table("raw_punches")
    op.drop_index("ix_employee_device_mappings_employee_id", table_name="employee_device_mappings")
    op.drop_index("ix_employee_device_mappings_device_id", table_name="employee_device_mappings")
    op.drop_table("employee_device_mappings")
    op.drop_index("ix_devices_serial_number", table_name="devices")
    op.drop_table("devices")
    device_status.drop(op.get_bind(), checkfirst=True)
