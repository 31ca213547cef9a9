from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from attsync.db import Base


class DeviceStatus(str, enum.Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class SkipReason(str, enum.Enum):
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_INACTIVE = "device_inactive"
    EMP_MAPPING_NOT_FOUND = "emp_mapping_not_found"


class Device(Base):
    """Attendance terminal known to the directory. Read-only for this service."""

    __tablename__ = "devices"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    serial_number: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    make: Mapped[str | None] = mapped_column(String(100), nullable=True)
    model: Mapped[str | None] = mapped_column(String(100), nullable=True)
    status: Mapped[DeviceStatus] = mapped_column(
        Enum(
            DeviceStatus,
            name="device_status",
            values_callable=lambda members: [item.value for item in members],
        ),
        nullable=False,
        default=DeviceStatus.ACTIVE,
    )
    service_provider_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    company_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    branch_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    raw_punches: Mapped[list[RawPunch]] = relationship(back_populates="device")
    employee_mappings: Mapped[list[EmployeeDeviceMapping]] = relationship(back_populates="device")


class EmployeeDeviceMapping(Base):
    __tablename__ = "employee_device_mappings"
    __table_args__ = (
        UniqueConstraint("device_id", "device_emp_code", name="uq_employee_device_mappings_device_code"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    device_id: Mapped[int] = mapped_column(
        ForeignKey("devices.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    device_emp_code: Mapped[str] = mapped_column(String(64), nullable=False)
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    device: Mapped[Device] = relationship(back_populates="employee_mappings")


class RawPunch(Base):
    """One ATTLOG line as the terminal reported it.

    ``processed`` only ever moves from False to True, in the same transaction
    that writes the matching :class:`AttendanceRecord`.
    """

    __tablename__ = "raw_punches"
    __table_args__ = (
        Index("ix_raw_punches_processed_id", "processed", "id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    device_id: Mapped[int | None] = mapped_column(
        ForeignKey("devices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    device_serial: Mapped[str] = mapped_column(String(100), nullable=False)
    device_emp_code: Mapped[str] = mapped_column(Text, nullable=False)
    log_time: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="0", server_default=text("'0'"))
    work_code: Mapped[str] = mapped_column(Text, nullable=False, default="0", server_default=text("'0'"))
    raw_line: Mapped[str] = mapped_column(Text, nullable=False)
    processed: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    reconcile_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default=text("0"))
    last_skip_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    parked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )

    device: Mapped[Device | None] = relationship(back_populates="raw_punches")
    attendance_record: Mapped[AttendanceRecord | None] = relationship(back_populates="raw_punch", uselist=False)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    service_provider_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    company_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    branch_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    device_id: Mapped[int | None] = mapped_column(
        ForeignKey("devices.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    employee_id: Mapped[int] = mapped_column(Integer, nullable=False, index=True)
    raw_punch_id: Mapped[int | None] = mapped_column(
        ForeignKey("raw_punches.id", ondelete="SET NULL"),
        nullable=True,
        unique=True,
    )
    punch_timestamp: Mapped[str] = mapped_column(Text, nullable=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    google_map_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    location: Mapped[str | None] = mapped_column(Text, nullable=True)
    mobile_device_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    mobile_device_info: Mapped[str | None] = mapped_column(Text, nullable=True)
    exported: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=text("false"))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("CURRENT_TIMESTAMP"),
        index=True,
    )

    device: Mapped[Device | None] = relationship()
    raw_punch: Mapped[RawPunch | None] = relationship(back_populates="attendance_record")
