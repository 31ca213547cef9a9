from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from attsync.models import AttendanceRecord, Device, DeviceStatus, RawPunch


@dataclass(frozen=True, slots=True)
class ListingParams:
    take: int
    skip: int
    active_only: bool
    created_from: datetime | None = None
    created_to: datetime | None = None


def _apply_filters(stmt, model, params: ListingParams):  # type: ignore[no-untyped-def]
    if params.active_only:
        stmt = stmt.join(Device, model.device_id == Device.id).where(Device.status == DeviceStatus.ACTIVE)
    if params.created_from is not None:
        stmt = stmt.where(model.created_at >= params.created_from)
    if params.created_to is not None:
        stmt = stmt.where(model.created_at <= params.created_to)
    return stmt


def list_raw_punches(db: Session, params: ListingParams) -> tuple[list[RawPunch], int]:
    count_stmt = select(func.count(RawPunch.id)).select_from(RawPunch)
    total = db.scalar(_apply_filters(count_stmt, RawPunch, params)) or 0
    stmt = (
        _apply_filters(select(RawPunch), RawPunch, params)
        .options(selectinload(RawPunch.device))
        .order_by(RawPunch.id.desc())
        .offset(params.skip)
        .limit(params.take)
    )
    return list(db.scalars(stmt).all()), int(total)


def list_attendance_records(db: Session, params: ListingParams) -> tuple[list[AttendanceRecord], int]:
    count_stmt = select(func.count(AttendanceRecord.id)).select_from(AttendanceRecord)
    total = db.scalar(_apply_filters(count_stmt, AttendanceRecord, params)) or 0
    stmt = (
        _apply_filters(select(AttendanceRecord), AttendanceRecord, params)
        .order_by(AttendanceRecord.id.asc())
        .offset(params.skip)
        .limit(params.take)
    )
    return list(db.scalars(stmt).all()), int(total)
