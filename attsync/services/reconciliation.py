"""Turns unprocessed raw punches into canonical attendance records.

One call is one transaction: pick the oldest unprocessed rows under row
locks, resolve device and employee for each, then mark the resolved rows
processed and insert their canonical records together. Rows that cannot be
resolved yet are left unprocessed and are picked again by the next run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import Select, select, update
from sqlalchemy.orm import Session

from attsync.models import (
    AttendanceRecord,
    Device,
    DeviceStatus,
    EmployeeDeviceMapping,
    RawPunch,
    SkipReason,
)

logger = logging.getLogger("attsync.reconciliation")

DEFAULT_LIMIT = 1000
MAX_LIMIT = 5000


@dataclass(slots=True)
class ReconciliationResult:
    dry_run: bool
    picked: int = 0
    pre_marked_processed: int = 0
    inserted: int = 0
    skipped_no_device: int = 0
    skipped_inactive_device: int = 0
    skipped_no_mapping: int = 0
    parked: int = 0
    details: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "dryRun": self.dry_run,
            "picked": self.picked,
            "preMarkedProcessed": self.pre_marked_processed,
            "inserted": self.inserted,
            "skippedNoDevice": self.skipped_no_device,
            "skippedInactiveDevice": self.skipped_inactive_device,
            "skippedNoMapping": self.skipped_no_mapping,
            "parked": self.parked,
            "details": list(self.details),
        }


def _claim_unprocessed_stmt(limit: int) -> Select[tuple[RawPunch]]:
    return (
        select(RawPunch)
        .where(
            RawPunch.processed.is_(False),
            RawPunch.parked_at.is_(None),
        )
        .order_by(RawPunch.id.asc())
        .limit(limit)
        .with_for_update(skip_locked=True)
    )


def _claim_unprocessed(db: Session, *, limit: int) -> list[RawPunch]:
    return list(db.scalars(_claim_unprocessed_stmt(limit)).all())


def _load_devices(db: Session, punches: list[RawPunch]) -> dict[int, Device]:
    device_ids = {punch.device_id for punch in punches if punch.device_id is not None}
    if not device_ids:
        return {}
    devices = db.scalars(select(Device).where(Device.id.in_(device_ids))).all()
    return {device.id: device for device in devices}


def _load_mappings(db: Session, punches: list[RawPunch]) -> dict[tuple[int, str], int]:
    device_ids = {punch.device_id for punch in punches if punch.device_id is not None}
    codes = {punch.device_emp_code for punch in punches}
    if not device_ids or not codes:
        return {}
    rows = db.execute(
        select(
            EmployeeDeviceMapping.device_id,
            EmployeeDeviceMapping.device_emp_code,
            EmployeeDeviceMapping.employee_id,
        ).where(
            EmployeeDeviceMapping.device_id.in_(device_ids),
            EmployeeDeviceMapping.device_emp_code.in_(codes),
        )
    ).all()
    return {(device_id, code): employee_id for device_id, code, employee_id in rows}


def _record_skip(
    result: ReconciliationResult,
    punch: RawPunch,
    reason: SkipReason,
    *,
    device: Device | None = None,
) -> None:
    if reason is SkipReason.DEVICE_NOT_FOUND:
        result.skipped_no_device += 1
        result.details.append({"logId": punch.id, "reason": reason.value})
    elif reason is SkipReason.DEVICE_INACTIVE:
        result.skipped_inactive_device += 1
        result.details.append({"logId": punch.id, "reason": reason.value, "deviceId": punch.device_id})
    else:
        result.skipped_no_mapping += 1
        result.details.append(
            {
                "logId": punch.id,
                "reason": reason.value,
                "deviceId": punch.device_id,
                "deviceSN": device.serial_number if device is not None else punch.device_serial,
                "userId": punch.device_emp_code,
            }
        )


def _track_attempt(
    punch: RawPunch,
    reason: SkipReason,
    *,
    max_attempts: int,
    now_utc: datetime,
) -> bool:
    punch.reconcile_attempts = (punch.reconcile_attempts or 0) + 1
    punch.last_skip_reason = reason.value
    if punch.reconcile_attempts >= max_attempts:
        punch.parked_at = now_utc
        return True
    return False


def reconcile_punches(
    db: Session,
    *,
    limit: int = DEFAULT_LIMIT,
    dry_run: bool = False,
    max_attempts: int = 0,
    now_utc: datetime | None = None,
) -> ReconciliationResult:
    """Run one bounded reconciliation pass.

    ``max_attempts`` > 0 parks rows that were skipped that many times so a
    retired, never-mapped device cannot grow the scanned backlog forever.
    Parked rows stay unprocessed. Any unexpected error rolls the whole pass
    back and propagates.
    """
    now_utc = now_utc or datetime.now(timezone.utc)
    result = ReconciliationResult(dry_run=dry_run)

    try:
        punches = _claim_unprocessed(db, limit=limit)
        result.picked = len(punches)
        if not punches:
            db.rollback()
            return result

        devices = _load_devices(db, punches)
        mappings = _load_mappings(db, punches)

        succeeded_ids: list[int] = []
        records: list[AttendanceRecord] = []
        for punch in punches:
            device = devices.get(punch.device_id) if punch.device_id is not None else None
            if device is None:
                reason = SkipReason.DEVICE_NOT_FOUND
            elif device.status != DeviceStatus.ACTIVE:
                reason = SkipReason.DEVICE_INACTIVE
            elif (device.id, punch.device_emp_code) not in mappings:
                reason = SkipReason.EMP_MAPPING_NOT_FOUND
            else:
                reason = None

            if reason is not None:
                _record_skip(result, punch, reason, device=device)
                if not dry_run and max_attempts > 0:
                    if _track_attempt(punch, reason, max_attempts=max_attempts, now_utc=now_utc):
                        result.parked += 1
                continue

            employee_id = mappings[(device.id, punch.device_emp_code)]
            records.append(
                AttendanceRecord(
                    service_provider_id=device.service_provider_id or 0,
                    company_id=device.company_id or 0,
                    branch_id=device.branch_id or 0,
                    device_id=device.id,
                    employee_id=employee_id,
                    raw_punch_id=punch.id,
                    punch_timestamp=punch.log_time,
                    exported=False,
                )
            )
            succeeded_ids.append(punch.id)
            result.details.append(
                {
                    "logId": punch.id,
                    "queued": True,
                    "deviceId": device.id,
                    "employeeId": employee_id,
                    "punchTimeStamp": punch.log_time,
                }
            )

        if dry_run:
            db.rollback()
            logger.info("reconciliation_dry_run", extra={"picked": result.picked, "queued": len(records)})
            return result

        if succeeded_ids:
            marked = db.execute(
                update(RawPunch)
                .where(RawPunch.id.in_(succeeded_ids), RawPunch.processed.is_(False))
                .values(processed=True)
                .execution_options(synchronize_session=False)
            )
            result.pre_marked_processed = marked.rowcount
            db.add_all(records)
            db.flush()
            result.inserted = len(records)

        db.commit()
    except Exception:
        db.rollback()
        logger.exception("reconciliation_failed", extra={"limit": limit, "dry_run": dry_run})
        raise

    logger.info(
        "reconciliation_completed",
        extra={key: value for key, value in result.to_dict().items() if key != "details"},
    )
    if result.parked:
        logger.warning("reconciliation_parked", extra={"parked": result.parked})
    return result


def requeue_parked(db: Session, *, ids: list[int] | None = None) -> int:
    stmt = (
        update(RawPunch)
        .where(RawPunch.processed.is_(False), RawPunch.parked_at.is_not(None))
        .values(parked_at=None, reconcile_attempts=0)
        .execution_options(synchronize_session=False)
    )
    if ids is not None:
        if not ids:
            return 0
        stmt = stmt.where(RawPunch.id.in_(ids))
    requeued = db.execute(stmt).rowcount
    db.commit()
    logger.info("reconciliation_requeued", extra={"requeued": requeued, "ids": ids})
    return requeued
