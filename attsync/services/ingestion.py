from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from attsync.models import Device, DeviceStatus, RawPunch
from attsync.schemas import DeviceBatchPushItem, DeviceBatchPushResult
from attsync.services.device_log import (
    UNKNOWN_DEVICE_SN,
    DeviceLogWriter,
    DevicePushEntry,
    append_quietly,
)
from attsync.services.protocol import is_attlog_table, parse_attlog

logger = logging.getLogger("attsync.ingestion")


def _resolve_active_device(db: Session, serial_number: str) -> Device | None:
    return db.scalar(
        select(Device).where(
            Device.serial_number == serial_number,
            Device.status == DeviceStatus.ACTIVE,
        )
    )


def ingest_attlog(db: Session, serial_number: str, body: str | None) -> int:
    """Append one device's ATTLOG body to the raw punch store.

    Returns the number of rows written. Unknown or inactive devices and any
    storage failure yield 0; nothing here may raise into a device request.
    """
    try:
        device = _resolve_active_device(db, serial_number)
        if device is None:
            logger.info("attlog_device_unknown", extra={"device_sn": serial_number})
            return 0

        rows = [
            RawPunch(
                device_id=device.id,
                device_serial=device.serial_number,
                device_emp_code=punch.user_id,
                log_time=punch.log_time,
                status=punch.status,
                work_code=punch.work_code,
                raw_line=punch.raw_line,
                processed=False,
            )
            for punch in parse_attlog(body)
        ]
        if not rows:
            return 0

        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("attlog_ingest_failed", extra={"device_sn": serial_number})
        return 0

    logger.info(
        "attlog_ingested",
        extra={"device_sn": serial_number, "device_id": device.id, "inserted": len(rows)},
    )
    return len(rows)


def handle_device_push(
    db: Session,
    writer: DeviceLogWriter,
    *,
    serial_number: str | None,
    table: str | None,
    body: str | None,
    method: str,
    uri: str,
    query: str,
) -> int:
    device_sn = (serial_number or "").strip() or UNKNOWN_DEVICE_SN
    append_quietly(
        writer,
        DevicePushEntry(device_sn=device_sn, method=method, uri=uri, query=query, body=body or ""),
    )
    if not is_attlog_table(table):
        return 0
    return ingest_attlog(db, device_sn, body)


def handle_batch_push(
    db: Session,
    writer: DeviceLogWriter,
    items: list[DeviceBatchPushItem],
    *,
    method: str,
    uri: str,
) -> list[DeviceBatchPushResult]:
    results: list[DeviceBatchPushResult] = []
    for item in items:
        device_sn = (item.serial_number or "").strip() or UNKNOWN_DEVICE_SN
        table = (item.table or "").strip().lower()
        inserted = handle_device_push(
            db,
            writer,
            serial_number=device_sn,
            table=table,
            body=item.body,
            method=method,
            uri=uri,
            query=f"SN={device_sn}&table={table}",
        )
        results.append(DeviceBatchPushResult(serial_number=device_sn, table=table, inserted=inserted))
    return results
