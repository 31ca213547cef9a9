import asyncio

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from attsync.db import get_db
from attsync.schemas import (
    DeviceBatchPushRequest,
    DeviceBatchPushResponse,
    RawPunchListResponse,
    RawPunchRead,
)
from attsync.services.device_log import DeviceLogWriter, get_device_log_writer
from attsync.services.ingestion import handle_batch_push, handle_device_push
from attsync.services.listing import ListingParams, list_raw_punches
from attsync.services.query_params import (
    parse_bounded_int,
    parse_created_bound,
    parse_flag,
    parse_skip,
)
from attsync.settings import get_settings

router = APIRouter(tags=["devices"])

DEVICE_ACK = "OK"


def _decode_body(raw: bytes) -> str:
    return raw.decode("utf-8", errors="replace")


@router.post("/cdata.aspx", response_class=PlainTextResponse)
@router.post("/iclock/cdata", response_class=PlainTextResponse)
async def receive_device_push(
    request: Request,
    db: Session = Depends(get_db),
    writer: DeviceLogWriter = Depends(get_device_log_writer),
) -> PlainTextResponse:
    serial_number = request.query_params.get("SN")
    table = request.query_params.get("table")
    body = _decode_body(await request.body())
    request.state.device_sn = serial_number

    inserted = await asyncio.to_thread(
        handle_device_push,
        db,
        writer,
        serial_number=serial_number,
        table=table,
        body=body,
        method=request.method,
        uri=str(request.url.path) + (f"?{request.url.query}" if request.url.query else ""),
        query=request.url.query,
    )
    request.state.inserted = inserted
    return PlainTextResponse(DEVICE_ACK)


@router.post("/cdata-batch", response_model=DeviceBatchPushResponse)
def receive_device_batch(
    payload: DeviceBatchPushRequest,
    request: Request,
    db: Session = Depends(get_db),
    writer: DeviceLogWriter = Depends(get_device_log_writer),
) -> DeviceBatchPushResponse:
    results = handle_batch_push(
        db,
        writer,
        payload.items,
        method=request.method,
        uri=str(request.url.path),
    )
    request.state.inserted = sum(item.inserted for item in results)
    return DeviceBatchPushResponse(ok=True, results=results)


@router.get("/cdata-batch", response_model=RawPunchListResponse)
def list_device_punches(
    db: Session = Depends(get_db),
    take: str | None = Query(default=None),
    skip: str | None = Query(default=None),
    active_only: str | None = Query(default=None, alias="activeOnly"),
    created_from: str | None = Query(default=None, alias="from"),
    created_to: str | None = Query(default=None, alias="to"),
) -> RawPunchListResponse:
    settings = get_settings()
    params = ListingParams(
        take=parse_bounded_int(
            take,
            default=settings.listing_default_take,
            maximum=settings.listing_max_take,
        ),
        skip=parse_skip(skip),
        active_only=parse_flag(active_only, default=True),
        created_from=parse_created_bound(created_from, name="from"),
        created_to=parse_created_bound(created_to, name="to", end_of_day=True),
    )
    items, total = list_raw_punches(db, params)
    return RawPunchListResponse(
        ok=True,
        total=total,
        count=len(items),
        items=[RawPunchRead.model_validate(item) for item in items],
    )
