from typing import Any

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from attsync.db import get_db
from attsync.schemas import (
    AttendanceRecordListResponse,
    AttendanceRecordRead,
    RequeueRequest,
    RequeueResponse,
)
from attsync.services.listing import ListingParams, list_attendance_records
from attsync.services.query_params import (
    parse_bounded_int,
    parse_created_bound,
    parse_flag,
    parse_skip,
)
from attsync.services.reconciliation import reconcile_punches, requeue_parked
from attsync.settings import get_settings

router = APIRouter(tags=["sync"])


@router.get("/sync-emp-attendance")
def run_reconciliation(
    request: Request,
    db: Session = Depends(get_db),
    limit: str | None = Query(default=None),
    dry: str | None = Query(default=None),
) -> dict[str, Any]:
    settings = get_settings()
    take = parse_bounded_int(
        limit,
        default=settings.reconcile_default_limit,
        maximum=settings.reconcile_max_limit,
    )
    dry_run = parse_flag(dry, default=False)

    result = reconcile_punches(
        db,
        limit=take,
        dry_run=dry_run,
        max_attempts=max(0, settings.reconcile_max_attempts),
    )
    request.state.inserted = result.inserted
    return {"ok": True, **result.to_dict()}


@router.post("/sync-emp-attendance/requeue", response_model=RequeueResponse)
def requeue_parked_punches(
    payload: RequeueRequest,
    db: Session = Depends(get_db),
) -> RequeueResponse:
    return RequeueResponse(ok=True, requeued=requeue_parked(db, ids=payload.ids))


@router.get("/emp-attendance-logs", response_model=AttendanceRecordListResponse)
def list_employee_attendance(
    db: Session = Depends(get_db),
    take: str | None = Query(default=None),
    skip: str | None = Query(default=None),
    active_only: str | None = Query(default=None, alias="activeOnly"),
    created_from: str | None = Query(default=None, alias="from"),
    created_to: str | None = Query(default=None, alias="to"),
) -> AttendanceRecordListResponse:
    settings = get_settings()
    params = ListingParams(
        take=parse_bounded_int(
            take,
            default=settings.listing_default_take,
            maximum=settings.listing_max_take,
        ),
        skip=parse_skip(skip),
        active_only=parse_flag(active_only, default=False),
        created_from=parse_created_bound(created_from, name="from"),
        created_to=parse_created_bound(created_to, name="to", end_of_day=True),
    )
    items, total = list_attendance_records(db, params)
    return AttendanceRecordListResponse(
        ok=True,
        total=total,
        count=len(items),
        items=[AttendanceRecordRead.model_validate(item) for item in items],
    )
