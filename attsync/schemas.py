from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from attsync.models import DeviceStatus


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DeviceBatchPushItem(BaseModel):
    serial_number: str | None = Field(default=None, alias="SN")
    table: str | None = None
    body: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class DeviceBatchPushRequest(BaseModel):
    items: list[DeviceBatchPushItem] = Field(default_factory=list)


class DeviceBatchPushResult(BaseModel):
    serial_number: str = Field(alias="SN")
    table: str
    inserted: int

    model_config = ConfigDict(populate_by_name=True)


class DeviceBatchPushResponse(BaseModel):
    ok: bool = True
    results: list[DeviceBatchPushResult]


class DeviceSummary(CamelModel):
    id: int
    serial_number: str = Field(alias="deviceSN")
    name: str | None = None
    make: str | None = None
    model: str | None = None
    status: DeviceStatus


class RawPunchRead(CamelModel):
    id: int
    device_id: int | None
    device_serial: str = Field(alias="deviceSN")
    device_emp_code: str = Field(alias="userId")
    log_time: str
    status: str
    work_code: str
    raw_line: str = Field(alias="rawData")
    processed: bool
    reconcile_attempts: int
    last_skip_reason: str | None = None
    parked_at: datetime | None = None
    created_at: datetime
    device: DeviceSummary | None = None


class RawPunchListResponse(CamelModel):
    ok: bool = True
    total: int
    count: int
    items: list[RawPunchRead]


class AttendanceRecordRead(CamelModel):
    id: int
    service_provider_id: int
    company_id: int
    branch_id: int
    device_id: int | None
    employee_id: int
    raw_punch_id: int | None
    punch_timestamp: str
    latitude: float | None = None
    longitude: float | None = None
    google_map_link: str | None = None
    location: str | None = None
    mobile_device_id: str | None = None
    mobile_device_info: str | None = None
    exported: bool
    created_at: datetime


class AttendanceRecordListResponse(CamelModel):
    ok: bool = True
    total: int
    count: int
    items: list[AttendanceRecordRead]


class RequeueRequest(BaseModel):
    ids: list[int] | None = Field(default=None, max_length=5000)


class RequeueResponse(BaseModel):
    ok: bool = True
    requeued: int
