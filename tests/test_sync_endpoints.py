from __future__ import annotations

import unittest
from collections.abc import Generator
from datetime import datetime
from unittest.mock import patch

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from attsync.db import Base, get_db
from attsync.main import app
from attsync.models import Device, DeviceStatus, EmployeeDeviceMapping, RawPunch
from attsync.services.device_log import NullDeviceLogWriter, get_device_log_writer
from attsync.services.reconciliation import reconcile_punches


def _build_session_factory() -> sessionmaker[Session]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def _punch(punch_id: int, *, device_id: int, code: str, created_at: datetime) -> RawPunch:
    return RawPunch(
        id=punch_id,
        device_id=device_id,
        device_serial=f"SN-{device_id}",
        device_emp_code=code,
        log_time="2024-01-05 08:00:00",
        status="0",
        work_code="0",
        raw_line=f"{code} 2024-01-05 08:00:00",
        processed=False,
        created_at=created_at,
    )


class SyncEndpointTests(unittest.TestCase):
    def setUp(self) -> None:
        self.session_factory = _build_session_factory()

        def _override_get_db() -> Generator[Session, None, None]:
            with self.session_factory() as session:
                yield session

        app.dependency_overrides[get_db] = _override_get_db
        app.dependency_overrides[get_device_log_writer] = NullDeviceLogWriter
        self.client = TestClient(app)

        with self.session_factory() as session:
            session.add_all(
                [
                    Device(id=1, serial_number="SN-1", name="Gate", status=DeviceStatus.ACTIVE, company_id=4),
                    Device(id=2, serial_number="SN-2", status=DeviceStatus.INACTIVE),
                ]
            )
            session.add(EmployeeDeviceMapping(device_id=1, device_emp_code="7", employee_id=42))
            session.add_all(
                [
                    _punch(1, device_id=1, code="7", created_at=datetime(2024, 1, 5, 8, 0)),
                    _punch(2, device_id=2, code="7", created_at=datetime(2024, 1, 6, 8, 0)),
                    _punch(3, device_id=1, code="8", created_at=datetime(2024, 1, 7, 8, 0)),
                ]
            )
            session.commit()

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def test_reconciliation_endpoint_returns_counters(self) -> None:
        response = self.client.get("/sync-emp-attendance", params={"limit": "1000", "dry": "0"})

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["ok"])
        self.assertFalse(body["dryRun"])
        self.assertEqual(body["picked"], 3)
        self.assertEqual(body["preMarkedProcessed"], 1)
        self.assertEqual(body["inserted"], 1)
        self.assertEqual(body["skippedNoDevice"], 0)
        self.assertEqual(body["skippedInactiveDevice"], 1)
        self.assertEqual(body["skippedNoMapping"], 1)
        self.assertEqual(len(body["details"]), 3)

    def test_reconciliation_dry_flag_and_lenient_limit(self) -> None:
        with patch("attsync.routers.sync.reconcile_punches", wraps=reconcile_punches) as spy:
            response = self.client.get("/sync-emp-attendance", params={"limit": "abc", "dry": "TRUE"})
            self.client.get("/sync-emp-attendance", params={"limit": "99999", "dry": "1"})
            self.client.get("/sync-emp-attendance", params={"limit": "0"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()["dryRun"])
        self.assertEqual(response.json()["inserted"], 0)
        self.assertEqual([call.kwargs["limit"] for call in spy.call_args_list], [1000, 5000, 1000])
        self.assertEqual([call.kwargs["dry_run"] for call in spy.call_args_list], [True, True, False])

    def test_reconciliation_failure_is_a_hard_error(self) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        with patch(
            "attsync.services.reconciliation._load_mappings",
            side_effect=RuntimeError("mapping lookup failed"),
        ):
            response = client.get("/sync-emp-attendance")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"]["code"], "INTERNAL_ERROR")

        listing = self.client.get("/cdata-batch", params={"activeOnly": "0"}).json()
        self.assertTrue(all(not item["processed"] for item in listing["items"]))

    def test_raw_listing_defaults_to_active_devices_newest_first(self) -> None:
        response = self.client.get("/cdata-batch")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 2)
        self.assertEqual(body["count"], 2)
        self.assertEqual([item["id"] for item in body["items"]], [3, 1])
        first = body["items"][0]
        self.assertEqual(first["deviceSN"], "SN-1")
        self.assertEqual(first["userId"], "8")
        self.assertEqual(first["logTime"], "2024-01-05 08:00:00")
        self.assertEqual(first["rawData"], "8 2024-01-05 08:00:00")
        self.assertFalse(first["processed"])
        self.assertEqual(first["device"]["deviceSN"], "SN-1")
        self.assertEqual(first["device"]["status"], "Active")

    def test_raw_listing_pagination_and_all_devices(self) -> None:
        response = self.client.get("/cdata-batch", params={"activeOnly": "false", "take": "1", "skip": "1"})

        body = response.json()
        self.assertEqual(body["total"], 3)
        self.assertEqual(body["count"], 1)
        self.assertEqual(body["items"][0]["id"], 2)

    def test_raw_listing_clamps_bad_paging_values(self) -> None:
        response = self.client.get("/cdata-batch", params={"take": "-5", "skip": "nope", "activeOnly": "0"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["count"], 3)

    def test_raw_listing_inclusive_date_range(self) -> None:
        response = self.client.get(
            "/cdata-batch",
            params={"activeOnly": "0", "from": "2024-01-06", "to": "2024-01-07T08:00:00"},
        )

        self.assertEqual([item["id"] for item in response.json()["items"]], [3, 2])

    def test_raw_listing_date_only_upper_bound_covers_whole_day(self) -> None:
        response = self.client.get(
            "/cdata-batch",
            params={"activeOnly": "0", "from": "2024-01-05", "to": "2024-01-06"},
        )

        self.assertEqual([item["id"] for item in response.json()["items"]], [2, 1])

    def test_raw_listing_rejects_unreadable_dates(self) -> None:
        response = self.client.get("/cdata-batch", params={"from": "last tuesday"})

        self.assertEqual(response.status_code, 422)
        self.assertEqual(response.json()["error"]["code"], "INVALID_DATE")

    def test_attendance_listing_after_reconciliation(self) -> None:
        self.client.get("/sync-emp-attendance")

        response = self.client.get("/emp-attendance-logs")

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body["total"], 1)
        record = body["items"][0]
        self.assertEqual(record["employeeId"], 42)
        self.assertEqual(record["rawPunchId"], 1)
        self.assertEqual(record["companyId"], 4)
        self.assertEqual(record["punchTimestamp"], "2024-01-05 08:00:00")
        self.assertFalse(record["exported"])

    def test_requeue_endpoint_without_parked_rows(self) -> None:
        response = self.client.post("/sync-emp-attendance/requeue", json={})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"ok": True, "requeued": 0})


if __name__ == "__main__":
    unittest.main()
