#!/usr/bin/env python
from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text


EXPECTED_HEAD = "0001_initial"


def load_env_if_exists() -> None:
    env_file = Path(".env")
    if not env_file.exists():
        return
    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def run() -> dict:
    load_env_if_exists()
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL not found (.env or env vars).")

    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "database_url": database_url,
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append({"name": name, "status": status, "details": details})

    with engine.connect() as conn:
        tables = set(
            conn.execute(
                text(
                    """
                    select table_name
                    from information_schema.tables
                    where table_schema='public'
                    """
                )
            ).scalars()
        )

        current_versions: list[str] = []
        if "alembic_version" in tables:
            current_versions = [
                row[0]
                for row in conn.execute(text("select version_num from alembic_version")).fetchall()
            ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_HEAD, "current": current_versions},
        )

        required = ["devices", "employee_device_mappings", "raw_punches", "attendance_records"]
        missing = [table for table in required if table not in tables]
        add("missing_tables", "fail" if missing else "ok", {"missing": missing})
        if missing:
            return report

        backlog = conn.execute(
            text(
                """
                select
                    count(*) filter (where not processed and parked_at is null),
                    count(*) filter (where not processed and parked_at is not null),
                    min(created_at) filter (where not processed and parked_at is null)
                from raw_punches
                """
            )
        ).one()
        add(
            "raw_punch_backlog",
            "ok",
            {"unprocessed": backlog[0], "parked": backlog[1], "oldest_unprocessed": str(backlog[2])},
        )

        # processed must hold exactly when a canonical record points at the punch
        marked_without_record = conn.execute(
            text(
                """
                select r.id
                from raw_punches r
                left join attendance_records a on a.raw_punch_id = r.id
                where r.processed and a.id is null
                limit 20
                """
            )
        ).fetchall()
        add(
            "processed_without_attendance_record",
            "fail" if marked_without_record else "ok",
            {"sample_ids": [row[0] for row in marked_without_record]},
        )

        record_without_mark = conn.execute(
            text(
                """
                select a.id
                from attendance_records a
                join raw_punches r on r.id = a.raw_punch_id
                where not r.processed
                limit 20
                """
            )
        ).fetchall()
        add(
            "attendance_record_for_unprocessed_punch",
            "fail" if record_without_mark else "ok",
            {"sample_ids": [row[0] for row in record_without_mark]},
        )

        inactive_with_backlog = conn.execute(
            text(
                """
                select d.serial_number, count(*)
                from raw_punches r
                join devices d on d.id = r.device_id
                where not r.processed and d.status <> 'Active'
                group by d.serial_number
                """
            )
        ).fetchall()
        add(
            "backlog_on_inactive_devices",
            "warn" if inactive_with_backlog else "ok",
            {"rows": [list(row) for row in inactive_with_backlog]},
        )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2, default=str))
