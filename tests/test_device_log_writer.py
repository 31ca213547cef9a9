from __future__ import annotations

import tempfile
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from attsync.services.device_log import (
    DevicePushEntry,
    FileDeviceLogWriter,
    NullDeviceLogWriter,
    append_quietly,
    format_entry,
    get_device_log_writer,
    sanitize_device_sn,
)
from attsync.settings import Settings


def _entry(device_sn: str = "CQZ7232160084") -> DevicePushEntry:
    return DevicePushEntry(
        device_sn=device_sn,
        method="POST",
        uri="/cdata.aspx?SN=CQZ7232160084&table=ATTLOG",
        query="SN=CQZ7232160084&table=ATTLOG",
        body="7\t2024-01-05 08:01:00",
    )


class DeviceLogWriterTests(unittest.TestCase):
    def test_sanitize_device_sn(self) -> None:
        self.assertEqual(sanitize_device_sn("CQZ-72.32_16"), "CQZ-72.32_16")
        self.assertEqual(sanitize_device_sn("../etc/passwd"), ".._etc_passwd")
        self.assertEqual(sanitize_device_sn(""), "UNKNOWN")
        self.assertEqual(sanitize_device_sn(None), "UNKNOWN")

    def test_format_entry_layout(self) -> None:
        text = format_entry(_entry(), now=datetime(2024, 1, 5, 8, 1, 2))

        self.assertEqual(
            text,
            "[2024-01-05 08:01:02]\n"
            "METHOD: POST\n"
            "URL: /cdata.aspx?SN=CQZ7232160084&table=ATTLOG\n"
            "QUERY: SN=CQZ7232160084&table=ATTLOG\n"
            "BODY:\n7\t2024-01-05 08:01:00\n\n",
        )

    def test_file_writer_appends_per_device(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            writer = FileDeviceLogWriter(Path(tmp) / "logs")
            writer.append(_entry())
            writer.append(_entry())
            writer.append(_entry("OTHER/SN"))

            content = (Path(tmp) / "logs" / "CQZ7232160084.txt").read_text(encoding="utf-8")
            self.assertEqual(content.count("METHOD: POST"), 2)
            self.assertTrue((Path(tmp) / "logs" / "OTHER_SN.txt").exists())

    def test_file_writer_swallows_os_errors(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            blocker = Path(tmp) / "not-a-dir"
            blocker.write_text("x", encoding="utf-8")
            writer = FileDeviceLogWriter(blocker)

            writer.append(_entry())

    def test_append_quietly_contains_foreign_writer_errors(self) -> None:
        class _Exploding:
            def append(self, entry: DevicePushEntry) -> None:
                raise ValueError("boom")

        append_quietly(_Exploding(), _entry())

    def test_writer_follows_settings(self) -> None:
        with patch("attsync.services.device_log.get_settings", return_value=Settings(device_log_enabled=False)):
            self.assertIsInstance(get_device_log_writer(), NullDeviceLogWriter)

        with patch(
            "attsync.services.device_log.get_settings",
            return_value=Settings(device_log_enabled=True, device_log_dir="device-logs"),
        ):
            writer = get_device_log_writer()
        self.assertIsInstance(writer, FileDeviceLogWriter)
        self.assertEqual(writer.log_dir, Path("device-logs"))


if __name__ == "__main__":
    unittest.main()
