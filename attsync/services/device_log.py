from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol

from attsync.settings import get_settings

logger = logging.getLogger("attsync.device_log")

UNKNOWN_DEVICE_SN = "UNKNOWN"
_UNSAFE_FILE_CHARS_RE = re.compile(r"[^a-zA-Z0-9._-]")


@dataclass(frozen=True, slots=True)
class DevicePushEntry:
    device_sn: str
    method: str
    uri: str
    query: str
    body: str


class DeviceLogWriter(Protocol):
    def append(self, entry: DevicePushEntry) -> None: ...


def sanitize_device_sn(device_sn: str | None) -> str:
    cleaned = _UNSAFE_FILE_CHARS_RE.sub("_", device_sn or "")
    return cleaned or UNKNOWN_DEVICE_SN


def format_entry(entry: DevicePushEntry, *, now: datetime | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y-%m-%d %H:%M:%S")
    return (
        f"[{stamp}]\n"
        f"METHOD: {entry.method}\n"
        f"URL: {entry.uri}\n"
        f"QUERY: {entry.query}\n"
        f"BODY:\n{entry.body}\n\n"
    )


class FileDeviceLogWriter:
    """Appends every push to ``<log_dir>/<serial>.txt``.

    Failures are logged and dropped; a broken disk must never turn into a
    non-200 answer to a terminal.
    """

    def __init__(self, log_dir: str | Path):
        self.log_dir = Path(log_dir)

    def path_for(self, device_sn: str | None) -> Path:
        return self.log_dir / f"{sanitize_device_sn(device_sn)}.txt"

    def append(self, entry: DevicePushEntry) -> None:
        try:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            with self.path_for(entry.device_sn).open("a", encoding="utf-8") as handle:
                handle.write(format_entry(entry))
        except OSError as exc:
            logger.warning(
                "device_log_write_failed",
                extra={"device_sn": entry.device_sn, "error": exc.__class__.__name__},
            )


class NullDeviceLogWriter:
    def append(self, entry: DevicePushEntry) -> None:
        return None


def get_device_log_writer() -> DeviceLogWriter:
    settings = get_settings()
    if not settings.device_log_enabled:
        return NullDeviceLogWriter()
    return FileDeviceLogWriter(settings.device_log_dir)


def append_quietly(writer: DeviceLogWriter, entry: DevicePushEntry) -> None:
    # Writer errors never reach the request path.
    try:
        writer.append(entry)
    except Exception:
        logger.warning("device_log_writer_error", extra={"device_sn": entry.device_sn}, exc_info=True)
