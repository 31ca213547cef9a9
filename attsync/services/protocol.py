"""Parser for the line-oriented ATTLOG payload pushed by attendance terminals.

Each non-empty line is one punch, fields separated by tabs or spaces::

    <user code> <date> <time> [status] [work code] [...]

The terminal cannot act on errors, so the parser never raises: lines it
cannot read are dropped.
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass

ATTLOG_TABLE = "attlog"
MIN_FIELDS = 3
DEFAULT_STATUS = "0"
DEFAULT_WORK_CODE = "0"

_LINE_BREAK_RE = re.compile(r"\r?\n|\r")
_FIELD_SEP_RE = re.compile(r"\s+")


@dataclass(frozen=True, slots=True)
class PunchLine:
    user_id: str
    log_time: str
    status: str
    work_code: str
    raw_line: str


def is_attlog_table(table: str | None) -> bool:
    return (table or "").strip().lower() == ATTLOG_TABLE


def parse_attlog_line(line: str) -> PunchLine | None:
    trimmed = line.strip()
    if not trimmed:
        return None
    fields = _FIELD_SEP_RE.split(trimmed)
    if len(fields) < MIN_FIELDS:
        return None
    return PunchLine(
        user_id=fields[0],
        log_time=f"{fields[1]} {fields[2]}",
        status=fields[3] if len(fields) > 3 else DEFAULT_STATUS,
        work_code=fields[4] if len(fields) > 4 else DEFAULT_WORK_CODE,
        raw_line=trimmed,
    )


def parse_attlog(body: str | None) -> Iterator[PunchLine]:
    if not body:
        return
    for line in _LINE_BREAK_RE.split(body):
        punch = parse_attlog_line(line)
        if punch is not None:
            yield punch
