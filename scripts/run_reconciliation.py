#!/usr/bin/env python
"""One reconciliation pass, for cron or any external scheduler.

Exit code is 0 on success and 1 when the pass failed and was rolled back.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from attsync.db import SessionLocal
from attsync.logging_utils import setup_json_logging
from attsync.services.query_params import parse_bounded_int
from attsync.services.reconciliation import reconcile_punches
from attsync.settings import get_settings

logger = logging.getLogger("attsync.reconciliation_cli")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile unprocessed raw punches.")
    parser.add_argument("--limit", default=None, help="batch size (default from settings)")
    parser.add_argument("--dry-run", action="store_true", help="classify only, write nothing")
    parser.add_argument("--details", action="store_true", help="include per-punch details in output")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    setup_json_logging()
    args = _parse_args(argv)
    settings = get_settings()
    limit = parse_bounded_int(
        args.limit,
        default=settings.reconcile_default_limit,
        maximum=settings.reconcile_max_limit,
    )

    try:
        with SessionLocal() as session:
            result = reconcile_punches(
                session,
                limit=limit,
                dry_run=args.dry_run,
                max_attempts=max(0, settings.reconcile_max_attempts),
            )
    except Exception:
        logger.exception("reconciliation_cli_failed", extra={"limit": limit})
        return 1

    output = result.to_dict()
    if not args.details:
        output.pop("details")
    print(json.dumps({"ok": True, **output}, ensure_ascii=False, indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
