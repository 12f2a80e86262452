#!/usr/bin/env python3
"""
Run the nightly billing job once, outside the HTTP server.

Same work as GET /api/cron/billing-process: sync billing_active for every user
with a live subscription, archive due charges into billing_history, then demote
pending cancellations. The run is recorded in cron_job_logs.

Run from project root with DATABASE_URL set:
  python scripts/run_billing_process.py
  python scripts/run_billing_process.py --date 2026-03-01
  DATABASE_URL='postgresql://...' python scripts/run_billing_process.py
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import date
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from dotenv import load_dotenv
load_dotenv(project_root / ".env")
load_dotenv(project_root / ".env.local")

_database_url = os.getenv("DATABASE_URL")
if _database_url and _database_url.startswith("postgres://"):
    os.environ["DATABASE_URL"] = "postgresql://" + _database_url[10:]

from app.core.exceptions import BillingRunError
from app.services.billing_processor import JOB_NAME, process_nightly_billing
from app.services.cron_logger import execute_with_logging


def main() -> None:
    parser = argparse.ArgumentParser(description="Run the nightly billing job once.")
    parser.add_argument("--date", help="Treat this YYYY-MM-DD as today (re-running a missed night)")
    args = parser.parse_args()

    if not os.getenv("DATABASE_URL"):
        print("ERROR: DATABASE_URL not set. Add it to .env or export it.")
        sys.exit(1)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    today = date.fromisoformat(args.date) if args.date else None
    try:
        summary = execute_with_logging(JOB_NAME, lambda: process_nightly_billing(today=today))
    except BillingRunError as e:
        print(f"❌ Billing run failed during {e.phase}: {e.message}")
        sys.exit(1)

    print(json.dumps(summary.to_dict(), indent=2, default=str))
    if summary.status == "error":
        sys.exit(2)


if __name__ == "__main__":
    main()
