"""
Operate availability scans from the CLI.

    python -m scripts.run_scan create --days 30
    python -m scripts.run_scan process <scan_id> --start 0 --size 50
    python -m scripts.run_scan resume --cycle
    python -m scripts.run_scan cancel <scan_id>
"""

from __future__ import annotations

import argparse
import json
import uuid
from dataclasses import asdict
from datetime import date
from typing import Any

from app.logging_utils import configure_logging
from app.scanning.errors import ScanError
from app.services.scan_service import get_scan_orchestrator


def _scan_payload(scan: Any) -> dict[str, Any]:
    payload = asdict(scan)
    payload["progress_percent"] = scan.progress_percent
    return payload


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run hotel availability scans.")
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create", help="Create a scan over all hotels.")
    create.add_argument("--base-check-in", type=date.fromisoformat, default=None)
    create.add_argument("--days", type=int, default=None)
    create.add_argument("--stay-nights", type=int, default=None)
    create.add_argument("--adults", type=int, default=None)
    create.add_argument("--source", dest="source_name", default=None)
    create.add_argument("--no-kick", action="store_true", help="Skip the first batch.")

    process = commands.add_parser("process", help="Process one slice of a scan.")
    process.add_argument("scan_id", type=uuid.UUID)
    process.add_argument("--start", type=int, default=0)
    process.add_argument("--size", type=int, default=None)

    resume = commands.add_parser("resume", help="Resume the oldest running scan.")
    resume.add_argument("--cycle", action="store_true", help="Keep resuming until the cycle budget runs out.")
    resume.add_argument("--budget", type=float, default=None, help="Cycle budget in seconds.")

    cancel = commands.add_parser("cancel", help="Cancel a queued or running scan.")
    cancel.add_argument("scan_id", type=uuid.UUID)
    return parser


def main() -> int:
    args = _build_parser().parse_args()
    configure_logging()
    orchestrator = get_scan_orchestrator()

    try:
        if args.command == "create":
            created = orchestrator.create_scan(
                base_check_in=args.base_check_in,
                days=args.days,
                stay_nights=args.stay_nights,
                adults=args.adults,
                source_name=args.source_name,
                kick=not args.no_kick,
            )
            payload: Any = {
                "scan": _scan_payload(created.scan),
                "first_batch": asdict(created.first_batch) if created.first_batch else None,
            }
        elif args.command == "process":
            payload = asdict(orchestrator.process_batch(args.scan_id, start_index=args.start, size=args.size))
        elif args.command == "resume" and args.cycle:
            payload = asdict(orchestrator.run_resume_cycle(budget_seconds=args.budget))
        elif args.command == "resume":
            result = orchestrator.resume()
            payload = {"message": result.message} if result.batch is None else asdict(result.batch)
        else:
            payload = _scan_payload(orchestrator.cancel(args.scan_id))
    except ScanError as exc:
        print(json.dumps({"error": str(exc)}, indent=2))
        return 1

    print(json.dumps(payload, indent=2, default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
