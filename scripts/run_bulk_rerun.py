#!/usr/bin/env python3
"""Rerun failed and low-scoring analyses locally.

Usage:
    python scripts/run_bulk_rerun.py
    python scripts/run_bulk_rerun.py --family eureka
    python scripts/run_bulk_rerun.py --id <submission-id> --id <submission-id>

Dispatches onto a local worker pool and waits for the reruns to finish.
Exits 0 when every rerun was dispatched, 1 otherwise.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from pitchflow.db.session import SessionLocal
from pitchflow.pipeline.dispatch import ThreadPoolDispatcher
from pitchflow.services.rerun import rerun_submissions


def main() -> int:
    parser = argparse.ArgumentParser(description="Rerun failed and low-scoring analyses")
    parser.add_argument("--family", choices=("eureka", "barc", "deck"), help="Only this form family")
    parser.add_argument("--id", dest="ids", action="append", help="Submission id (repeatable)")
    parser.add_argument("--workers", type=int, default=2, help="Concurrent analyses")
    args = parser.parse_args()

    dispatcher = ThreadPoolDispatcher(max_workers=args.workers)
    db = SessionLocal()
    try:
        summary = rerun_submissions(db, dispatcher, submission_ids=args.ids, family=args.family)
        print(f"processed={summary.processed} failed={summary.failed} total={summary.total}")
        for result in summary.results:
            if not result["success"]:
                print(f"error submission_id={result['submissionId']}: {result['error']}", file=sys.stderr)
        return 0 if summary.failed == 0 else 1
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    finally:
        db.close()
        dispatcher.shutdown(wait=True)


if __name__ == "__main__":
    sys.exit(main())
