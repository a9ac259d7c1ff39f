#!/usr/bin/env python3
"""
Manual / Backfill Profit Rollup

Recomputes daily profit rows and monthly rollups outside the scheduler.

Usage:
    python scripts/run_rollup.py [--client ID] [--start YYYY-MM-DD --end YYYY-MM-DD]
                                 [--fill-zeros] [--force] [--build-coverage]

Examples:
    # Rolling default window, all clients
    python scripts/run_rollup.py

    # Backfill one client for Q1, writing zero rows for empty days
    python scripts/run_rollup.py --client acme --start 2024-01-01 --end 2024-03-31 --fill-zeros

    # Rewrite old days past the lookback cutoff (bypasses both guards)
    python scripts/run_rollup.py --client acme --start 2023-06-01 --end 2023-06-30 --force
"""
import sys
import argparse
import json
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from profit_ledger.exceptions import InvalidWindowError
from profit_ledger.models.base import SessionLocal, init_db
from profit_ledger.services.rollup_engine import RollupEngine
from profit_ledger.utils.logger import log


def main(args) -> int:
    init_db()
    db = SessionLocal()
    try:
        engine = RollupEngine.from_session(db)
        result = engine.run_rollup(
            client_scope=args.client,
            start=args.start,
            end=args.end,
            fill_zeros=args.fill_zeros,
            force=args.force,
            build_coverage=args.build_coverage,
        )
    except InvalidWindowError as e:
        log.error(f"Invalid window: {e}")
        return 2
    finally:
        db.close()

    print(json.dumps(result.to_dict(), indent=2))
    return 0 if result.ok else 1


if __name__ == "__main__":
    parser = argparse.ArgumentParser(
        description="Recompute daily profit and monthly rollups",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--client", type=str, default=None,
        help="Single client id (default: all clients)"
    )
    parser.add_argument(
        "--start", type=str, default=None,
        help="Window start, YYYY-MM-DD (requires --end)"
    )
    parser.add_argument(
        "--end", type=str, default=None,
        help="Window end, YYYY-MM-DD (requires --start)"
    )
    parser.add_argument(
        "--fill-zeros", action="store_true",
        help="Write explicit zero rows for days with no activity"
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Bypass the lookback clamp and the zero-overwrite guard"
    )
    parser.add_argument(
        "--build-coverage", action="store_true",
        help="Rebuild COGS coverage from line items before computing"
    )

    sys.exit(main(parser.parse_args()))
