"""
Scheduler for the nightly profit rollup

Uses APScheduler to run the rolling window (yesterday back
`default_window_days`) for every client on `rollup_schedule`.
"""
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
import asyncio
from typing import Optional

from profit_ledger.config import get_settings
from profit_ledger.models.base import SessionLocal
from profit_ledger.services.rollup_engine import RollupEngine
from profit_ledger.utils.logger import log

settings = get_settings()
scheduler = AsyncIOScheduler()


def run_rolling_rollup(client_scope: Optional[str] = None, fill_zeros: bool = True) -> dict:
    """Run the default rolling window once and return the run summary"""
    db = SessionLocal()
    try:
        engine = RollupEngine.from_session(db, settings=settings)
        result = engine.run_rollup(client_scope=client_scope, fill_zeros=fill_zeros, build_coverage=True)
        return result.to_dict()
    finally:
        db.close()


async def rolling_rollup_job():
    """Nightly rolling-window rollup for all clients"""
    try:
        log.info("Starting scheduled profit rollup...")
        summary = run_rolling_rollup()
        if summary["ok"]:
            log.info(
                f"Scheduled rollup completed: {summary['clients_processed']} clients, "
                f"{summary['rows_upserted']} rows in {summary['duration_seconds']:.1f}s"
            )
        else:
            log.warning(f"Scheduled rollup finished with {len(summary['errors'])} error(s)")
    except Exception as e:
        log.error(f"Scheduled rollup error: {str(e)}")


def setup_scheduler():
    """
    Register jobs.

    Rollup: `settings.rollup_schedule` (crontab) in `settings.scheduler_timezone`.
    """
    scheduler.add_job(
        rolling_rollup_job,
        trigger=CronTrigger.from_crontab(settings.rollup_schedule, timezone=settings.scheduler_timezone),
        id='profit_rollup',
        name='Rolling Profit Rollup',
        replace_existing=True,
        max_instances=1
    )


def start_scheduler():
    """Start the scheduler"""
    if not settings.enable_scheduler:
        log.info("Scheduler disabled (ENABLE_SCHEDULER=false)")
        return
    setup_scheduler()
    scheduler.start()
    log.info("Scheduler started")


def stop_scheduler():
    """Stop the scheduler"""
    if scheduler.running:
        scheduler.shutdown()
        log.info("Scheduler stopped")


def get_scheduled_jobs() -> list:
    """List of job info dicts"""
    jobs = []

    for job in scheduler.get_jobs():
        next_run = getattr(job, "next_run_time", None)
        jobs.append({
            'id': job.id,
            'name': job.name,
            'next_run': next_run.isoformat() if next_run else None,
            'trigger': str(job.trigger)
        })

    return jobs


async def _serve():
    start_scheduler()
    try:
        while True:
            await asyncio.sleep(1)
    finally:
        stop_scheduler()


if __name__ == "__main__":
    import sys

    if len(sys.argv) < 2:
        print("Usage: python -m profit_ledger.scheduler <command> [client_id]")
        print("\nCommands:")
        print("  start              Start the scheduler")
        print("  run [client_id]    Run the rolling rollup now")
        print("  list               List all scheduled jobs")
        sys.exit(1)

    command = sys.argv[1]

    if command == "start":
        print("Starting scheduler...")
        try:
            asyncio.run(_serve())
        except (KeyboardInterrupt, SystemExit):
            print("\nShutting down scheduler...")

    elif command == "run":
        client_id = sys.argv[2] if len(sys.argv) > 2 else None
        summary = run_rolling_rollup(client_scope=client_id)

        if summary["ok"]:
            print(f"✓ {summary['clients_processed']} clients, {summary['rows_upserted']} rows upserted")
        else:
            for error in summary["errors"]:
                print(f"✗ {error['client_id']}: {error['error']}")
            sys.exit(1)

    elif command == "list":
        print("\nScheduled Jobs:")
        print("-" * 80)

        setup_scheduler()
        jobs = get_scheduled_jobs()

        if not jobs:
            print("No jobs scheduled")
        else:
            for job in jobs:
                print(f"\nID:       {job['id']}")
                print(f"Name:     {job['name']}")
                print(f"Next Run: {job['next_run']}")
                print(f"Trigger:  {job['trigger']}")

    else:
        print(f"Unknown command: {command}")
        sys.exit(1)
