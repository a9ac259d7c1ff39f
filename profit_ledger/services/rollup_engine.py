"""
Rollup Engine

Orchestrates one batch run:

    for each client:
        Resolver -> metrics fetch -> (coverage build) -> coverage fetch
        -> Computer (per day) -> Guard + upsert (one transaction)
        -> Monthly rollup over the whole months touched by the window

One client's failure is recorded in `errors` and the batch moves on.
Only failures to start the job (bad window, client list unavailable)
propagate to the caller.
"""
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlalchemy.orm import Session

from profit_ledger.config import Settings, get_settings
from profit_ledger.exceptions import InvalidWindowError
from profit_ledger.services.cost_settings import CostSettingsResolver, CostSettingsStore
from profit_ledger.services.coverage_builder import CoverageBuilder
from profit_ledger.services.merge_guard import GuardState, MergeGuard, clamp_window
from profit_ledger.services.monthly_rollup import aggregate_monthly
from profit_ledger.services.profit_calculator import compute_daily_profit
from profit_ledger.services.records import PAID_SOURCES, aggregate_by_day
from profit_ledger.services.stores import (
    SqlClientProvider,
    SqlCoverageStore,
    SqlMetricsStore,
    SqlProfitStore,
)
from profit_ledger.utils.dates import (
    date_range_inclusive,
    default_window,
    full_month_span,
    parse_iso_day,
    utc_today,
)
from profit_ledger.utils.logger import log

DayInput = Union[str, date, None]


@dataclass
class RollupResult:
    """Summary of one engine run (also what the HTTP trigger returns)"""
    client_scope: Optional[str] = None
    window_start: Optional[date] = None
    window_end: Optional[date] = None
    requested_start: Optional[date] = None
    fill_zeros: bool = False
    force: bool = False
    status: str = "success"  # success, partial, failed
    clients_processed: int = 0
    rows_upserted: int = 0
    rows_suppressed: int = 0
    months_upserted: int = 0
    coverage_rows: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.status != "failed" and not self.errors

    def add_error(self, client_id: Optional[str], error: Exception) -> None:
        self.errors.append({"client_id": client_id, "error": str(error)})

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "status": self.status,
            "client_scope": self.client_scope,
            "window": {
                "start": self.window_start.isoformat() if self.window_start else None,
                "end": self.window_end.isoformat() if self.window_end else None,
            },
            "requested_start": self.requested_start.isoformat() if self.requested_start else None,
            "fill_zeros": self.fill_zeros,
            "force": self.force,
            "clients_processed": self.clients_processed,
            "rows_upserted": self.rows_upserted,
            "rows_suppressed": self.rows_suppressed,
            "months_upserted": self.months_upserted,
            "coverage_rows": self.coverage_rows,
            "errors": list(self.errors),
            "duration_seconds": round(self.duration_seconds, 3),
        }

    def audit_record(self) -> Dict[str, Any]:
        record = self.to_dict()
        record["window"] = {"start": self.window_start, "end": self.window_end}
        record["started_at"] = self.started_at
        record["duration_seconds"] = self.duration_seconds
        return record


def resolve_window(
    start: DayInput,
    end: DayInput,
    default_days: int,
    today: Optional[date] = None,
) -> Tuple[date, date]:
    """
    Caller-supplied window -> (start, end).

    Neither bound given: rolling default window ending yesterday.
    Exactly one bound given, unparseable days, or start > end raise
    InvalidWindowError.
    """
    if start is None and end is None:
        return default_window(default_days, today)
    if start is None or end is None:
        missing = "start" if start is None else "end"
        raise InvalidWindowError(missing, "start and end must be given together")

    start_day = start if isinstance(start, date) else parse_iso_day(start, "start")
    end_day = end if isinstance(end, date) else parse_iso_day(end, "end")
    if start_day > end_day:
        raise InvalidWindowError("start", "must be on or before end", start_day.isoformat())
    return start_day, end_day


@contextmanager
def track_run(profit_store, result: RollupResult):
    """
    Time the run, settle its status and write the rollup_runs audit row.

    Usage:
        with track_run(store, result):
            ...  # fill in result counts
    """
    result.started_at = datetime.utcnow()
    start_time = time.time()

    try:
        yield result
    except Exception as e:
        result.status = "failed"
        result.add_error(None, e)
        log.error(f"Rollup run failed to start: {e}")
        raise
    finally:
        result.duration_seconds = time.time() - start_time
        if result.status != "failed" and result.errors:
            result.status = "partial" if result.clients_processed > 0 else "failed"
        profit_store.record_run(result.audit_record())


class RollupEngine:
    """
    Usage:
        engine = RollupEngine.from_session(db)
        result = engine.run_rollup(start="2024-03-01", end="2024-03-31")

    Collaborators are injected; any object with the same methods works.
    """

    def __init__(
        self,
        client_provider,
        metrics_store,
        coverage_store,
        settings_resolver,
        profit_store,
        settings: Optional[Settings] = None,
        today: Optional[date] = None,
        coverage_builder=None,
    ):
        self.client_provider = client_provider
        self.metrics_store = metrics_store
        self.coverage_store = coverage_store
        self.settings_resolver = settings_resolver
        self.profit_store = profit_store
        self.settings = settings or get_settings()
        self.today = today
        self.coverage_builder = coverage_builder

    @classmethod
    def from_session(cls, db: Session, settings: Optional[Settings] = None, today: Optional[date] = None):
        settings = settings or get_settings()
        return cls(
            client_provider=SqlClientProvider(db),
            metrics_store=SqlMetricsStore(db),
            coverage_store=SqlCoverageStore(db),
            settings_resolver=CostSettingsResolver(CostSettingsStore(db), settings.fallback_gross_margin),
            profit_store=SqlProfitStore(db),
            settings=settings,
            today=today,
            coverage_builder=CoverageBuilder(db),
        )

    def run_rollup(
        self,
        client_scope: Optional[str] = None,
        start: DayInput = None,
        end: DayInput = None,
        fill_zeros: bool = False,
        force: bool = False,
        build_coverage: bool = False,
    ) -> RollupResult:
        today = self.today or utc_today()
        start_day, end_day = resolve_window(start, end, self.settings.default_window_days, today)
        window = clamp_window(start_day, end_day, today, self.settings.max_lookback_days, force)

        result = RollupResult(
            client_scope=client_scope,
            window_start=window.start,
            window_end=window.end,
            requested_start=window.requested_start,
            fill_zeros=fill_zeros,
            force=force,
        )

        with track_run(self.profit_store, result):
            client_ids = self.client_provider.client_ids(client_scope)

            if window.is_empty:
                log.info(
                    f"Window {window.requested_start.isoformat()}..{window.end.isoformat()} lies "
                    f"entirely before the lookback cutoff; nothing to do"
                )
                return result

            log.info(
                f"Rollup starting: {len(client_ids)} client(s), "
                f"{window.start.isoformat()}..{window.end.isoformat()} "
                f"fill_zeros={fill_zeros} force={force}"
            )

            for client_id in client_ids:
                try:
                    self._run_client(client_id, window.start, window.end, fill_zeros, force, build_coverage, result)
                    result.clients_processed += 1
                except Exception as e:
                    log.error(f"Rollup failed for client {client_id}: {e}")
                    result.add_error(client_id, e)

        log.info(
            f"Rollup finished: {result.clients_processed} client(s), {result.rows_upserted} rows, "
            f"{result.rows_suppressed} suppressed, {result.months_upserted} months, "
            f"{len(result.errors)} error(s)"
        )
        return result

    def _run_client(
        self,
        client_id: str,
        start: date,
        end: date,
        fill_zeros: bool,
        force: bool,
        build_coverage: bool,
        result: RollupResult,
    ) -> None:
        cost_settings = self.settings_resolver.resolve(client_id)

        by_day = aggregate_by_day(self.metrics_store.fetch_rows(client_id, start, end))

        if build_coverage and self.coverage_builder is not None:
            result.coverage_rows += self.coverage_builder.sync(client_id, start, end, by_day)

        coverage = self.coverage_store.fetch(client_id, start, end)

        days = date_range_inclusive(start, end) if fill_zeros else sorted(d for d in by_day if start <= d <= end)

        proposals = []
        for day in days:
            totals = by_day.get(day)
            proposals.append(compute_daily_profit(
                day=day,
                revenue=totals.revenue if totals else 0.0,
                orders=totals.orders if totals else 0.0,
                units=totals.units if totals else 0.0,
                paid_spend=totals.paid_spend if totals else 0.0,
                settings=cost_settings,
                coverage=coverage.get(day),
                client_id=client_id,
                actual_threshold=self.settings.cost_mode_actual_threshold,
                hybrid_threshold=self.settings.cost_mode_hybrid_threshold,
            ))

        written, decisions = self.profit_store.commit_daily(client_id, proposals, MergeGuard(force=force))
        result.rows_upserted += len(written)
        result.rows_suppressed += sum(1 for d in decisions if d.state == GuardState.SUPPRESSED)

        month_from, month_to = full_month_span(start, end)
        daily_rows = self.profit_store.fetch_daily(client_id, month_from, month_to)
        spend_rows = [
            row for row in self.metrics_store.fetch_rows(client_id, month_from, month_to)
            if row.source in PAID_SOURCES
        ]
        result.months_upserted += self.profit_store.replace_monthly(
            client_id, aggregate_monthly(client_id, daily_rows, spend_rows)
        )

        log.debug(f"Client {client_id}: {len(written)}/{len(proposals)} days written")
