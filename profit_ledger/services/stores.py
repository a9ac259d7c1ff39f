"""
SQLAlchemy-backed collaborators for the rollup engine.

The engine only talks to these through a handful of methods, so tests
and alternative backends can pass any object with the same shape.
"""
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from profit_ledger.exceptions import CollaboratorError, PersistenceError
from profit_ledger.models.client import Client
from profit_ledger.models.metrics import DailyCogsCoverage, DailyMetric
from profit_ledger.models.profit import DailyProfitSummary, MonthlyRollup, RollupRun
from profit_ledger.services.merge_guard import GuardDecision, MergeGuard
from profit_ledger.services.monthly_rollup import MonthlyTotals
from profit_ledger.services.profit_calculator import CORE_METRICS, ProfitSummary
from profit_ledger.services.records import (
    CoverageRecord,
    DailyMetricRow,
    coverage_from_raw,
    rows_from_raw,
)
from profit_ledger.utils.logger import log

_DAILY_FIELDS = (
    "revenue", "orders", "units", "paid_spend", "mer",
    "est_cogs", "est_processing_fees", "est_fulfillment_costs",
    "est_other_variable_costs", "est_other_fixed_costs",
    "contribution_profit", "profit_mer",
    "product_cogs_known", "revenue_with_cogs", "units_with_cogs",
    "cogs_coverage_pct", "cost_mode",
)

_MONTHLY_FIELDS = (
    "days_count", "shopify_revenue", "shopify_orders", "shopify_units",
    "meta_spend", "google_spend", "total_ad_spend",
    "true_roas", "aov", "cpo",
    "est_cogs", "est_processing_fees", "est_fulfillment_costs",
    "est_other_variable_costs", "est_other_fixed_costs", "contribution_profit",
)


def _daily_to_dict(row: DailyProfitSummary) -> Dict[str, Any]:
    return {"client_id": row.client_id, "date": row.date, **{f: getattr(row, f) for f in _DAILY_FIELDS}}


def _monthly_to_dict(row: MonthlyRollup) -> Dict[str, Any]:
    return {"client_id": row.client_id, "month": row.month, **{f: getattr(row, f) for f in _MONTHLY_FIELDS}}


class SqlClientProvider:
    def __init__(self, db: Session):
        self.db = db

    def client_ids(self, scope: Optional[str] = None) -> List[str]:
        """One explicit client, or every known client"""
        if scope:
            return [scope]
        try:
            rows = self.db.query(Client.id).order_by(Client.id).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError("Client list unavailable", str(e), source="clients")
        return [str(r.id) for r in rows]


class SqlMetricsStore:
    def __init__(self, db: Session):
        self.db = db

    def fetch_rows(self, client_id: str, start: date, end: date) -> List[DailyMetricRow]:
        try:
            rows = self.db.query(DailyMetric).filter(
                DailyMetric.client_id == client_id,
                DailyMetric.date >= start,
                DailyMetric.date <= end,
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError("daily_metrics fetch failed", str(e), source="daily_metrics")

        payload = (
            {
                "date": r.date,
                "source": r.source,
                "spend": r.spend,
                "revenue": r.revenue,
                "orders": r.orders,
                "units": r.units,
            }
            for r in rows
        )
        return rows_from_raw(client_id, payload)


class SqlCoverageStore:
    def __init__(self, db: Session):
        self.db = db

    def fetch(self, client_id: str, start: date, end: date) -> Dict[date, CoverageRecord]:
        try:
            rows = self.db.query(DailyCogsCoverage).filter(
                DailyCogsCoverage.client_id == client_id,
                DailyCogsCoverage.date >= start,
                DailyCogsCoverage.date <= end,
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError("COGS coverage fetch failed", str(e), source="daily_cogs_coverage")

        coverage = {}
        for r in rows:
            record = coverage_from_raw({
                "date": r.date,
                "product_cogs_known": r.product_cogs_known,
                "revenue_with_cogs": r.revenue_with_cogs,
                "units_with_cogs": r.units_with_cogs,
            })
            if record is not None:
                coverage[record.date] = record
        return coverage

    def upsert(self, client_id: str, records: Iterable[CoverageRecord]) -> int:
        records = list(records)
        if not records:
            return 0
        try:
            existing = {
                r.date: r
                for r in self.db.query(DailyCogsCoverage).filter(
                    DailyCogsCoverage.client_id == client_id,
                    DailyCogsCoverage.date.in_([rec.date for rec in records]),
                )
            }
            for rec in records:
                row = existing.get(rec.date)
                if not row:
                    row = DailyCogsCoverage(client_id=client_id, date=rec.date)
                    self.db.add(row)
                row.product_cogs_known = rec.product_cogs_known
                row.revenue_with_cogs = rec.revenue_with_cogs
                row.units_with_cogs = rec.units_with_cogs
                row.updated_at = datetime.utcnow()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e), table="daily_cogs_coverage")
        return len(records)


class SqlProfitStore:
    def __init__(self, db: Session):
        self.db = db

    # ── Daily ──

    def fetch_daily(self, client_id: str, start: date, end: date) -> List[Dict[str, Any]]:
        try:
            rows = self.db.query(DailyProfitSummary).filter(
                DailyProfitSummary.client_id == client_id,
                DailyProfitSummary.date >= start,
                DailyProfitSummary.date <= end,
            ).order_by(DailyProfitSummary.date).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError("daily_profit_summary fetch failed", str(e), source="daily_profit_summary")
        return [_daily_to_dict(r) for r in rows]

    def commit_daily(
        self,
        client_id: str,
        proposals: List[ProfitSummary],
        guard: MergeGuard,
    ) -> Tuple[List[ProfitSummary], List[GuardDecision]]:
        """
        Guard + upsert for one client as a single transaction.

        Stored rows are re-read (locked where the backend supports it)
        right before the guard decides, then every committed day is
        written and the transaction commits once.
        """
        if not proposals:
            return [], []

        try:
            stored = {
                r.date: r
                for r in self.db.query(DailyProfitSummary).filter(
                    DailyProfitSummary.client_id == client_id,
                    DailyProfitSummary.date.in_([p.date for p in proposals]),
                ).with_for_update()
            }
            existing_core = {
                day: {metric: getattr(row, metric) for metric in CORE_METRICS}
                for day, row in stored.items()
            }

            to_write, decisions = guard.review(proposals, existing_core)

            now = datetime.utcnow()
            for proposal in to_write:
                values = proposal.as_row()
                row = stored.get(proposal.date)
                if not row:
                    row = DailyProfitSummary(client_id=client_id, date=proposal.date)
                    self.db.add(row)
                for field_name in _DAILY_FIELDS:
                    setattr(row, field_name, values[field_name])
                row.updated_at = now

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(getattr(e, "orig", None) or e), table="daily_profit_summary")

        return to_write, decisions

    # ── Monthly ──

    def replace_monthly(self, client_id: str, totals: List[MonthlyTotals]) -> int:
        """Full replace of each (client_id, month) row"""
        if not totals:
            return 0
        try:
            stored = {
                r.month: r
                for r in self.db.query(MonthlyRollup).filter(
                    MonthlyRollup.client_id == client_id,
                    MonthlyRollup.month.in_([t.month for t in totals]),
                ).with_for_update()
            }
            now = datetime.utcnow()
            for month_totals in totals:
                values = month_totals.as_row()
                row = stored.get(month_totals.month)
                if not row:
                    row = MonthlyRollup(client_id=client_id, month=month_totals.month)
                    self.db.add(row)
                for field_name in _MONTHLY_FIELDS:
                    setattr(row, field_name, values[field_name])
                row.updated_at = now
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(getattr(e, "orig", None) or e), table="monthly_rollup")
        return len(totals)

    def fetch_monthly(self, client_id: str, months: int = 12) -> List[Dict[str, Any]]:
        """Most recent `months` rows, returned oldest first"""
        rows = (
            self.db.query(MonthlyRollup)
            .filter(MonthlyRollup.client_id == client_id)
            .order_by(MonthlyRollup.month.desc())
            .limit(months)
            .all()
        )
        return [_monthly_to_dict(r) for r in reversed(rows)]

    # ── Run audit ──

    def record_run(self, summary: Dict[str, Any]) -> None:
        window = summary.get("window") or {}
        try:
            self.db.add(RollupRun(
                client_scope=summary.get("client_scope"),
                window_start=window.get("start"),
                window_end=window.get("end"),
                fill_zeros=bool(summary.get("fill_zeros")),
                force=bool(summary.get("force")),
                status=summary.get("status"),
                clients_processed=summary.get("clients_processed", 0),
                rows_upserted=summary.get("rows_upserted", 0),
                rows_suppressed=summary.get("rows_suppressed", 0),
                months_upserted=summary.get("months_upserted", 0),
                errors=summary.get("errors") or None,
                started_at=summary.get("started_at") or datetime.utcnow(),
                duration_seconds=summary.get("duration_seconds"),
            ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            log.warning(f"Could not record rollup run: {e}")

    def fetch_runs(self, limit: int = 20) -> List[Dict[str, Any]]:
        rows = self.db.query(RollupRun).order_by(RollupRun.id.desc()).limit(limit).all()
        return [
            {
                "id": r.id,
                "client_scope": r.client_scope,
                "window": {
                    "start": r.window_start.isoformat() if r.window_start else None,
                    "end": r.window_end.isoformat() if r.window_end else None,
                },
                "fill_zeros": r.fill_zeros,
                "force": r.force,
                "status": r.status,
                "clients_processed": r.clients_processed,
                "rows_upserted": r.rows_upserted,
                "rows_suppressed": r.rows_suppressed,
                "months_upserted": r.months_upserted,
                "errors": r.errors or [],
                "started_at": r.started_at.isoformat() if r.started_at else None,
                "duration_seconds": r.duration_seconds,
            }
            for r in rows
        ]
