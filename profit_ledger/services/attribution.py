"""
Windowed Attribution Calculator

For each visible day d and forward window w:

    roas_w = sum(tracked_revenue[d .. d+w-1]) / spend[d]
    mer_w  = sum(revenue[d .. d+w-1]) / sum(total_cost[d .. d+w-1])

Both are 0 when the denominator is 0. Forward sums come from prefix sums
over a series that extends w-1 days past the visible end, so the cost is
O(n) regardless of w.

Also home to the before/after event comparison used by the dashboard.
"""
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Mapping

from sqlalchemy.orm import Session

from profit_ledger.config import get_settings
from profit_ledger.exceptions import InvalidWindowError
from profit_ledger.services.records import aggregate_by_day
from profit_ledger.services.stores import SqlMetricsStore, SqlProfitStore
from profit_ledger.utils.dates import date_range_inclusive, to_day_key
from profit_ledger.utils.helpers import finite, safe_divide, to_number

_COST_FIELDS = (
    "paid_spend",
    "est_cogs",
    "est_processing_fees",
    "est_fulfillment_costs",
    "est_other_variable_costs",
    "est_other_fixed_costs",
)


@dataclass(frozen=True)
class AttributionPoint:
    date: date
    spend: float
    rev_tracked_w: float
    rev_total_w: float
    cost_w: float
    roas_w: float
    mer_w: float

    def to_dict(self) -> Dict[str, Any]:
        row = asdict(self)
        row["date"] = self.date.isoformat()
        return row


def prefix_sums(values: List[float]) -> List[float]:
    """prefix[i] = sum(values[:i]); len(prefix) == len(values) + 1"""
    prefix = [0.0]
    running = 0.0
    for value in values:
        running += finite(value)
        prefix.append(running)
    return prefix


def day_total_cost(row: Mapping[str, Any]) -> float:
    """paid_spend plus every estimated cost component of a daily summary"""
    return sum(to_number(row.get(field_name)) for field_name in _COST_FIELDS)


def forward_window_series(
    start: date,
    end: date,
    window_days: int,
    spend_by_day: Mapping[date, float],
    tracked_by_day: Mapping[date, float],
    revenue_by_day: Mapping[date, float],
    cost_by_day: Mapping[date, float],
) -> List[AttributionPoint]:
    """One AttributionPoint per day in [start, end]"""
    if window_days < 1:
        raise InvalidWindowError("window", "must be at least 1 day", window_days)
    if start > end:
        raise InvalidWindowError("start", "must be on or before end", start.isoformat())

    visible = date_range_inclusive(start, end)
    full = date_range_inclusive(start, end + timedelta(days=window_days - 1))

    tracked_prefix = prefix_sums([tracked_by_day.get(d, 0.0) for d in full])
    revenue_prefix = prefix_sums([revenue_by_day.get(d, 0.0) for d in full])
    cost_prefix = prefix_sums([cost_by_day.get(d, 0.0) for d in full])

    series = []
    for i, day in enumerate(visible):
        spend = finite(spend_by_day.get(day, 0.0))
        tracked_w = tracked_prefix[i + window_days] - tracked_prefix[i]
        revenue_w = revenue_prefix[i + window_days] - revenue_prefix[i]
        cost_w = cost_prefix[i + window_days] - cost_prefix[i]

        series.append(AttributionPoint(
            date=day,
            spend=spend,
            rev_tracked_w=tracked_w,
            rev_total_w=revenue_w,
            cost_w=cost_w,
            roas_w=safe_divide(tracked_w, spend) if spend > 0 else 0.0,
            mer_w=safe_divide(revenue_w, cost_w) if cost_w > 0 else 0.0,
        ))

    return series


def compare_event_window(
    rows: Iterable[Mapping[str, Any]],
    event_date: date,
    window_days: int,
) -> Dict[str, Any]:
    """
    Before/after totals around an event.

    "after" covers event_date .. event_date + window_days - 1, "before"
    the same number of days immediately preceding the event.
    """
    if window_days < 1:
        raise InvalidWindowError("window", "must be at least 1 day", window_days)

    after_start = event_date
    after_end = event_date + timedelta(days=window_days - 1)
    before_end = event_date - timedelta(days=1)
    before_start = event_date - timedelta(days=window_days)

    def empty():
        return {"revenue": 0.0, "orders": 0.0, "paid_spend": 0.0, "contribution_profit": 0.0}

    before, after = empty(), empty()
    for row in rows:
        day = to_day_key(row.get("date"))
        if day is None:
            continue
        if before_start <= day <= before_end:
            bucket = before
        elif after_start <= day <= after_end:
            bucket = after
        else:
            continue
        for key in bucket:
            bucket[key] += to_number(row.get(key))

    def finish(bucket, start, end):
        return {
            "start": start.isoformat(),
            "end": end.isoformat(),
            **bucket,
            "aov": safe_divide(bucket["revenue"], bucket["orders"]),
            "roas": safe_divide(bucket["revenue"], bucket["paid_spend"]),
            "profit_return": safe_divide(bucket["contribution_profit"], bucket["paid_spend"]),
        }

    return {
        "event_date": event_date.isoformat(),
        "window_days": window_days,
        "before": finish(before, before_start, before_end),
        "after": finish(after, after_start, after_end),
    }


class AttributionService:
    """
    Loads persisted daily summaries and per-source spend for the chart
    series. Independent of the rollup run.
    """

    def __init__(self, db: Session):
        self.db = db
        self.metrics = SqlMetricsStore(db)
        self.profit = SqlProfitStore(db)
        self.settings = get_settings()

    def series(self, client_id: str, start: date, end: date, window_days: int) -> Dict[str, Any]:
        if window_days > self.settings.max_attribution_window_days:
            raise InvalidWindowError(
                "window",
                f"must be at most {self.settings.max_attribution_window_days} days",
                window_days,
            )
        if start > end:
            raise InvalidWindowError("start", "must be on or before end", start.isoformat())

        extended_end = end + timedelta(days=max(window_days, 1) - 1)

        by_day = aggregate_by_day(self.metrics.fetch_rows(client_id, start, extended_end))
        daily = self.profit.fetch_daily(client_id, start, extended_end)

        spend_by_day = {d: t.paid_spend for d, t in by_day.items()}
        tracked_by_day = {d: t.tracked_revenue for d, t in by_day.items()}
        revenue_by_day = {row["date"]: to_number(row.get("revenue")) for row in daily}
        cost_by_day = {row["date"]: day_total_cost(row) for row in daily}

        points = forward_window_series(
            start, end, window_days, spend_by_day, tracked_by_day, revenue_by_day, cost_by_day
        )

        spend_total = sum(p.spend for p in points)
        tracked_total = sum(tracked_by_day.get(d, 0.0) for d in date_range_inclusive(start, extended_end))
        revenue_total = sum(revenue_by_day.get(d, 0.0) for d in date_range_inclusive(start, extended_end))

        return {
            "client_id": client_id,
            "window": {"start": start.isoformat(), "end": end.isoformat()},
            "window_days": window_days,
            "summary": {
                "spend": spend_total,
                "tracked_revenue_w": tracked_total,
                "total_revenue_w": revenue_total,
                "roas_w": safe_divide(tracked_total, spend_total),
            },
            "series": [p.to_dict() for p in points],
        }

    def compare_event(self, client_id: str, event_date: date, window_days: int) -> Dict[str, Any]:
        if window_days < 1:
            raise InvalidWindowError("window", "must be at least 1 day", window_days)
        rows = self.profit.fetch_daily(
            client_id,
            event_date - timedelta(days=window_days),
            event_date + timedelta(days=window_days - 1),
        )
        result = compare_event_window(rows, event_date, window_days)
        result["client_id"] = client_id
        return result
