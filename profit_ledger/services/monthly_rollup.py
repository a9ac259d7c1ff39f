"""
Monthly Rollup Aggregator

Folds daily_profit_summary rows and per-source spend into one record per
calendar month. Results are written as a full replace keyed on
(client_id, month), so recomputing a month any number of times is
idempotent.
"""
import math
from collections import defaultdict
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Iterable, List, Mapping

from profit_ledger.services.records import DailyMetricRow, Source
from profit_ledger.utils.dates import month_start, to_day_key
from profit_ledger.utils.helpers import finite, safe_divide, to_number

# daily_profit_summary column -> monthly_rollup column
_SUMMED_FIELDS = {
    "revenue": "shopify_revenue",
    "orders": "shopify_orders",
    "units": "shopify_units",
    "est_cogs": "est_cogs",
    "est_processing_fees": "est_processing_fees",
    "est_fulfillment_costs": "est_fulfillment_costs",
    "est_other_variable_costs": "est_other_variable_costs",
    "est_other_fixed_costs": "est_other_fixed_costs",
    "contribution_profit": "contribution_profit",
}


@dataclass(frozen=True)
class MonthlyTotals:
    client_id: str
    month: date
    days_count: int
    shopify_revenue: float
    shopify_orders: float
    shopify_units: float
    meta_spend: float
    google_spend: float
    total_ad_spend: float
    true_roas: float
    aov: float
    cpo: float
    est_cogs: float
    est_processing_fees: float
    est_fulfillment_costs: float
    est_other_variable_costs: float
    est_other_fixed_costs: float
    contribution_profit: float

    def as_row(self) -> Dict[str, Any]:
        row = asdict(self)
        for key, value in row.items():
            if isinstance(value, float):
                row[key] = finite(value)
        return row


def aggregate_monthly(
    client_id: str,
    daily_rows: Iterable[Mapping[str, Any]],
    spend_rows: Iterable[DailyMetricRow],
) -> List[MonthlyTotals]:
    """
    One MonthlyTotals per month touched by either input, oldest first.

    Sums use math.fsum so a month's revenue equals the exact sum of its
    daily revenue regardless of row order.
    """
    values: Dict[date, Dict[str, List[float]]] = defaultdict(lambda: defaultdict(list))
    days_seen: Dict[date, set] = defaultdict(set)

    for row in daily_rows:
        day = to_day_key(row.get("date"))
        if day is None:
            continue
        month = month_start(day)
        days_seen[month].add(day)
        for daily_field, monthly_field in _SUMMED_FIELDS.items():
            values[month][monthly_field].append(to_number(row.get(daily_field)))

    for spend in spend_rows:
        if spend.source == Source.PAID_SOCIAL:
            values[month_start(spend.date)]["meta_spend"].append(spend.spend)
        elif spend.source == Source.PAID_SEARCH:
            values[month_start(spend.date)]["google_spend"].append(spend.spend)

    results = []
    for month in sorted(values):
        sums = {name: finite(math.fsum(items)) for name, items in values[month].items()}
        revenue = sums.get("shopify_revenue", 0.0)
        orders = sums.get("shopify_orders", 0.0)
        meta_spend = sums.get("meta_spend", 0.0)
        google_spend = sums.get("google_spend", 0.0)
        total_ad_spend = meta_spend + google_spend

        results.append(MonthlyTotals(
            client_id=client_id,
            month=month,
            days_count=len(days_seen.get(month, ())),
            shopify_revenue=revenue,
            shopify_orders=orders,
            shopify_units=sums.get("shopify_units", 0.0),
            meta_spend=meta_spend,
            google_spend=google_spend,
            total_ad_spend=total_ad_spend,
            true_roas=safe_divide(revenue, total_ad_spend),
            aov=safe_divide(revenue, orders),
            cpo=safe_divide(total_ad_spend, orders),
            est_cogs=sums.get("est_cogs", 0.0),
            est_processing_fees=sums.get("est_processing_fees", 0.0),
            est_fulfillment_costs=sums.get("est_fulfillment_costs", 0.0),
            est_other_variable_costs=sums.get("est_other_variable_costs", 0.0),
            est_other_fixed_costs=sums.get("est_other_fixed_costs", 0.0),
            contribution_profit=sums.get("contribution_profit", 0.0),
        ))

    return results
