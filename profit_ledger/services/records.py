"""
Typed records and the upstream conversion boundary.

Platform payloads arrive with optional, null or oddly-named fields. Every
"missing -> 0" and "alias -> canonical source" coercion happens here,
once, so the calculators only ever see fully-populated records.
"""
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from profit_ledger.utils.dates import to_day_key
from profit_ledger.utils.helpers import non_negative, round_money, to_number
from profit_ledger.utils.logger import log


class Source(str, Enum):
    STOREFRONT = "storefront"
    PAID_SEARCH = "paid_search"
    PAID_SOCIAL = "paid_social"


PAID_SOURCES = (Source.PAID_SEARCH, Source.PAID_SOCIAL)

_SOURCE_ALIASES = {
    "storefront": Source.STOREFRONT,
    "shopify": Source.STOREFRONT,
    "paid_search": Source.PAID_SEARCH,
    "google": Source.PAID_SEARCH,
    "google_ads": Source.PAID_SEARCH,
    "googleads": Source.PAID_SEARCH,
    "paid_social": Source.PAID_SOCIAL,
    "meta": Source.PAID_SOCIAL,
    "meta_ads": Source.PAID_SOCIAL,
    "facebook": Source.PAID_SOCIAL,
    "fb": Source.PAID_SOCIAL,
}


def normalize_source(label: Any) -> Optional[Source]:
    """Map a raw platform label to a canonical source (None if unknown)"""
    if isinstance(label, Source):
        return label
    return _SOURCE_ALIASES.get(str(label or "").strip().lower())


@dataclass(frozen=True)
class DailyMetricRow:
    """One client / date / source row, fully coerced"""
    client_id: str
    date: date
    source: Source
    spend: float = 0.0
    revenue: float = 0.0
    orders: float = 0.0
    units: float = 0.0


@dataclass(frozen=True)
class CoverageRecord:
    """Known product COGS for one client / day"""
    date: date
    product_cogs_known: float = 0.0
    revenue_with_cogs: float = 0.0
    units_with_cogs: float = 0.0


@dataclass
class DayTotals:
    """A day's metrics summed across sources"""
    revenue: float = 0.0
    orders: float = 0.0
    units: float = 0.0
    paid_spend: float = 0.0
    tracked_revenue: float = 0.0  # platform-attributed, never business truth
    search_spend: float = 0.0
    social_spend: float = 0.0


def metric_row_from_raw(client_id: str, raw: Mapping[str, Any]) -> Optional[DailyMetricRow]:
    """
    Build a DailyMetricRow from an upstream payload.

    Returns None for rows with no readable date or an unknown source.
    Storefront rows never carry spend; paid rows never carry orders/units.
    Spend is rounded to cents here, the point where the rate is persisted.
    """
    day = to_day_key(raw.get("date"))
    source = normalize_source(raw.get("source"))
    if day is None or source is None:
        log.debug(f"Dropping metric row for {client_id}: date={raw.get('date')!r} source={raw.get('source')!r}")
        return None

    if source == Source.STOREFRONT:
        return DailyMetricRow(
            client_id=client_id,
            date=day,
            source=source,
            revenue=to_number(raw.get("revenue")),
            orders=non_negative(raw.get("orders")),
            units=non_negative(raw.get("units")),
        )

    return DailyMetricRow(
        client_id=client_id,
        date=day,
        source=source,
        spend=round_money(non_negative(raw.get("spend"))),
        revenue=to_number(raw.get("revenue")),
    )


def coverage_from_raw(raw: Mapping[str, Any]) -> Optional[CoverageRecord]:
    day = to_day_key(raw.get("date"))
    if day is None:
        return None
    return CoverageRecord(
        date=day,
        product_cogs_known=non_negative(raw.get("product_cogs_known")),
        revenue_with_cogs=non_negative(raw.get("revenue_with_cogs")),
        units_with_cogs=non_negative(raw.get("units_with_cogs")),
    )


def aggregate_by_day(rows: Iterable[DailyMetricRow]) -> Dict[date, DayTotals]:
    """Fold per-source rows into one DayTotals per date"""
    by_day: Dict[date, DayTotals] = defaultdict(DayTotals)

    for row in rows:
        totals = by_day[row.date]
        if row.source == Source.STOREFRONT:
            totals.revenue += row.revenue
            totals.orders += row.orders
            totals.units += row.units
        else:
            totals.paid_spend += row.spend
            totals.tracked_revenue += row.revenue
            if row.source == Source.PAID_SEARCH:
                totals.search_spend += row.spend
            else:
                totals.social_spend += row.spend

    for totals in by_day.values():
        # Sums of cent values drift in binary float; keep the persisted rate in cents
        totals.paid_spend = round_money(totals.paid_spend)
        totals.search_spend = round_money(totals.search_spend)
        totals.social_spend = round_money(totals.social_spend)

    return dict(by_day)


def rows_from_raw(client_id: str, payload: Iterable[Mapping[str, Any]]) -> List[DailyMetricRow]:
    rows = []
    for raw in payload:
        row = metric_row_from_raw(client_id, raw)
        if row is not None:
            rows.append(row)
    return rows
