"""
COGS Coverage Builder

Joins storefront line items to unit costs and produces one coverage
record per day:

    product_cogs_known = sum(units * unit_cost) over covered lines
    revenue_with_cogs  = sum(line_revenue)       over covered lines
    units_with_cogs    = sum(units)              over covered lines

A line is covered when its inventory item (preferred) or its variant
maps to a unit cost greater than zero. Totals are capped at the day's
storefront revenue / units when those are known.
"""
from collections import defaultdict
from datetime import date
from typing import Dict, List, Mapping, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from profit_ledger.exceptions import CollaboratorError
from profit_ledger.models.metrics import ShopifyDailyLineItem, VariantUnitCost
from profit_ledger.services.records import CoverageRecord, DayTotals
from profit_ledger.services.stores import SqlCoverageStore
from profit_ledger.utils.helpers import non_negative, to_number
from profit_ledger.utils.logger import log


def unit_cost_maps(costs) -> Tuple[Dict[int, float], Dict[int, float]]:
    """
    Build (by_inventory_item, by_variant) lookups.

    Only strictly positive costs are usable.
    """
    by_inventory_item = {}
    by_variant = {}
    for cost in costs:
        amount = to_number(cost.get("unit_cost_amount"))
        if amount <= 0:
            continue
        if cost.get("inventory_item_id") is not None:
            by_inventory_item[int(cost["inventory_item_id"])] = amount
        if cost.get("variant_id") is not None:
            by_variant[int(cost["variant_id"])] = amount
    return by_inventory_item, by_variant


def build_coverage(
    line_items,
    costs,
    day_totals: Optional[Mapping[date, DayTotals]] = None,
    client_id: Optional[str] = None,
) -> List[CoverageRecord]:
    """Pure join: line item / unit cost dicts in, per-day coverage out (sorted by date)"""
    by_inventory_item, by_variant = unit_cost_maps(costs)

    known = defaultdict(float)
    revenue = defaultdict(float)
    units = defaultdict(float)

    for line in line_items:
        day = line.get("day")
        if day is None:
            continue

        unit_cost = None
        inventory_item_id = line.get("inventory_item_id")
        variant_id = line.get("variant_id")
        if inventory_item_id is not None:
            unit_cost = by_inventory_item.get(int(inventory_item_id))
        if unit_cost is None and variant_id is not None:
            unit_cost = by_variant.get(int(variant_id))
        if unit_cost is None:
            continue

        line_units = non_negative(line.get("units"))
        known[day] += line_units * unit_cost
        revenue[day] += non_negative(line.get("line_revenue"))
        units[day] += line_units

    records = []
    for day in sorted(known):
        revenue_with_cogs = revenue[day]
        units_with_cogs = units[day]

        totals = (day_totals or {}).get(day)
        if totals is not None:
            if revenue_with_cogs > totals.revenue:
                log.warning(
                    f"Coverage revenue {revenue_with_cogs:.2f} exceeds storefront revenue "
                    f"{totals.revenue:.2f} for {client_id} on {day.isoformat()}; capping"
                )
                revenue_with_cogs = max(0.0, totals.revenue)
            if units_with_cogs > totals.units:
                log.warning(
                    f"Coverage units {units_with_cogs:g} exceed storefront units "
                    f"{totals.units:g} for {client_id} on {day.isoformat()}; capping"
                )
                units_with_cogs = max(0.0, totals.units)

        if known[day] == 0 and revenue_with_cogs == 0 and units_with_cogs == 0:
            continue

        records.append(CoverageRecord(
            date=day,
            product_cogs_known=known[day],
            revenue_with_cogs=revenue_with_cogs,
            units_with_cogs=units_with_cogs,
        ))

    return records


class CoverageBuilder:
    """
    Usage:
        builder = CoverageBuilder(db)
        records = builder.build("acme", start, end, day_totals)
        builder.sync("acme", start, end, day_totals)  # build + upsert
    """

    def __init__(self, db: Session):
        self.db = db
        self.store = SqlCoverageStore(db)

    def _load(self, client_id: str, start: date, end: date):
        try:
            line_rows = self.db.query(ShopifyDailyLineItem).filter(
                ShopifyDailyLineItem.client_id == client_id,
                ShopifyDailyLineItem.day >= start,
                ShopifyDailyLineItem.day <= end,
            ).all()
            cost_rows = self.db.query(VariantUnitCost).filter(
                VariantUnitCost.client_id == client_id,
            ).all()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise CollaboratorError("COGS coverage join failed", str(e), source="coverage")

        line_items = [
            {
                "day": r.day,
                "variant_id": r.variant_id,
                "inventory_item_id": r.inventory_item_id,
                "units": r.units,
                "line_revenue": r.line_revenue,
            }
            for r in line_rows
        ]
        costs = [
            {
                "inventory_item_id": r.inventory_item_id,
                "variant_id": r.variant_id,
                "unit_cost_amount": r.unit_cost_amount,
            }
            for r in cost_rows
        ]
        return line_items, costs

    def build(
        self,
        client_id: str,
        start: date,
        end: date,
        day_totals: Optional[Mapping[date, DayTotals]] = None,
    ) -> List[CoverageRecord]:
        line_items, costs = self._load(client_id, start, end)
        records = build_coverage(line_items, costs, day_totals, client_id=client_id)
        log.debug(f"Built {len(records)} coverage days for {client_id} from {len(line_items)} line items")
        return records

    def sync(
        self,
        client_id: str,
        start: date,
        end: date,
        day_totals: Optional[Mapping[date, DayTotals]] = None,
    ) -> int:
        records = self.build(client_id, start, end, day_totals)
        return self.store.upsert(client_id, records)
