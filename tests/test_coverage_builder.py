"""
Line-item / unit-cost coverage join.

Guards:
  - Inventory-item cost wins over the variant cost
  - Variant cost is the fallback; zero / missing costs never count
  - Coverage is capped at the day's storefront revenue and units
  - Built rows land in daily_cogs_coverage keyed on (client, date)
"""
from datetime import date

import pytest

from profit_ledger.models import DailyCogsCoverage, ShopifyDailyLineItem, VariantUnitCost
from profit_ledger.services.coverage_builder import CoverageBuilder, build_coverage, unit_cost_maps
from profit_ledger.services.records import DayTotals

DAY = date(2024, 3, 1)

COSTS = [
    {"inventory_item_id": 1, "variant_id": 11, "unit_cost_amount": 4},
    {"inventory_item_id": 2, "variant_id": 22, "unit_cost_amount": 0},
    {"inventory_item_id": None, "variant_id": 33, "unit_cost_amount": 3},
]

LINES = [
    {"day": DAY, "inventory_item_id": 1, "variant_id": 11, "units": 2, "line_revenue": 20},
    {"day": DAY, "inventory_item_id": 2, "variant_id": 22, "units": 5, "line_revenue": 50},
    {"day": DAY, "inventory_item_id": 99, "variant_id": 33, "units": 1, "line_revenue": 10},
    {"day": DAY, "inventory_item_id": None, "variant_id": None, "units": 3, "line_revenue": 30},
]


def test_unit_cost_maps_skip_non_positive_costs():
    by_item, by_variant = unit_cost_maps(COSTS)
    assert by_item == {1: 4.0}
    assert by_variant == {11: 4.0, 33: 3.0}


def test_covered_lines_only():
    [record] = build_coverage(LINES, COSTS)

    assert record.date == DAY
    assert record.product_cogs_known == pytest.approx(2 * 4 + 1 * 3)
    assert record.revenue_with_cogs == pytest.approx(30)
    assert record.units_with_cogs == pytest.approx(3)


def test_inventory_item_cost_preferred_over_variant():
    costs = [
        {"inventory_item_id": 5, "variant_id": 55, "unit_cost_amount": 10},
        {"inventory_item_id": 6, "variant_id": 56, "unit_cost_amount": 7},
    ]
    lines = [{"day": DAY, "inventory_item_id": 5, "variant_id": 56, "units": 2, "line_revenue": 40}]

    [record] = build_coverage(lines, costs)
    assert record.product_cogs_known == pytest.approx(20)


def test_capped_at_day_totals():
    [record] = build_coverage(LINES, COSTS, {DAY: DayTotals(revenue=25, units=2)}, client_id="acme")

    assert record.revenue_with_cogs == pytest.approx(25)
    assert record.units_with_cogs == pytest.approx(2)
    assert record.product_cogs_known == pytest.approx(11)


def test_days_without_covered_lines_are_skipped():
    lines = [{"day": DAY, "inventory_item_id": 2, "variant_id": 22, "units": 5, "line_revenue": 50}]
    assert build_coverage(lines, COSTS) == []


def test_sync_upserts_rows(db):
    db.add_all([
        VariantUnitCost(client_id="acme", inventory_item_id=1, variant_id=11, unit_cost_amount=4),
        VariantUnitCost(client_id="other", inventory_item_id=1, variant_id=11, unit_cost_amount=100),
        ShopifyDailyLineItem(client_id="acme", day=DAY, inventory_item_id=1, variant_id=11, units=3, line_revenue=45),
        ShopifyDailyLineItem(client_id="acme", day=date(2024, 2, 28), inventory_item_id=1, variant_id=11, units=9, line_revenue=99),
    ])
    db.commit()

    builder = CoverageBuilder(db)
    assert builder.sync("acme", DAY, date(2024, 3, 31)) == 1
    # Re-running replaces rather than duplicates
    assert builder.sync("acme", DAY, date(2024, 3, 31)) == 1

    rows = db.query(DailyCogsCoverage).all()
    assert len(rows) == 1
    assert rows[0].client_id == "acme"
    assert rows[0].date == DAY
    assert rows[0].product_cogs_known == pytest.approx(12)
    assert rows[0].revenue_with_cogs == pytest.approx(45)
