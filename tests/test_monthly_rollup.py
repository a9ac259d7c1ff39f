"""
Monthly rollup aggregation.

Guards:
  - Monthly revenue is exactly the sum of that month's daily revenue
  - Spend stays split by source; total_ad_spend is their sum
  - Derived ratios are 0 on zero denominators
  - Months come out in order, keyed on the first of the month
"""
import math
from datetime import date

import pytest

from profit_ledger.services.monthly_rollup import aggregate_monthly
from profit_ledger.services.records import DailyMetricRow, Source


def _daily(day, revenue, orders=0, units=0, profit=0.0, cogs=0.0):
    return {
        "date": day,
        "revenue": revenue,
        "orders": orders,
        "units": units,
        "contribution_profit": profit,
        "est_cogs": cogs,
    }


def _spend(day, source, amount):
    return DailyMetricRow(client_id="acme", date=day, source=source, spend=amount)


def test_sums_and_ratios_for_one_month():
    daily = [
        _daily(date(2024, 3, 1), 1000, orders=10, units=50, profit=250, cogs=500),
        _daily(date(2024, 3, 2), 500, orders=5, units=20, profit=100, cogs=250),
    ]
    spend = [
        _spend(date(2024, 3, 1), Source.PAID_SOCIAL, 80),
        _spend(date(2024, 3, 1), Source.PAID_SEARCH, 120),
        _spend(date(2024, 3, 2), Source.PAID_SEARCH, 100),
    ]

    [march] = aggregate_monthly("acme", daily, spend)

    assert march.month == date(2024, 3, 1)
    assert march.days_count == 2
    assert march.shopify_revenue == pytest.approx(1500)
    assert march.shopify_orders == pytest.approx(15)
    assert march.shopify_units == pytest.approx(70)
    assert march.meta_spend == pytest.approx(80)
    assert march.google_spend == pytest.approx(220)
    assert march.total_ad_spend == pytest.approx(300)
    assert march.true_roas == pytest.approx(5.0)
    assert march.aov == pytest.approx(100)
    assert march.cpo == pytest.approx(20)
    assert march.contribution_profit == pytest.approx(350)
    assert march.est_cogs == pytest.approx(750)


def test_zero_orders_and_spend_give_zero_ratios():
    [month] = aggregate_monthly("acme", [_daily(date(2024, 3, 1), 250)], [])

    assert month.total_ad_spend == 0
    assert month.true_roas == 0
    assert month.aov == 0
    assert month.cpo == 0


def test_months_are_split_and_ordered():
    daily = [
        _daily(date(2024, 4, 1), 10),
        _daily(date(2024, 2, 29), 20),
        _daily(date(2024, 3, 31), 30),
    ]
    months = aggregate_monthly("acme", daily, [_spend(date(2024, 1, 15), Source.PAID_SEARCH, 5)])

    assert [m.month for m in months] == [
        date(2024, 1, 1), date(2024, 2, 1), date(2024, 3, 1), date(2024, 4, 1),
    ]
    assert months[0].days_count == 0  # spend-only month
    assert months[0].google_spend == pytest.approx(5)
    assert [m.shopify_revenue for m in months[1:]] == [20, 30, 10]


def test_revenue_additivity_is_exact():
    revenues = [0.1, 0.2, 0.3, 19.99, 0.07, 1e-2, 123.45, 0.1, 0.2, 0.3]
    daily = [_daily(date(2024, 3, i + 1), r) for i, r in enumerate(revenues)]

    [march] = aggregate_monthly("acme", daily, [])

    assert march.shopify_revenue == math.fsum(revenues)
    assert abs(march.shopify_revenue - sum(revenues)) < 1e-6


def test_storefront_rows_in_spend_input_are_ignored():
    spend = [DailyMetricRow("acme", date(2024, 3, 1), Source.STOREFRONT, revenue=999)]
    [march] = aggregate_monthly("acme", [_daily(date(2024, 3, 1), 100)], spend)
    assert march.total_ad_spend == 0
    assert march.shopify_revenue == 100


def test_ledger_rows_with_string_dates():
    daily = [_daily("2024-03-05T00:00:00", 40), _daily("not a date", 99)]
    [march] = aggregate_monthly("acme", daily, [])
    assert march.shopify_revenue == 40
    assert march.days_count == 1
