"""
Upstream conversion boundary.

Guards:
  - Platform labels map onto the three canonical sources
  - Missing / null / garbage numerics become 0
  - Spend is rounded to cents once, when rows are read and summed
  - Storefront rows never contribute spend; paid rows never contribute orders
"""
from datetime import date

import pytest

from profit_ledger.services.records import (
    Source,
    aggregate_by_day,
    coverage_from_raw,
    metric_row_from_raw,
    normalize_source,
    rows_from_raw,
)


@pytest.mark.parametrize("label,expected", [
    ("storefront", Source.STOREFRONT),
    ("shopify", Source.STOREFRONT),
    ("google", Source.PAID_SEARCH),
    (" Google_Ads ", Source.PAID_SEARCH),
    ("googleads", Source.PAID_SEARCH),
    ("meta", Source.PAID_SOCIAL),
    ("META_ADS", Source.PAID_SOCIAL),
    ("facebook", Source.PAID_SOCIAL),
    ("fb", Source.PAID_SOCIAL),
    ("tiktok", None),
    (None, None),
])
def test_normalize_source(label, expected):
    assert normalize_source(label) == expected


def test_storefront_row_ignores_spend():
    row = metric_row_from_raw("acme", {
        "date": "2024-03-01", "source": "shopify",
        "revenue": "1000.50", "orders": 10, "units": None, "spend": 55,
    })
    assert row.source == Source.STOREFRONT
    assert row.revenue == pytest.approx(1000.5)
    assert row.orders == 10
    assert row.units == 0
    assert row.spend == 0


def test_paid_row_keeps_tracked_revenue_and_rounds_spend():
    row = metric_row_from_raw("acme", {
        "date": "2024-03-01T13:45:00Z", "source": "meta",
        "spend": 19.999, "revenue": 150, "orders": 4,
    })
    assert row.date == date(2024, 3, 1)
    assert row.source == Source.PAID_SOCIAL
    assert row.spend == 20.0
    assert row.revenue == 150
    assert row.orders == 0


@pytest.mark.parametrize("raw", [
    {"date": "yesterday", "source": "shopify"},
    {"date": None, "source": "google"},
    {"date": "2024-03-01", "source": "pinterest"},
])
def test_unusable_rows_are_dropped(raw):
    assert metric_row_from_raw("acme", raw) is None


def test_garbage_numerics_become_zero():
    row = metric_row_from_raw("acme", {
        "date": "2024-03-01", "source": "storefront",
        "revenue": float("nan"), "orders": "ten", "units": True,
    })
    assert (row.revenue, row.orders, row.units) == (0, 0, 0)


def test_aggregate_by_day_splits_sources_and_rounds_spend():
    rows = rows_from_raw("acme", [
        {"date": "2024-03-01", "source": "shopify", "revenue": 1000, "orders": 10, "units": 50},
        {"date": "2024-03-01", "source": "google", "spend": 0.1, "revenue": 40},
        {"date": "2024-03-01", "source": "google_ads", "spend": 0.2},
        {"date": "2024-03-01", "source": "meta", "spend": 80, "revenue": 110},
        {"date": "2024-03-02", "source": "meta", "spend": 12.5},
        {"date": "bogus", "source": "meta", "spend": 1},
    ])

    by_day = aggregate_by_day(rows)

    assert set(by_day) == {date(2024, 3, 1), date(2024, 3, 2)}
    first = by_day[date(2024, 3, 1)]
    assert first.revenue == 1000
    assert first.orders == 10
    assert first.search_spend == 0.3
    assert first.social_spend == 80
    assert first.paid_spend == 80.3
    assert first.tracked_revenue == 150

    second = by_day[date(2024, 3, 2)]
    assert second.revenue == 0
    assert second.paid_spend == 12.5


def test_coverage_from_raw():
    record = coverage_from_raw({"date": "2024-03-01", "product_cogs_known": "300", "revenue_with_cogs": None})
    assert record.date == date(2024, 3, 1)
    assert record.product_cogs_known == 300
    assert record.revenue_with_cogs == 0
    assert coverage_from_raw({"date": ""}) is None
