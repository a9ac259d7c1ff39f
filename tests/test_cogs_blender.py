"""
COGS coverage blending and the cost-mode diagnostic.

Guards:
  - Coverage bound: 0 <= cogs_coverage_pct <= 1 and est_cogs >= 0 even
    when the coverage join over-reports revenue
  - No coverage record means fully estimated
  - Threshold edges for actual / hybrid / modeled
"""
from datetime import date

import pytest

from profit_ledger.services.cogs_blender import blend_cogs, classify_cost_mode
from profit_ledger.services.cost_settings import default_cost_settings, resolve_cost_settings
from profit_ledger.services.records import CoverageRecord

DAY = date(2024, 3, 1)


def test_no_coverage_is_fully_estimated():
    blend = blend_cogs(1000, 50, default_cost_settings("acme", 0.4))

    assert blend.est_cogs == pytest.approx(600)
    assert blend.product_cogs_known == 0
    assert blend.unknown_revenue == pytest.approx(1000)
    assert blend.cogs_coverage_pct == 0
    assert (blend.cost_mode, blend.cost_confidence) == ("modeled", "low")


def test_over_reported_coverage_is_clamped_to_day_revenue():
    coverage = CoverageRecord(DAY, product_cogs_known=900, revenue_with_cogs=5000, units_with_cogs=500)
    blend = blend_cogs(1000, 50, default_cost_settings(), coverage)

    assert blend.covered_revenue == pytest.approx(1000)
    assert blend.covered_units == pytest.approx(50)
    assert blend.units_with_cogs == pytest.approx(50)
    assert blend.unknown_revenue == 0
    assert blend.unknown_units == 0
    assert blend.cogs_coverage_pct == pytest.approx(1.0)
    assert blend.est_cogs == pytest.approx(900)
    assert blend.cost_mode == "actual"


def test_negative_revenue_day_has_no_negative_cogs():
    coverage = CoverageRecord(DAY, product_cogs_known=0, revenue_with_cogs=100, units_with_cogs=2)
    blend = blend_cogs(-50, 0, default_cost_settings(), coverage)

    assert blend.covered_revenue == 0
    assert blend.unknown_revenue == 0
    assert blend.est_cogs == 0
    assert blend.cogs_coverage_pct == 0


def test_negative_coverage_values_are_floored():
    coverage = CoverageRecord(DAY, product_cogs_known=-10, revenue_with_cogs=-300, units_with_cogs=-1)
    blend = blend_cogs(1000, 10, default_cost_settings(), coverage)

    assert blend.product_cogs_known == 0
    assert blend.covered_revenue == 0
    assert blend.est_cogs == pytest.approx(500)


def test_full_margin_leaves_only_known_cogs():
    settings = resolve_cost_settings({"default_gross_margin_pct": 100})
    coverage = CoverageRecord(DAY, product_cogs_known=120, revenue_with_cogs=400, units_with_cogs=4)
    blend = blend_cogs(1000, 10, settings, coverage)

    assert blend.estimated_cogs_unknown == 0
    assert blend.est_cogs == pytest.approx(120)


class TestCostMode:
    """Threshold edges (inclusive lower bounds)"""

    @pytest.mark.parametrize("pct,expected", [
        (1.0, ("actual", "high")),
        (0.95, ("actual", "high")),
        (0.9499, ("hybrid", "medium")),
        (0.25, ("hybrid", "medium")),
        (0.2499, ("modeled", "low")),
        (0.0, ("modeled", "low")),
    ])
    def test_default_thresholds(self, pct, expected):
        assert classify_cost_mode(pct) == expected

    def test_custom_thresholds(self):
        assert classify_cost_mode(0.8, actual_threshold=0.8, hybrid_threshold=0.5) == ("actual", "high")
        assert classify_cost_mode(0.49, actual_threshold=0.8, hybrid_threshold=0.5) == ("modeled", "low")

    def test_out_of_range_pct_is_clamped(self):
        assert classify_cost_mode(7.5)[0] == "actual"
        assert classify_cost_mode(float("nan"))[0] == "modeled"
