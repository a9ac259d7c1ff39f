"""
COGS Coverage Blender

Splits a day's revenue into a covered portion (line items with a known
unit cost) and an uncovered portion, then estimates COGS only for the
uncovered part using the client's gross margin:

    est_cogs = product_cogs_known + unknown_revenue * (1 - margin)

Coverage is clamped against the day's revenue/units so a stale or
over-reported coverage row can never produce a negative unknown portion.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from profit_ledger.services.cost_settings import CostSettings
from profit_ledger.services.records import CoverageRecord
from profit_ledger.utils.helpers import clamp01, finite, non_negative, safe_divide

# Coverage thresholds for the cost-mode diagnostic
ACTUAL_THRESHOLD = 0.95
HYBRID_THRESHOLD = 0.25


@dataclass(frozen=True)
class CogsBlend:
    est_cogs: float
    product_cogs_known: float
    estimated_cogs_unknown: float
    covered_revenue: float
    covered_units: float
    unknown_revenue: float
    unknown_units: float
    units_with_cogs: float
    cogs_coverage_pct: float
    cost_mode: str        # actual, hybrid, modeled
    cost_confidence: str  # high, medium, low


def classify_cost_mode(
    coverage_pct: float,
    actual_threshold: float = ACTUAL_THRESHOLD,
    hybrid_threshold: float = HYBRID_THRESHOLD,
) -> Tuple[str, str]:
    """How much of the day's COGS is measured rather than modeled"""
    coverage_pct = clamp01(coverage_pct)
    if coverage_pct >= clamp01(actual_threshold):
        return "actual", "high"
    if coverage_pct >= clamp01(hybrid_threshold):
        return "hybrid", "medium"
    return "modeled", "low"


def blend_cogs(
    day_revenue: float,
    day_units: float,
    settings: CostSettings,
    coverage: Optional[CoverageRecord] = None,
    actual_threshold: float = ACTUAL_THRESHOLD,
    hybrid_threshold: float = HYBRID_THRESHOLD,
) -> CogsBlend:
    """
    Best available COGS estimate for one day.

    No coverage record means 100% estimated.
    """
    day_revenue = finite(day_revenue)
    day_units = finite(day_units)

    if coverage is not None:
        product_cogs_known = non_negative(coverage.product_cogs_known)
        revenue_with_cogs = non_negative(coverage.revenue_with_cogs)
        units_with_cogs = non_negative(coverage.units_with_cogs)
    else:
        product_cogs_known = revenue_with_cogs = units_with_cogs = 0.0

    covered_revenue = max(0.0, min(day_revenue, revenue_with_cogs))
    covered_units = max(0.0, min(day_units, units_with_cogs))

    unknown_revenue = max(0.0, day_revenue - covered_revenue)
    unknown_units = max(0.0, day_units - covered_units)

    estimated_cogs_unknown = unknown_revenue * (1 - clamp01(settings.gross_margin))
    est_cogs = product_cogs_known + estimated_cogs_unknown

    coverage_pct = clamp01(safe_divide(covered_revenue, day_revenue)) if day_revenue > 0 else 0.0
    cost_mode, cost_confidence = classify_cost_mode(coverage_pct, actual_threshold, hybrid_threshold)

    return CogsBlend(
        est_cogs=finite(est_cogs),
        product_cogs_known=product_cogs_known,
        estimated_cogs_unknown=finite(estimated_cogs_unknown),
        covered_revenue=covered_revenue,
        covered_units=covered_units,
        unknown_revenue=unknown_revenue,
        unknown_units=unknown_units,
        units_with_cogs=covered_units,
        cogs_coverage_pct=coverage_pct,
        cost_mode=cost_mode,
        cost_confidence=cost_confidence,
    )
