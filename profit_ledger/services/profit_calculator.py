"""
Daily Profit Computer

Pure arithmetic: one day's blended metrics + cost settings + coverage in,
one profit summary out. No rounding happens here; amounts are carried at
full precision through the additive cost chain.
"""
from dataclasses import asdict, dataclass
from datetime import date
from typing import Any, Dict, Optional

from profit_ledger.services.cogs_blender import ACTUAL_THRESHOLD, HYBRID_THRESHOLD, blend_cogs
from profit_ledger.services.cost_settings import CostSettings
from profit_ledger.services.records import CoverageRecord
from profit_ledger.utils.helpers import finite, safe_divide

CORE_METRICS = ("revenue", "orders", "units")


@dataclass(frozen=True)
class ProfitSummary:
    client_id: Optional[str]
    date: date
    revenue: float
    orders: float
    units: float
    paid_spend: float
    mer: float
    est_cogs: float
    est_processing_fees: float
    est_fulfillment_costs: float
    est_other_variable_costs: float
    est_other_fixed_costs: float
    contribution_profit: float
    profit_mer: float
    product_cogs_known: float
    revenue_with_cogs: float
    units_with_cogs: float
    cogs_coverage_pct: float
    cost_mode: str

    @property
    def total_costs(self) -> float:
        return (
            self.est_cogs
            + self.est_processing_fees
            + self.est_fulfillment_costs
            + self.est_other_variable_costs
            + self.est_other_fixed_costs
            + self.paid_spend
        )

    @property
    def core_is_zero(self) -> bool:
        return all(getattr(self, m) == 0 for m in CORE_METRICS)

    def as_row(self) -> Dict[str, Any]:
        """Persistable dict; every numeric field is finite"""
        row = asdict(self)
        for key, value in row.items():
            if isinstance(value, float):
                row[key] = finite(value)
        return row


def compute_daily_profit(
    day: date,
    revenue: float,
    orders: float,
    units: float,
    paid_spend: float,
    settings: CostSettings,
    coverage: Optional[CoverageRecord] = None,
    client_id: Optional[str] = None,
    actual_threshold: float = ACTUAL_THRESHOLD,
    hybrid_threshold: float = HYBRID_THRESHOLD,
) -> ProfitSummary:
    """
    Build the day's profit record.

    processing = revenue * fee_pct + orders * fee_fixed
    fulfillment = orders * pick_pack
    other variable = orders * (shipping_subsidy + materials) + revenue * other_pct
    other fixed = other_fixed_per_day (already a daily figure)
    """
    revenue = finite(revenue)
    orders = finite(orders)
    units = finite(units)
    paid_spend = finite(paid_spend)

    blend = blend_cogs(revenue, units, settings, coverage, actual_threshold, hybrid_threshold)

    est_processing_fees = revenue * settings.processing_fee_pct + orders * settings.processing_fee_fixed
    est_fulfillment_costs = orders * settings.pick_pack_per_order
    est_other_variable_costs = (
        orders * settings.shipping_subsidy_per_order
        + orders * settings.materials_per_order
        + revenue * settings.other_variable_pct_revenue
    )
    est_other_fixed_costs = settings.other_fixed_per_day

    contribution_profit = revenue - (
        blend.est_cogs
        + est_processing_fees
        + est_fulfillment_costs
        + est_other_variable_costs
        + est_other_fixed_costs
        + paid_spend
    )

    return ProfitSummary(
        client_id=client_id if client_id is not None else settings.client_id,
        date=day,
        revenue=revenue,
        orders=orders,
        units=units,
        paid_spend=paid_spend,
        mer=safe_divide(revenue, paid_spend),
        est_cogs=blend.est_cogs,
        est_processing_fees=finite(est_processing_fees),
        est_fulfillment_costs=finite(est_fulfillment_costs),
        est_other_variable_costs=finite(est_other_variable_costs),
        est_other_fixed_costs=finite(est_other_fixed_costs),
        contribution_profit=finite(contribution_profit),
        profit_mer=safe_divide(contribution_profit, paid_spend),
        product_cogs_known=blend.product_cogs_known,
        revenue_with_cogs=blend.covered_revenue,
        units_with_cogs=blend.units_with_cogs,
        cogs_coverage_pct=blend.cogs_coverage_pct,
        cost_mode=blend.cost_mode,
    )
