"""Database models for the Profit Ledger engine"""

from profit_ledger.models.base import Base

from profit_ledger.models.client import Client, ClientCostSettings

from profit_ledger.models.metrics import (
    DailyMetric,
    ShopifyDailyLineItem,
    VariantUnitCost,
    DailyCogsCoverage,
)

from profit_ledger.models.profit import (
    DailyProfitSummary,
    MonthlyRollup,
    RollupRun,
)

__all__ = [
    "Base",
    "Client",
    "ClientCostSettings",
    "DailyMetric",
    "ShopifyDailyLineItem",
    "VariantUnitCost",
    "DailyCogsCoverage",
    "DailyProfitSummary",
    "MonthlyRollup",
    "RollupRun",
]
