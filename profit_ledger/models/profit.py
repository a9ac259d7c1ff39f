"""
Profitability Ledger Models

daily_profit_summary - one derived row per client / day (upserted)
monthly_rollup       - one row per client / calendar month (full replace)
rollup_runs          - audit trail of every engine run
"""
from sqlalchemy import Column, Integer, String, Float, Boolean, Date, DateTime, JSON, UniqueConstraint
from datetime import datetime

from profit_ledger.models.base import Base


class DailyProfitSummary(Base):
    """
    Canonical daily profit record

    contribution_profit = revenue - (est_cogs + est_processing_fees
        + est_fulfillment_costs + est_other_variable_costs
        + est_other_fixed_costs + paid_spend)
    """
    __tablename__ = "daily_profit_summary"
    __table_args__ = (
        UniqueConstraint("client_id", "date", name="uq_daily_profit_client_date"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String, index=True, nullable=False)
    date = Column(Date, index=True, nullable=False)

    # Business truth
    revenue = Column(Float, default=0)
    orders = Column(Float, default=0)
    units = Column(Float, default=0)
    paid_spend = Column(Float, default=0)
    mer = Column(Float, default=0)  # revenue / paid_spend

    # Estimated costs
    est_cogs = Column(Float, default=0)
    est_processing_fees = Column(Float, default=0)
    est_fulfillment_costs = Column(Float, default=0)
    est_other_variable_costs = Column(Float, default=0)
    est_other_fixed_costs = Column(Float, default=0)

    contribution_profit = Column(Float, default=0)
    profit_mer = Column(Float, default=0)  # contribution_profit / paid_spend

    # Coverage diagnostics
    product_cogs_known = Column(Float, default=0)
    revenue_with_cogs = Column(Float, default=0)
    units_with_cogs = Column(Float, default=0)
    cogs_coverage_pct = Column(Float, default=0)
    cost_mode = Column(String, nullable=True)  # actual, hybrid, modeled

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<DailyProfitSummary {self.client_id} {self.date}: revenue={self.revenue} profit={self.contribution_profit}>"


class MonthlyRollup(Base):
    """Monthly totals folded from daily_profit_summary and per-source spend"""
    __tablename__ = "monthly_rollup"
    __table_args__ = (
        UniqueConstraint("client_id", "month", name="uq_monthly_rollup_client_month"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String, index=True, nullable=False)
    month = Column(Date, index=True, nullable=False)  # First of month

    days_count = Column(Integer, default=0)

    # Storefront
    shopify_revenue = Column(Float, default=0)
    shopify_orders = Column(Float, default=0)
    shopify_units = Column(Float, default=0)

    # Paid media, kept split by source
    meta_spend = Column(Float, default=0)
    google_spend = Column(Float, default=0)
    total_ad_spend = Column(Float, default=0)

    # Derived
    true_roas = Column(Float, default=0)  # revenue / total_ad_spend
    aov = Column(Float, default=0)        # revenue / orders
    cpo = Column(Float, default=0)        # total_ad_spend / orders

    # Profit components
    est_cogs = Column(Float, default=0)
    est_processing_fees = Column(Float, default=0)
    est_fulfillment_costs = Column(Float, default=0)
    est_other_variable_costs = Column(Float, default=0)
    est_other_fixed_costs = Column(Float, default=0)
    contribution_profit = Column(Float, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<MonthlyRollup {self.client_id} {self.month}: revenue={self.shopify_revenue}>"


class RollupRun(Base):
    """One row per engine invocation"""
    __tablename__ = "rollup_runs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    client_scope = Column(String, nullable=True)  # NULL = all clients
    window_start = Column(Date, nullable=True)
    window_end = Column(Date, nullable=True)
    fill_zeros = Column(Boolean, default=False)
    force = Column(Boolean, default=False)

    status = Column(String, index=True)  # success, partial, failed
    clients_processed = Column(Integer, default=0)
    rows_upserted = Column(Integer, default=0)
    rows_suppressed = Column(Integer, default=0)
    months_upserted = Column(Integer, default=0)
    errors = Column(JSON, nullable=True)

    started_at = Column(DateTime, default=datetime.utcnow, index=True)
    duration_seconds = Column(Float, nullable=True)
