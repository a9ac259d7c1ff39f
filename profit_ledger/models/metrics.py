"""
Raw Upstream Metric Models

Normalized per-day rows written by the platform fetchers (storefront,
paid search, paid social) and the line-item / unit-cost tables the
coverage join reads.
"""
from sqlalchemy import Column, Integer, String, Float, Date, DateTime, BigInteger, UniqueConstraint
from datetime import datetime

from profit_ledger.models.base import Base


class DailyMetric(Base):
    """
    One row per client / date / source

    Storefront rows carry revenue, orders, units. Paid rows carry spend
    plus a platform-tracked revenue figure (used only for tracked ROAS).
    """
    __tablename__ = "daily_metrics"

    client_id = Column(String, primary_key=True)
    date = Column(Date, primary_key=True)
    source = Column(String, primary_key=True)  # storefront, paid_search, paid_social

    spend = Column(Float, default=0)
    revenue = Column(Float, default=0)
    orders = Column(Float, default=0)
    units = Column(Float, default=0)
    clicks = Column(Float, default=0)
    impressions = Column(Float, default=0)
    conversions = Column(Float, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<DailyMetric {self.client_id} {self.date} {self.source}>"


class ShopifyDailyLineItem(Base):
    """Storefront line items rolled up per day / variant"""
    __tablename__ = "shopify_daily_line_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String, index=True, nullable=False)
    day = Column(Date, index=True, nullable=False)
    variant_id = Column(BigInteger, nullable=True)
    inventory_item_id = Column(BigInteger, nullable=True)
    units = Column(Float, default=0)
    line_revenue = Column(Float, default=0)


class VariantUnitCost(Base):
    """Unit cost per inventory item (and its variant) as reported by the storefront"""
    __tablename__ = "variant_unit_costs"
    __table_args__ = (
        UniqueConstraint("client_id", "inventory_item_id", name="uq_unit_cost_inventory_item"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    client_id = Column(String, index=True, nullable=False)
    inventory_item_id = Column(BigInteger, nullable=True)
    variant_id = Column(BigInteger, index=True, nullable=True)
    unit_cost_amount = Column(Float, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class DailyCogsCoverage(Base):
    """
    Known product COGS per client / day

    Produced by the coverage builder; already capped at the day's
    storefront revenue and units.
    """
    __tablename__ = "daily_cogs_coverage"

    client_id = Column(String, primary_key=True)
    date = Column(Date, primary_key=True)

    product_cogs_known = Column(Float, default=0)
    revenue_with_cogs = Column(Float, default=0)
    units_with_cogs = Column(Float, default=0)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
