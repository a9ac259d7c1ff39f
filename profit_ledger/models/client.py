"""
Client & Cost Settings Models

One row per tenant, plus the client-edited cost assumptions the engine
reads (never writes) when estimating costs.
"""
from sqlalchemy import Column, String, Float, DateTime
from datetime import datetime

from profit_ledger.models.base import Base


class Client(Base):
    """A tenant whose storefront and ad accounts are summarized"""
    __tablename__ = "clients"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Client {self.id}>"


class ClientCostSettings(Base):
    """
    Per-client cost assumptions

    Stored exactly as the client entered them. Percent-like fields may be
    a fraction (0.42) or a 0-100 number (42); the resolver normalizes on
    read. Every field is optional.
    """
    __tablename__ = "client_cost_settings"

    client_id = Column(String, primary_key=True)

    default_gross_margin_pct = Column(Float, nullable=True)
    avg_cogs_per_unit = Column(Float, nullable=True)
    processing_fee_pct = Column(Float, nullable=True)
    processing_fee_fixed = Column(Float, nullable=True)
    pick_pack_per_order = Column(Float, nullable=True)
    shipping_subsidy_per_order = Column(Float, nullable=True)
    materials_per_order = Column(Float, nullable=True)
    other_variable_pct_revenue = Column(Float, nullable=True)
    other_fixed_per_day = Column(Float, nullable=True)

    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<ClientCostSettings {self.client_id}>"
