"""
Cost Settings Resolver

Loads a client's cost assumptions and normalizes them into a fully
defaulted CostSettings. Missing fields become 0; a missing margin falls
back to the platform-wide rate. An unreachable store degrades to the
all-default settings instead of failing the run, so revenue reporting is
never blocked by cost estimation.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from profit_ledger.exceptions import PersistenceError, SettingsStoreError
from profit_ledger.models.client import ClientCostSettings
from profit_ledger.utils.helpers import non_negative, normalize_pct
from profit_ledger.utils.logger import log

DEFAULT_FALLBACK_MARGIN = 0.5

COST_SETTING_FIELDS = (
    "default_gross_margin_pct",
    "avg_cogs_per_unit",
    "processing_fee_pct",
    "processing_fee_fixed",
    "pick_pack_per_order",
    "shipping_subsidy_per_order",
    "materials_per_order",
    "other_variable_pct_revenue",
    "other_fixed_per_day",
)


@dataclass(frozen=True)
class CostSettings:
    """Resolved, never-null cost assumptions for one client"""
    client_id: Optional[str] = None
    gross_margin: float = DEFAULT_FALLBACK_MARGIN
    margin_is_fallback: bool = True
    avg_cogs_per_unit: float = 0.0
    processing_fee_pct: float = 0.0
    processing_fee_fixed: float = 0.0
    pick_pack_per_order: float = 0.0
    shipping_subsidy_per_order: float = 0.0
    materials_per_order: float = 0.0
    other_variable_pct_revenue: float = 0.0
    other_fixed_per_day: float = 0.0
    is_default: bool = True  # True when no stored row was used

    def to_dict(self) -> Dict[str, Any]:
        return {
            "client_id": self.client_id,
            "gross_margin": self.gross_margin,
            "margin_is_fallback": self.margin_is_fallback,
            "avg_cogs_per_unit": self.avg_cogs_per_unit,
            "processing_fee_pct": self.processing_fee_pct,
            "processing_fee_fixed": self.processing_fee_fixed,
            "pick_pack_per_order": self.pick_pack_per_order,
            "shipping_subsidy_per_order": self.shipping_subsidy_per_order,
            "materials_per_order": self.materials_per_order,
            "other_variable_pct_revenue": self.other_variable_pct_revenue,
            "other_fixed_per_day": self.other_fixed_per_day,
            "is_default": self.is_default,
        }


def default_cost_settings(client_id: Optional[str] = None,
                          fallback_margin: float = DEFAULT_FALLBACK_MARGIN) -> CostSettings:
    return CostSettings(client_id=client_id, gross_margin=fallback_margin)


def resolve_cost_settings(
    raw: Optional[Mapping[str, Any]],
    client_id: Optional[str] = None,
    fallback_margin: float = DEFAULT_FALLBACK_MARGIN,
) -> CostSettings:
    """
    Normalize a stored settings row.

    Percent-like inputs may be fractions or 0-100 numbers (>1 is divided
    by 100, then clamped to [0, 1]). Money inputs are floored at 0.
    """
    if raw is None:
        return default_cost_settings(client_id, fallback_margin)

    margin = normalize_pct(raw.get("default_gross_margin_pct"))

    return CostSettings(
        client_id=client_id or raw.get("client_id"),
        gross_margin=margin if margin is not None else fallback_margin,
        margin_is_fallback=margin is None,
        avg_cogs_per_unit=non_negative(raw.get("avg_cogs_per_unit")),
        processing_fee_pct=normalize_pct(raw.get("processing_fee_pct")) or 0.0,
        processing_fee_fixed=non_negative(raw.get("processing_fee_fixed")),
        pick_pack_per_order=non_negative(raw.get("pick_pack_per_order")),
        shipping_subsidy_per_order=non_negative(raw.get("shipping_subsidy_per_order")),
        materials_per_order=non_negative(raw.get("materials_per_order")),
        other_variable_pct_revenue=normalize_pct(raw.get("other_variable_pct_revenue")) or 0.0,
        other_fixed_per_day=non_negative(raw.get("other_fixed_per_day")),
        is_default=False,
    )


class CostSettingsStore:
    """Read/write access to client_cost_settings"""

    def __init__(self, db: Session):
        self.db = db

    def fetch(self, client_id: str) -> Optional[Dict[str, Any]]:
        """Raw stored row as a dict, or None if the client has none"""
        try:
            row = self.db.query(ClientCostSettings).filter(
                ClientCostSettings.client_id == client_id
            ).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise SettingsStoreError("Cost settings store unreachable", str(e))

        if row is None:
            return None
        return {"client_id": row.client_id, **{f: getattr(row, f) for f in COST_SETTING_FIELDS}}

    def upsert(self, client_id: str, values: Mapping[str, Any]) -> Dict[str, Any]:
        """Store settings as entered; unknown keys are ignored"""
        try:
            existing = self.db.query(ClientCostSettings).filter(
                ClientCostSettings.client_id == client_id
            ).first()
            if not existing:
                existing = ClientCostSettings(client_id=client_id)
                self.db.add(existing)

            for field_name in COST_SETTING_FIELDS:
                if field_name in values:
                    setattr(existing, field_name, values[field_name])
            existing.updated_at = datetime.utcnow()

            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            raise PersistenceError(str(e), table="client_cost_settings")

        log.info(f"Cost settings saved for client {client_id}")
        return self.fetch(client_id)


class CostSettingsResolver:
    """
    Usage:
        resolver = CostSettingsResolver(CostSettingsStore(db))
        settings = resolver.resolve("client-1")
    """

    def __init__(self, store, fallback_margin: float = DEFAULT_FALLBACK_MARGIN):
        self.store = store
        self.fallback_margin = fallback_margin

    def resolve(self, client_id: str) -> CostSettings:
        try:
            raw = self.store.fetch(client_id)
        except SettingsStoreError as e:
            log.warning(f"Cost settings unavailable for {client_id}, using defaults: {e}")
            return default_cost_settings(client_id, self.fallback_margin)

        if raw is None:
            log.warning(
                f"No cost settings for {client_id}; estimating COGS at "
                f"{(1 - self.fallback_margin) * 100:.0f}% of revenue"
            )
            return default_cost_settings(client_id, self.fallback_margin)

        settings = resolve_cost_settings(raw, client_id, self.fallback_margin)
        if settings.margin_is_fallback:
            log.warning(f"Client {client_id} has no gross margin configured; using {self.fallback_margin:.0%}")
        return settings
