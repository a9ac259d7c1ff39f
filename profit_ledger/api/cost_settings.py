"""
Client cost settings endpoints

Values are stored as entered (a margin of 42 or 0.42 are both accepted)
and normalized when the engine reads them.
"""
from fastapi import APIRouter, Depends, HTTPException
from typing import Optional
from pydantic import BaseModel

from profit_ledger.config import Settings, get_settings
from profit_ledger.exceptions import PersistenceError
from profit_ledger.models.base import get_db
from profit_ledger.services.cost_settings import CostSettingsResolver, CostSettingsStore
from profit_ledger.utils.logger import log

router = APIRouter(prefix="/cost-settings", tags=["cost-settings"])


class CostSettingsUpdate(BaseModel):
    """Partial update; omitted fields are left as stored"""
    default_gross_margin_pct: Optional[float] = None
    avg_cogs_per_unit: Optional[float] = None
    processing_fee_pct: Optional[float] = None
    processing_fee_fixed: Optional[float] = None
    pick_pack_per_order: Optional[float] = None
    shipping_subsidy_per_order: Optional[float] = None
    materials_per_order: Optional[float] = None
    other_variable_pct_revenue: Optional[float] = None
    other_fixed_per_day: Optional[float] = None


@router.get("/{client_id}")
async def get_cost_settings(
    client_id: str,
    db = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Stored row (raw) plus the settings the engine would actually use"""
    store = CostSettingsStore(db)
    resolver = CostSettingsResolver(store, settings.fallback_gross_margin)

    return {
        "client_id": client_id,
        "stored": store.fetch(client_id),
        "effective": resolver.resolve(client_id).to_dict(),
    }


@router.put("/{client_id}")
async def update_cost_settings(
    client_id: str,
    update: CostSettingsUpdate,
    db = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Upsert a client's cost assumptions"""
    store = CostSettingsStore(db)
    values = update.model_dump(exclude_unset=True)

    try:
        stored = store.upsert(client_id, values)
    except PersistenceError as e:
        log.error(f"Error saving cost settings for {client_id}: {str(e)}")
        raise HTTPException(status_code=500, detail=str(e))

    resolver = CostSettingsResolver(store, settings.fallback_gross_margin)
    return {
        "client_id": client_id,
        "stored": stored,
        "effective": resolver.resolve(client_id).to_dict(),
    }
