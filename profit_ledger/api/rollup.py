"""
Profit rollup endpoints

POST/GET /rollup/run is the scheduler / cron trigger. Once the job has
started it always answers 200 with the run summary, even when some
clients failed; per-client failures are listed in `errors`.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from typing import Optional

from profit_ledger.config import Settings, get_settings
from profit_ledger.exceptions import InvalidWindowError
from profit_ledger.models.base import get_db
from profit_ledger.services.attribution import AttributionService
from profit_ledger.services.rollup_engine import RollupEngine, resolve_window
from profit_ledger.services.stores import SqlProfitStore
from profit_ledger.utils.dates import parse_iso_day
from profit_ledger.utils.logger import log

router = APIRouter(prefix="/rollup", tags=["rollup"])


def require_cron_auth(request: Request, settings: Settings = Depends(get_settings)):
    """
    Accept the shared secret as `Authorization: Bearer <secret>`, the raw
    Authorization header, or `?token=<secret>`. Open when no secret is set.
    """
    secret = (settings.cron_secret or "").strip()
    if not secret:
        return

    header = request.headers.get("authorization", "").strip()
    bearer = header[7:].strip() if header.startswith("Bearer ") else ""
    token = (request.query_params.get("token") or "").strip()

    if secret not in (bearer, token, header):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.api_route("/run", methods=["GET", "POST"], dependencies=[Depends(require_cron_auth)])
async def run_rollup(
    client_id: Optional[str] = Query(None, description="Single client; omit for all clients"),
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
    fill_zeros: bool = Query(False, description="Write explicit zero rows for days with no activity"),
    force: bool = Query(False, description="Bypass the lookback clamp and the zero-overwrite guard"),
    build_coverage: bool = Query(False, description="Rebuild COGS coverage from line items first"),
    db = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Recompute daily profit rows and monthly rollups

    Defaults to yesterday back `default_window_days` for all clients.
    """
    engine = RollupEngine.from_session(db, settings=settings)

    try:
        result = engine.run_rollup(
            client_scope=client_id,
            start=start,
            end=end,
            fill_zeros=fill_zeros,
            force=force,
            build_coverage=build_coverage,
        )
    except InvalidWindowError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        log.error(f"Rollup run failed: {str(e)}")
        return JSONResponse(status_code=500, content={"ok": False, "error": str(e)})

    return result.to_dict()


@router.get("/daily")
async def get_daily_profit(
    client_id: str = Query(..., description="Client id"),
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
    db = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Persisted daily_profit_summary rows for a window"""
    try:
        start_day, end_day = resolve_window(start, end, settings.default_window_days)
    except InvalidWindowError as e:
        raise HTTPException(status_code=400, detail=str(e))

    rows = SqlProfitStore(db).fetch_daily(client_id, start_day, end_day)
    for row in rows:
        row["date"] = row["date"].isoformat()

    return {
        "client_id": client_id,
        "window": {"start": start_day.isoformat(), "end": end_day.isoformat()},
        "days": len(rows),
        "rows": rows,
    }


@router.get("/monthly")
async def get_monthly_rollup(
    client_id: str = Query(..., description="Client id"),
    months: int = Query(12, ge=1, le=60, description="Most recent N months"),
    db = Depends(get_db),
):
    """Persisted monthly_rollup rows, oldest first"""
    rows = SqlProfitStore(db).fetch_monthly(client_id, months)
    for row in rows:
        row["month"] = row["month"].isoformat()
    return {"client_id": client_id, "months": len(rows), "rows": rows}


@router.get("/attribution")
async def get_attribution_series(
    client_id: str = Query(..., description="Client id"),
    start: Optional[str] = Query(None, description="YYYY-MM-DD"),
    end: Optional[str] = Query(None, description="YYYY-MM-DD"),
    window: int = Query(7, ge=1, description="Forward attribution window in days"),
    db = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Forward-windowed ROAS / MER series

    roas_w compares tracked revenue over the next `window` days with the
    day's spend; mer_w compares business revenue with total cost.
    """
    try:
        start_day, end_day = resolve_window(start, end, settings.default_window_days)
        return AttributionService(db).series(client_id, start_day, end_day, window)
    except InvalidWindowError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/events/compare")
async def compare_event(
    client_id: str = Query(..., description="Client id"),
    event_date: str = Query(..., description="YYYY-MM-DD"),
    window: int = Query(7, ge=1, le=90, description="Days before / after the event"),
    db = Depends(get_db),
):
    """Before/after totals around a dated event (promo, price change, launch)"""
    try:
        day = parse_iso_day(event_date, "event_date")
        return AttributionService(db).compare_event(client_id, day, window)
    except InvalidWindowError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/runs")
async def list_runs(
    limit: int = Query(20, ge=1, le=200),
    db = Depends(get_db),
):
    """Most recent rollup runs, newest first"""
    runs = SqlProfitStore(db).fetch_runs(limit)
    return {"runs": runs, "count": len(runs)}
