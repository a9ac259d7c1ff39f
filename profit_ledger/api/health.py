"""
Health check and status endpoints
"""
from fastapi import APIRouter
from datetime import datetime
from profit_ledger.config import get_settings
from profit_ledger import __version__

settings = get_settings()

router = APIRouter()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "version": __version__
    }


@router.get("/status")
async def get_status():
    """Get engine configuration at a glance"""
    return {
        "app_name": settings.app_name,
        "version": __version__,
        "environment": settings.environment,
        "engine": {
            "max_lookback_days": settings.max_lookback_days,
            "default_window_days": settings.default_window_days,
            "fallback_gross_margin": settings.fallback_gross_margin,
            "attribution_windows": settings.attribution_windows,
        },
        "scheduler": {
            "enabled": settings.enable_scheduler,
            "schedule": settings.rollup_schedule,
            "timezone": settings.scheduler_timezone,
        },
        "timestamp": datetime.utcnow().isoformat()
    }
