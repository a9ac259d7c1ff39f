"""
Profit Ledger
Main FastAPI application
"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from profit_ledger.config import get_settings
from profit_ledger.utils.logger import log
from profit_ledger import __version__

# Import routers
from profit_ledger.api import health, rollup, cost_settings

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    # Startup
    log.info(f"Starting {settings.app_name} v{__version__}")
    log.info(f"Environment: {settings.environment}")

    # Initialize database
    try:
        from profit_ledger.models.base import init_db
        init_db()
        log.info("Database initialized")
    except Exception as e:
        log.error(f"Database initialization error: {str(e)}")

    # Start the scheduler for the nightly rollup
    from profit_ledger.scheduler import start_scheduler, stop_scheduler
    try:
        start_scheduler()
    except Exception as e:
        log.error(f"Scheduler startup error: {str(e)}")

    yield

    # Shutdown
    stop_scheduler()
    log.info("Shutting down application")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=__version__,
    description="""
    Profitability aggregation engine

    - Blends known product COGS with margin-based estimates
    - Derives daily contribution profit, MER and profit MER per client
    - Guards backfilled history against zero overwrites
    - Rolls daily rows up into calendar months
    - Serves forward-windowed attribution series
    """,
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["health"])
app.include_router(rollup.router)
app.include_router(cost_settings.router)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "profit_ledger.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
