"""
Shared fixtures: an isolated in-memory database per test, fixed engine
settings, and small seeding helpers for upstream rows.
"""
import os

os.environ.setdefault("LOG_TO_FILE", "false")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from profit_ledger.config import Settings
from profit_ledger.models import (
    Base,
    Client,
    ClientCostSettings,
    DailyMetric,
    DailyCogsCoverage,
)

TODAY = date(2024, 4, 1)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        log_to_file=False,
        cron_secret=None,
        max_lookback_days=60,
        default_window_days=30,
        fallback_gross_margin=0.5,
        enable_scheduler=False,
    )


def add_client(db, client_id, margin=None, **cost_fields):
    db.add(Client(id=client_id, name=client_id.title()))
    if margin is not None or cost_fields:
        db.add(ClientCostSettings(client_id=client_id, default_gross_margin_pct=margin, **cost_fields))
    db.commit()


def add_metric(db, client_id, day, source, **values):
    db.add(DailyMetric(client_id=client_id, date=day, source=source, **values))
    db.commit()


def add_coverage(db, client_id, day, known, revenue, units):
    db.add(DailyCogsCoverage(
        client_id=client_id,
        date=day,
        product_cogs_known=known,
        revenue_with_cogs=revenue,
        units_with_cogs=units,
    ))
    db.commit()
