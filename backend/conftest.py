from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parent
sys.path.append(str(ROOT))

os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ["DATABASE_WRITE_URL"] = "sqlite+pysqlite:///:memory:"

from jupiter.database import Base  # noqa: E402
from jupiter.apps.inventory import models as inventory_models  # noqa: E402
from jupiter.apps.rejects import models as rejects_models  # noqa: E402


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:")
    Base.metadata.create_all(
        bind=engine,
        tables=[
            inventory_models.Item.__table__,
            inventory_models.StockTransaction.__table__,
            inventory_models.TransactionSequence.__table__,
            inventory_models.StockAdjustment.__table__,
            rejects_models.RejectMasterItem.__table__,
            rejects_models.RejectLog.__table__,
        ],
    )
    TestingSession = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
