from __future__ import annotations

import os

import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.orm import Session, sessionmaker

import office_discovery.models  # noqa: F401
from office_discovery.db import Base
import office_discovery.db as db_module
from office_discovery.models import Operator


@pytest.fixture(scope="session")
def test_database_url() -> str:
    url = os.getenv("OFFICE_DISCOVERY_TEST_DATABASE_URL")
    if not url:
        pytest.skip("OFFICE_DISCOVERY_TEST_DATABASE_URL is not set")
    return url


@pytest.fixture(scope="session")
def test_engine(test_database_url: str):
    engine = create_engine(test_database_url, pool_pre_ping=True)
    with engine.begin() as conn:
        conn.execute(text("CREATE EXTENSION IF NOT EXISTS citext"))
    yield engine
    engine.dispose()


@pytest.fixture(autouse=True)
def _bind_test_db(monkeypatch, test_engine):
    TestSessionLocal = sessionmaker(bind=test_engine, expire_on_commit=False)
    monkeypatch.setattr(db_module, "_engine", test_engine, raising=False)
    monkeypatch.setattr(db_module, "SessionLocal", TestSessionLocal, raising=False)
    Base.metadata.drop_all(bind=test_engine)
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db_session() -> Session:
    session = db_module.SessionLocal()
    try:
        yield session
        session.commit()
    finally:
        session.close()


@pytest.fixture
def operator(db_session: Session) -> Operator:
    row = Operator(brand_name="Acme Coworking", source="seed")
    db_session.add(row)
    db_session.commit()
    return row
