# tests/conftest.py
import os, sys
# backend/ first on sys.path so "app" imports resolve
BACKEND_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from app.database import Base, get_db
from app.main import app
from app import models  # noqa: F401 - registers the tables on Base.metadata


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
def db_session(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(engine):
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def quote_payload():
    """Two priced items: 2 x 500 at 10% off -> 900"""
    return {
        "title": "Kitchen Remodel",
        "customer_name": "Jane Doe",
        "customer_email": "jane@example.com",
        "project_type": "Remodel",
        "tax_rate": "0.10",
        "line_items": [
            {
                "category": "Labor",
                "description": "Cabinet installation",
                "quantity": "2",
                "unit": "each",
                "unit_price": "500",
                "discount_percentage": "10",
            }
        ],
    }
