"""
Shared test fixtures — SQLite test database, test client, catalogue and form tokens.
"""

import os
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set secrets before importing app modules
os.environ["FORM_TOKEN_SECRET"] = "test-form-secret-for-testing-only"
os.environ["REQUIRE_FORM_TOKEN"] = "true"
os.environ["DATABASE_URL"] = "sqlite:///./test_parcels.db"

from parcel_booking.config import settings
from parcel_booking.database import Base, get_db
from parcel_booking.main import app
from parcel_booking import models


TEST_DATABASE_URL = "sqlite:///./test_parcels.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    """FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def parcel_product(db):
    """The catalogue product that carries parcel fields."""
    product = models.Product(
        id=settings.TARGET_PRODUCT_ID,
        name=settings.TARGET_PRODUCT_NAME,
        price=Decimal("0.00"),
    )
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def tape_product(db):
    """An ordinary product without parcel fields."""
    product = models.Product(id=1, name="Packing tape", price=Decimal("4.50"))
    db.add(product)
    db.commit()
    return product


@pytest.fixture
def form_tokens(client):
    """Fresh tokens for the quote preview and the add-to-cart form."""
    response = client.get("/api/parcel/form-token")
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def cart_id(client):
    response = client.post("/api/cart")
    assert response.status_code == 200
    return response.json()["cart_id"]
