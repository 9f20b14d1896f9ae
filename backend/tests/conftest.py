"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Point the application at a throwaway database before settings are read
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SEED_ON_STARTUP", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fulfillment.main import app
from fulfillment.models import Base, CustomerProfile, Order
from fulfillment.seed import seed
from fulfillment.services.domain import OrderService
from fulfillment.types import Customizations, LineItem, PaymentDetails
from shared.config.constants import LoyaltyTier, ProductCategory, ProductSize
from shared.infrastructure.db import get_db


# SQLite in-memory database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    Uses SQLite in-memory for isolation.
    """
    Base.metadata.create_all(bind=engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database session override.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session):
    """Reference data: ingredients, packaging, toppings, products, demo customer."""
    seed(db_session)
    return db_session


@pytest.fixture
def customer(seeded):
    """A bronze customer with no points."""
    profile = CustomerProfile(id="cust-1", display_name="Ana Santos", email="ana@example.com")
    seeded.add(profile)
    seeded.commit()
    return profile


@pytest.fixture
def gold_customer(seeded):
    profile = CustomerProfile(
        id="cust-gold",
        display_name="Ben Cruz",
        current_points=1200,
        lifetime_points=1200,
        tier=LoyaltyTier.GOLD,
    )
    seeded.add(profile)
    seeded.commit()
    return profile


# =============================================================================
# Line item builders
# =============================================================================


def latte(quantity: int = 1, size: str = ProductSize.GRANDE, sugar: str | None = None,
          ice: str | None = None, toppings: list[str] | None = None) -> LineItem:
    """Spanish Latte (cb-01): 2 espresso shots, 150ml milk, 30ml condensed milk."""
    return LineItem(
        product_id="cb-01",
        product_name="Spanish Latte",
        quantity=quantity,
        size=size,
        unit_price_cents=5900 if size == ProductSize.GRANDE else 6900,
        category=ProductCategory.COFFEE_BASED,
        customizations=Customizations.build(sugar_level=sugar, ice_level=ice, toppings=toppings),
    )


def meal(quantity: int = 1) -> LineItem:
    """Chicken Rice Meal (ml-01): 1 chicken, 150g rice."""
    return LineItem(
        product_id="ml-01",
        product_name="Chicken Rice Meal",
        quantity=quantity,
        size=ProductSize.ALA_CARTE,
        unit_price_cents=9900,
        category=ProductCategory.MEALS,
    )


CASH = PaymentDetails(method="cash", amount_received_cents=100_000_00)


def place_order(db, items: list[LineItem], customer_id: str | None = None) -> Order:
    """Create an order through the service and return the persisted row."""
    service = OrderService(db)
    result = service.create_order(items, CASH, customer_id=customer_id)
    return service.get_order(result.order_id)


def stock_of(db, ingredient_id: str) -> float:
    from fulfillment.repositories import get_stock_ledger

    record = get_stock_ledger(db).read_stock(ingredient_id)
    assert record is not None, f"no ingredient {ingredient_id}"
    return record.stock
