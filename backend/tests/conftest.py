"""
Pytest configuration and fixtures for backend tests.
"""

import os

# Must be set before any application module reads settings
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("PIN_HASH_ROUNDS", "4")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pos_api.core.dependencies import offline_queue, terminal_registry
from pos_api.main import app
from pos_api.models import (
    Base,
    Employee,
    InventoryItem,
    MenuCategory,
    MenuItem,
    RestaurantTable,
)
from pos_api.services.domain.offline_queue import OfflineQueue, create_local_store
from pos_api.services.domain.table_session import TerminalRegistry, TerminalSession
from shared.config.constants import Roles
from shared.infrastructure.db import get_db
from shared.security.pin import hash_pin
from shared.utils.schemas import CartItem, Modifier, OrderPayload

MANAGER_PIN = "1234"
SERVER_PIN = "0000"


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


@pytest.fixture
def local_store():
    """Terminal-local offline queue database (in memory)."""
    return create_local_store("sqlite://", poolclass=StaticPool)


@pytest.fixture
def registry():
    return TerminalRegistry()


@pytest.fixture
def queue(local_store):
    return OfflineQueue(local_store)


@pytest.fixture(scope="function")
def client(db_session, registry, queue):
    """
    Create a test client with database session and singleton overrides.
    """
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[terminal_registry] = lambda: registry
    app.dependency_overrides[offline_queue] = lambda: queue

    # No context manager: the lifespan (outbox loop, create_all) stays off
    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# Seed fixtures
# =============================================================================


@pytest.fixture
def seed_inventory(db_session):
    """Chicken (recipe-depleted) and Lager (name-matched)."""
    chicken = InventoryItem(name="Chicken", category="Protein", quantity=10.0, threshold=2.0, unit="kg")
    lager = InventoryItem(name="Lager", category="Drinks", quantity=5.0, threshold=2.0, unit="bottle")
    db_session.add_all([chicken, lager])
    db_session.commit()
    return {"chicken": chicken, "lager": lager}


@pytest.fixture
def seed_menu(db_session, seed_inventory):
    mains = MenuCategory(name="Mains", sort_order=1)
    drinks = MenuCategory(name="Drinks", sort_order=2)
    db_session.add_all([mains, drinks])
    db_session.flush()

    curry = MenuItem(name="Butter Chicken", category=mains, price_cents=1200)
    curry.recipe = [{"inventory_item_id": seed_inventory["chicken"].id, "quantity": 0.5}]
    lager = MenuItem(name="Lager", category=drinks, price_cents=400)
    db_session.add_all([curry, lager])
    db_session.commit()
    return {"curry": curry, "lager": lager}


@pytest.fixture
def seed_table(db_session):
    table = RestaurantTable(code="T1", capacity=4)
    db_session.add(table)
    db_session.commit()
    db_session.refresh(table)
    return table


@pytest.fixture
def seed_tables(db_session):
    tables = [RestaurantTable(code=code, capacity=4) for code in ("A1", "B1")]
    db_session.add_all(tables)
    db_session.commit()
    return tables


@pytest.fixture
def seed_manager(db_session):
    manager = Employee(first_name="Maya", last_name="Patel", role=Roles.MANAGER, pin_hash=hash_pin(MANAGER_PIN))
    db_session.add(manager)
    db_session.commit()
    db_session.refresh(manager)
    return manager


@pytest.fixture
def seed_server(db_session):
    server = Employee(first_name="Sam", last_name="Okafor", role=Roles.WAITER, pin_hash=hash_pin(SERVER_PIN))
    db_session.add(server)
    db_session.commit()
    db_session.refresh(server)
    return server


@pytest.fixture
def terminal():
    return TerminalSession(terminal_id="till-1")


# =============================================================================
# Builders
# =============================================================================


def cart_line(menu_item: MenuItem, quantity: int = 1, modifiers: list[Modifier] | None = None) -> CartItem:
    return CartItem(
        menu_item_id=menu_item.id,
        name=menu_item.name,
        category=menu_item.category_name,
        unit_price_cents=menu_item.price_cents,
        quantity=quantity,
        modifiers=modifiers or [],
    )


def order_payload(*lines: CartItem, **kwargs) -> OrderPayload:
    return OrderPayload(items=list(lines), **kwargs)
