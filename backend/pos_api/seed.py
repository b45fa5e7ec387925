"""
Seed data for development and testing.
Creates a small menu, stock, floor plan and staff with known PINs.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from pos_api.models import (
    Employee,
    InventoryItem,
    MenuCategory,
    MenuItem,
    RestaurantTable,
)
from shared.config.constants import Roles
from shared.config.logging import get_logger
from shared.security.pin import hash_pin

logger = get_logger(__name__)

# Development PINs; never seed these into production
DEV_MANAGER_PIN = "1234"
DEV_SERVER_PIN = "0000"

CATEGORIES = [
    ("Starters", 1),
    ("Mains", 2),
    ("Breads", 3),
    ("Desserts", 4),
    ("Drinks", 5),
]

INVENTORY = [
    # name, category, quantity, threshold, unit, cost_cents
    ("Chicken", "Protein", 20.0, 5.0, "kg", 650),
    ("Paneer", "Dairy", 10.0, 2.0, "kg", 900),
    ("Flour", "Dry goods", 25.0, 5.0, "kg", 90),
    ("Rice", "Dry goods", 30.0, 5.0, "kg", 150),
    ("Mango Lassi", "Drinks", 24.0, 6.0, "portion", 80),
    ("Lager", "Drinks", 48.0, 12.0, "bottle", 110),
    ("Gulab Jamun", "Desserts", 40.0, 10.0, "portion", 45),
]

MENU = [
    # name, category, price_cents, recipe [(inventory name, qty)]
    ("Chicken Tikka", "Starters", 695, [("Chicken", 0.2)]),
    ("Paneer Pakora", "Starters", 595, [("Paneer", 0.15), ("Flour", 0.05)]),
    ("Butter Chicken", "Mains", 1295, [("Chicken", 0.3)]),
    ("Paneer Tikka Masala", "Mains", 1150, [("Paneer", 0.25)]),
    ("Jeera Rice", "Mains", 395, [("Rice", 0.15)]),
    ("Garlic Naan", "Breads", 350, [("Flour", 0.1)]),
    ("Gulab Jamun", "Desserts", 450, []),  # name-matched stock
    ("Mango Lassi", "Drinks", 395, []),
    ("Lager", "Drinks", 495, []),
]

TABLES = [("T1", 2), ("T2", 2), ("T3", 4), ("T4", 4), ("T5", 6), ("BAR", 8)]


def seed(db: Session) -> None:
    """
    Seed the backing store.
    Idempotent: does nothing once a menu exists.
    """
    if db.scalar(select(MenuItem.id).limit(1)):
        logger.info("Database already seeded, skipping")
        return

    logger.info("Seeding database")

    categories = {}
    for name, order in CATEGORIES:
        category = MenuCategory(name=name, sort_order=order)
        db.add(category)
        categories[name] = category

    stock = {}
    for name, category, quantity, threshold, unit, cost in INVENTORY:
        item = InventoryItem(
            name=name,
            category=category,
            quantity=quantity,
            threshold=threshold,
            unit=unit,
            cost_cents=cost,
        )
        db.add(item)
        stock[name] = item
    db.flush()

    for name, category, price, recipe in MENU:
        menu_item = MenuItem(name=name, category=categories[category], price_cents=price)
        menu_item.recipe = [
            {"inventory_item_id": stock[ingredient].id, "quantity": qty}
            for ingredient, qty in recipe
        ]
        db.add(menu_item)

    for code, capacity in TABLES:
        db.add(RestaurantTable(code=code, capacity=capacity))

    db.add(Employee(
        first_name="Maya",
        last_name="Patel",
        role=Roles.MANAGER,
        pin_hash=hash_pin(DEV_MANAGER_PIN),
        hourly_rate_cents=1800,
    ))
    db.add(Employee(
        first_name="Sam",
        last_name="Okafor",
        role=Roles.WAITER,
        pin_hash=hash_pin(DEV_SERVER_PIN),
        hourly_rate_cents=1150,
    ))

    db.commit()
    logger.info(
        "Seed complete",
        menu_items=len(MENU),
        inventory_items=len(INVENTORY),
        tables=len(TABLES),
    )
