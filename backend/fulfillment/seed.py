"""
Seed data for development and testing.
Creates the reference data order processing reads: ingredients (including
packaging, syrup and ice), toppings, products with recipes, and a demo
customer profile.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from fulfillment.models import CustomerProfile, Ingredient, Product, ProductSize, RecipeLine
from fulfillment.services.domain.customization import ICE_ID, SUGAR_SYRUP_ID
from shared.config.constants import IngredientUnit, Packaging, ProductCategory, ProductSize as Size
from shared.config.logging import get_logger
from shared.infrastructure.db import safe_commit

logger = get_logger(__name__)


DEMO_CUSTOMER_ID = "demo-customer"

# (id, name, unit, stock, low_stock_threshold)
INGREDIENTS = [
    ("espresso-shot", "Espresso Shot", IngredientUnit.PIECES, 1000, 100),
    ("milk", "Milk", IngredientUnit.MILLILITERS, 20000, 2000),
    ("condensed-milk", "Condensed Milk", IngredientUnit.MILLILITERS, 5000, 500),
    ("coffee-beans-blend", "Coffee Beans (Blend)", IngredientUnit.GRAMS, 10000, 1000),
    ("hot-water", "Hot Water", IngredientUnit.MILLILITERS, 99999, 10000),
    ("chocolate-sauce", "Chocolate Sauce", IngredientUnit.MILLILITERS, 3000, 300),
    ("caramel-sauce", "Caramel Sauce", IngredientUnit.MILLILITERS, 3000, 300),
    ("matcha-powder", "Matcha Powder", IngredientUnit.GRAMS, 2000, 200),
    ("strawberry-puree", "Strawberry Puree", IngredientUnit.MILLILITERS, 3000, 300),
    ("lemon-juice", "Lemon Juice", IngredientUnit.MILLILITERS, 3000, 300),
    ("chicken", "Chicken", IngredientUnit.PIECES, 200, 20),
    ("rice", "Rice", IngredientUnit.GRAMS, 20000, 2000),
    (SUGAR_SYRUP_ID, "Sugar Syrup", IngredientUnit.MILLILITERS, 10000, 1000),
    (ICE_ID, "Ice", IngredientUnit.GRAMS, 50000, 5000),
    # Packaging
    (Packaging.CUP_BY_SIZE[Size.GRANDE], "Cup (Grande 16oz)", IngredientUnit.PIECES, 1000, 100),
    (Packaging.CUP_BY_SIZE[Size.VENTI], "Cup (Venti 22oz)", IngredientUnit.PIECES, 1000, 100),
    (Packaging.LID_BY_SIZE[Size.GRANDE], "Lid (Grande)", IngredientUnit.PIECES, 1000, 100),
    (Packaging.LID_BY_SIZE[Size.VENTI], "Lid (Venti)", IngredientUnit.PIECES, 1000, 100),
    (Packaging.STRAW, "Straw", IngredientUnit.PIECES, 2000, 200),
    (Packaging.NAPKINS, "Napkins", IngredientUnit.PIECES, 5000, 500),
    (Packaging.TAKEOUT_PACK, "Takeout Pack", IngredientUnit.PIECES, 500, 50),
]

# (id, name, stock, portion_size, price_cents)
TOPPINGS = [
    ("topping-pearls", "Pearls", 5000, 30, 1500),
    ("topping-nata", "Nata de Coco", 3000, 30, 1500),
    ("topping-coffee-jelly", "Coffee Jelly", 3000, 40, 2000),
    ("topping-cream-cheese", "Cream Cheese", 2000, 25, 2500),
]

PRODUCTS = [
    {
        "id": "cb-01",
        "name": "Spanish Latte",
        "category": ProductCategory.COFFEE_BASED,
        "sizes": [(Size.GRANDE, "16oz", 5900), (Size.VENTI, "22oz", 6900)],
        "recipe": {"espresso-shot": 2, "milk": 150, "condensed-milk": 30},
    },
    {
        "id": "cb-02",
        "name": "Rush Coffee Blend",
        "category": ProductCategory.COFFEE_BASED,
        "sizes": [(Size.GRANDE, "16oz", 6900), (Size.VENTI, "22oz", 8900)],
        "recipe": {"coffee-beans-blend": 18, "hot-water": 200},
    },
    {
        "id": "cb-03",
        "name": "Caramel Chocolate Mocha",
        "category": ProductCategory.COFFEE_BASED,
        "sizes": [(Size.GRANDE, "16oz", 5900), (Size.VENTI, "22oz", 6900)],
        "recipe": {"espresso-shot": 2, "milk": 150, "chocolate-sauce": 20, "caramel-sauce": 15},
    },
    {
        # No recipe on file: only customizations and packaging are deducted
        "id": "cb-04",
        "name": "Dark Chocolate Mocha",
        "category": ProductCategory.COFFEE_BASED,
        "sizes": [(Size.GRANDE, "16oz", 5900), (Size.VENTI, "22oz", 6900)],
        "recipe": {},
    },
    {
        "id": "ms-01",
        "name": "Matcha Latte",
        "category": ProductCategory.MATCHA_SERIES,
        "sizes": [(Size.GRANDE, "16oz", 7900), (Size.VENTI, "22oz", 8900)],
        "recipe": {"matcha-powder": 5, "milk": 180},
    },
    {
        "id": "nc-01",
        "name": "Strawberry Milk",
        "category": ProductCategory.NON_COFFEE_BASED,
        "sizes": [(Size.GRANDE, "16oz", 6900), (Size.VENTI, "22oz", 7900)],
        "recipe": {"strawberry-puree": 40, "milk": 180},
    },
    {
        "id": "rf-01",
        "name": "Lemonade",
        "category": ProductCategory.REFRESHMENTS,
        "sizes": [(Size.GRANDE, "16oz", 4900), (Size.VENTI, "22oz", 5900)],
        "recipe": {"lemon-juice": 30},
    },
    {
        "id": "ml-01",
        "name": "Chicken Rice Meal",
        "category": ProductCategory.MEALS,
        "sizes": [(Size.ALA_CARTE, None, 9900), (Size.COMBO_MEAL, None, 12900)],
        "recipe": {"chicken": 1, "rice": 150},
    },
]


def seed_ingredients(db: Session) -> None:
    """Idempotent: only inserts ingredients that do not exist yet."""
    existing = set(db.scalars(select(Ingredient.id)).all())

    for ingredient_id, name, unit, stock, threshold in INGREDIENTS:
        if ingredient_id in existing:
            continue
        db.add(Ingredient(id=ingredient_id, name=name, unit=unit, stock=stock, low_stock_threshold=threshold))

    for ingredient_id, name, stock, portion, price in TOPPINGS:
        if ingredient_id in existing:
            continue
        db.add(
            Ingredient(
                id=ingredient_id,
                name=name,
                unit=IngredientUnit.GRAMS,
                stock=stock,
                low_stock_threshold=stock // 10,
                is_topping=True,
                portion_size=portion,
                topping_price_cents=price,
            )
        )
    db.flush()


def seed_products(db: Session) -> None:
    """Idempotent: only inserts products that do not exist yet."""
    existing = set(db.scalars(select(Product.id)).all())

    for data in PRODUCTS:
        if data["id"] in existing:
            continue
        product = Product(id=data["id"], name=data["name"], category=data["category"])
        product.sizes = [
            ProductSize(name=name, label=label, price_cents=price) for name, label, price in data["sizes"]
        ]
        product.recipe = [
            RecipeLine(ingredient_id=ingredient_id, quantity_per_unit=qty)
            for ingredient_id, qty in data["recipe"].items()
        ]
        db.add(product)
    db.flush()


def seed_customers(db: Session) -> None:
    if db.get(CustomerProfile, DEMO_CUSTOMER_ID) is None:
        db.add(CustomerProfile(id=DEMO_CUSTOMER_ID, display_name="Demo Customer", email="demo@example.com"))
        db.flush()


def seed(db: Session) -> None:
    """
    Seed all reference data.
    Safe to run on every startup.
    """
    logger.info("Seeding reference data")
    seed_ingredients(db)
    seed_products(db)
    seed_customers(db)
    safe_commit(db)
    logger.info(
        "Reference data ready",
        ingredients=len(INGREDIENTS) + len(TOPPINGS),
        products=len(PRODUCTS),
    )
