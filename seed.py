"""
Fake catalog data for local development.

Products are drawn from a fixed vocabulary, so the same seed always produces
the same catalog.
"""
import random
from typing import List, Optional

from logger import get_logger
from repository import ProductRepository
from schemas import Product

logger = get_logger("seed")

DEPARTMENTS = [
    "Books", "Electronics", "Garden", "Grocery", "Health", "Home",
    "Jewelery", "Kids", "Music", "Outdoors", "Shoes", "Sports", "Tools", "Toys",
]
ADJECTIVES = [
    "Awesome", "Ergonomic", "Fantastic", "Generic", "Gorgeous", "Handcrafted",
    "Incredible", "Intelligent", "Practical", "Refined", "Rustic", "Sleek",
    "Small", "Tasty",
]
MATERIALS = [
    "Concrete", "Cotton", "Fresh", "Frozen", "Granite", "Metal", "Plastic",
    "Rubber", "Soft", "Steel", "Wooden",
]
ITEMS = [
    "Bacon", "Ball", "Bike", "Car", "Chair", "Cheese", "Chips", "Computer",
    "Gloves", "Hat", "Keyboard", "Mouse", "Pants", "Pizza", "Salad", "Sausages",
    "Shirt", "Shoes", "Soap", "Table", "Towels",
]

DEFAULT_COUNT = 90


def fake_product(rng: random.Random) -> Product:
    return Product(
        category=rng.choice(DEPARTMENTS),
        name=f"{rng.choice(ADJECTIVES)} {rng.choice(MATERIALS)} {rng.choice(ITEMS)}",
        price=round(rng.uniform(1, 1000), 2),
        image=f"https://picsum.photos/seed/{rng.randrange(10 ** 6)}/640/480",
    )


def generate_fake_products(repo: ProductRepository, count: int = DEFAULT_COUNT, seed: Optional[int] = None) -> List[dict]:
    """Insert ``count`` fake products and return them as stored."""
    rng = random.Random(seed)
    created = [repo.insert(fake_product(rng)) for _ in range(count)]
    logger.info("Seeded %s fake products", len(created))
    return created
