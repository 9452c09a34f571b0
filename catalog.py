"""
Catalog queries: paginated product listings and per-product review pages.

Every function takes the repository explicitly and re-reads the store on each
call. A listing runs three reads in sequence (categories, count, page); a write
landing between the count and the page can leave them out of step.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from errors import InvalidArgument, NotFound, OutOfRange
from logger import get_logger
from repository import ProductFilter, ProductRepository
from schemas import Product, Review, SortDirection

logger = get_logger("catalog")

PRODUCTS_PER_PAGE = 8
REVIEWS_PER_PAGE = 4

PRICE_SORT = {
    "highest": SortDirection.DESCENDING,
    "lowest": SortDirection.ASCENDING,
}

PRODUCT_FIELDS = ("name", "category", "image", "price")
REVIEW_FIELDS = ("username", "text")

PRODUCT_NOT_FOUND = "Product not found"
REVIEW_NOT_FOUND = "Review not found"
PAGE_DOES_NOT_EXIST = "Page does not exist"
INVALID_PRODUCT = "Invalid parameters. Requires name, price, category, and image"
INVALID_REVIEW = "Invalid parameters. Requires username and text."

# Largest skip a BSON int64 can carry.
MAX_SKIP = 2 ** 63 - 1


def parse_page(raw: Union[int, str, None], per_page: int = PRODUCTS_PER_PAGE) -> int:
    """Page number from a query string value.

    Missing or blank means page 1. Anything below 1 is raised to 1 so the
    skip offset can never go negative. A page whose skip offset would not fit
    in a BSON int64 cannot exist.
    """
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        return 1
    try:
        page = int(raw)
    except (TypeError, ValueError):
        raise InvalidArgument(f"Invalid page number: {raw!r}") from None
    page = max(page, 1)
    if page_window(page, per_page)[0] > MAX_SKIP:
        raise OutOfRange(PAGE_DOES_NOT_EXIST)
    return page


def page_window(page: int, per_page: int) -> tuple:
    """(skip, limit) for a 1-based page."""
    return per_page * page - per_page, per_page


@dataclass(frozen=True)
class ProductQuery:
    """Validated listing request: page, filters and price order."""

    page: int = 1
    category: Optional[str] = None
    text: Optional[str] = None
    sort: SortDirection = SortDirection.NONE

    @classmethod
    def from_params(cls, page=None, category=None, query=None, price=None) -> "ProductQuery":
        return cls(
            page=parse_page(page),
            category=category or None,
            text=query or None,
            sort=PRICE_SORT.get(price, SortDirection.NONE),
        )

    @property
    def filter(self) -> ProductFilter:
        return ProductFilter(category=self.category, text=self.text)

    @property
    def skip(self) -> int:
        return page_window(self.page, PRODUCTS_PER_PAGE)[0]

    @property
    def limit(self) -> int:
        return PRODUCTS_PER_PAGE


def list_products(repo: ProductRepository, spec: ProductQuery) -> Dict[str, Any]:
    categories = repo.distinct_categories()
    product_filter = spec.filter
    count = repo.count_matching(product_filter)
    products = repo.fetch_page(product_filter, spec.sort, spec.skip, spec.limit)
    logger.debug(
        "Listed page %s (category=%r, query=%r, sort=%s): %s of %s",
        spec.page, spec.category, spec.text, spec.sort.value, len(products), count,
    )

    if spec.page > 1 and not products:
        raise OutOfRange(PAGE_DOES_NOT_EXIST)

    return {"count": count, "categories": categories, "product_results": products}


def get_product(repo: ProductRepository, product_id: str) -> dict:
    product = repo.find_by_id(product_id)
    if product is None:
        raise NotFound(PRODUCT_NOT_FOUND)
    return product


def list_reviews(repo: ProductRepository, product_id: str, page: Union[int, str, None] = None) -> Dict[str, Any]:
    """One page of a product's reviews plus the product's total review count.

    Review pages are independent of product listing pages.
    """
    page = parse_page(page, REVIEWS_PER_PAGE)
    product = get_product(repo, product_id)
    total = len(product.get("reviews", []))

    skip, limit = page_window(page, REVIEWS_PER_PAGE)
    reviews = repo.slice_embedded_reviews(product_id, skip, limit)
    if reviews is None:
        # deleted between the two reads
        raise NotFound(PRODUCT_NOT_FOUND)

    if page > 1 and not reviews:
        raise OutOfRange(PAGE_DOES_NOT_EXIST)

    return {"total_review_count": total, "reviews": reviews}


def _require(fields: Optional[dict], names: tuple, message: str) -> dict:
    if not isinstance(fields, dict):
        raise InvalidArgument(message)
    for name in names:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise InvalidArgument(message)
    return fields


def create_product(repo: ProductRepository, fields: Optional[dict]) -> dict:
    fields = _require(fields, PRODUCT_FIELDS, INVALID_PRODUCT)
    try:
        product = Product(**{name: fields[name] for name in PRODUCT_FIELDS})
    except ValidationError as e:
        raise InvalidArgument(INVALID_PRODUCT) from e
    created = repo.insert(product)
    logger.info("Created product %s (%s)", created["id"], product.name)
    return created


def add_review(repo: ProductRepository, product_id: str, fields: Optional[dict]) -> dict:
    fields = _require(fields, REVIEW_FIELDS, INVALID_REVIEW)
    try:
        review = Review(username=fields["username"], text=fields["text"])
    except ValidationError as e:
        raise InvalidArgument(INVALID_REVIEW) from e
    created = repo.push_review(product_id, review)
    if created is None:
        raise NotFound(PRODUCT_NOT_FOUND)
    logger.info("Added review %s to product %s", created["id"], product_id)
    return created


def delete_product(repo: ProductRepository, product_id: str) -> str:
    if not repo.delete(product_id):
        raise NotFound(PRODUCT_NOT_FOUND)
    logger.info("Removed product %s", product_id)
    return "Product has been removed"


def delete_review(repo: ProductRepository, review_id: str) -> str:
    if not repo.pull_review(review_id):
        raise NotFound(REVIEW_NOT_FOUND)
    logger.info("Removed review %s", review_id)
    return "Review has been removed"
