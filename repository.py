"""
Product storage behind a small, store-agnostic interface.

The catalog core only ever talks to a ProductRepository. MongoProductRepository
maps each method onto a single pymongo call; InMemoryProductRepository gives the
same answers from a Python list and backs the tests and database-less runs.
"""

import copy
import re
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.collation import Collation
from pymongo.database import Database
from pymongo.errors import PyMongoError

from database import create_document, doc_to_dict
from errors import StoreError
from logger import get_logger
from schemas import Product, Review, SortDirection

logger = get_logger("repository")

# Strength 2 compares letters without regard to case.
CASE_INSENSITIVE = Collation(locale="en", strength=2)


@dataclass(frozen=True)
class ProductFilter:
    """Filter shared by the count and fetch phases of a listing."""

    category: Optional[str] = None
    text: Optional[str] = None

    def to_mongo(self) -> dict:
        query = {}
        if self.category:
            query["category"] = self.category
        if self.text:
            query["name"] = {"$regex": re.escape(self.text), "$options": "i"}
        return query

    def matches(self, doc: dict) -> bool:
        if self.category and doc.get("category", "").casefold() != self.category.casefold():
            return False
        if self.text and self.text.casefold() not in doc.get("name", "").casefold():
            return False
        return True


def _object_id(value: str) -> Optional[ObjectId]:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


class ProductRepository(ABC):

    @abstractmethod
    def distinct_categories(self) -> List[str]:
        """Every category value stored, exactly as stored."""

    @abstractmethod
    def count_matching(self, product_filter: ProductFilter) -> int:
        """Number of products matching the filter."""

    @abstractmethod
    def fetch_page(self, product_filter: ProductFilter, sort: SortDirection, skip: int, limit: int) -> List[dict]:
        """One window of matching products in price order, ties by insertion order."""

    @abstractmethod
    def find_by_id(self, product_id: str) -> Optional[dict]:
        """A product with all of its reviews, or None."""

    @abstractmethod
    def slice_embedded_reviews(self, product_id: str, skip: int, limit: int) -> Optional[List[dict]]:
        """reviews[skip:skip + limit] of a product, or None if the product is missing."""

    @abstractmethod
    def insert(self, product: Product) -> dict:
        """Store a new product and return it with its assigned id."""

    @abstractmethod
    def delete(self, product_id: str) -> bool:
        """Remove a product and its reviews. False if nothing was removed."""

    @abstractmethod
    def push_review(self, product_id: str, review: Review) -> Optional[dict]:
        """Append a review to a product. None if the product is missing."""

    @abstractmethod
    def pull_review(self, review_id: str) -> bool:
        """Remove the review with this id from whichever product holds it."""


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        logger.error("MongoDB operation failed: %s", e)
        raise StoreError(str(e)) from e


def _sort_spec(sort: SortDirection) -> list:
    if sort is SortDirection.ASCENDING:
        return [("price", ASCENDING), ("_id", ASCENDING)]
    if sort is SortDirection.DESCENDING:
        return [("price", DESCENDING), ("_id", ASCENDING)]
    return [("_id", ASCENDING)]


class MongoProductRepository(ProductRepository):
    """Products stored as documents of one MongoDB collection, reviews embedded."""

    def __init__(self, db: Database, collection_name: str = "product"):
        self.db = db
        self.collection_name = collection_name
        self.collection = db[collection_name]

    def distinct_categories(self) -> List[str]:
        with _store_errors():
            return list(self.collection.distinct("category"))

    def count_matching(self, product_filter: ProductFilter) -> int:
        with _store_errors():
            return self.collection.count_documents(product_filter.to_mongo(), collation=CASE_INSENSITIVE)

    def fetch_page(self, product_filter: ProductFilter, sort: SortDirection, skip: int, limit: int) -> List[dict]:
        with _store_errors():
            cursor = (
                self.collection.find(product_filter.to_mongo(), collation=CASE_INSENSITIVE)
                .sort(_sort_spec(sort))
                .skip(skip)
                .limit(limit)
            )
            return [doc_to_dict(d) for d in cursor]

    def find_by_id(self, product_id: str) -> Optional[dict]:
        oid = _object_id(product_id)
        if oid is None:
            return None
        with _store_errors():
            doc = self.collection.find_one({"_id": oid})
        return doc_to_dict(doc) if doc else None

    def slice_embedded_reviews(self, product_id: str, skip: int, limit: int) -> Optional[List[dict]]:
        oid = _object_id(product_id)
        if oid is None:
            return None
        with _store_errors():
            doc = self.collection.find_one({"_id": oid}, {"reviews": {"$slice": [skip, limit]}})
        if not doc:
            return None
        return doc_to_dict(doc).get("reviews", [])

    def insert(self, product: Product) -> dict:
        with _store_errors():
            new_id = create_document(self.db, self.collection_name, product)
        return {"id": new_id, **product.model_dump()}

    def delete(self, product_id: str) -> bool:
        oid = _object_id(product_id)
        if oid is None:
            return False
        with _store_errors():
            result = self.collection.delete_one({"_id": oid})
        return result.deleted_count == 1

    def push_review(self, product_id: str, review: Review) -> Optional[dict]:
        oid = _object_id(product_id)
        if oid is None:
            return None
        review_doc = {"_id": ObjectId(), **review.model_dump()}
        with _store_errors():
            result = self.collection.update_one({"_id": oid}, {"$push": {"reviews": review_doc}})
        if result.matched_count == 0:
            return None
        return doc_to_dict(review_doc)

    def pull_review(self, review_id: str) -> bool:
        oid = _object_id(review_id)
        if oid is None:
            return False
        with _store_errors():
            result = self.collection.update_one(
                {"reviews": {"$elemMatch": {"_id": oid}}},
                {"$pull": {"reviews": {"_id": oid}}},
            )
        return result.modified_count > 0


class InMemoryProductRepository(ProductRepository):
    """List-backed repository with the same matching and ordering rules as MongoDB.

    Requests run on FastAPI's threadpool, so every access holds ``_lock``.
    """

    def __init__(self):
        self._docs: List[dict] = []
        self._lock = threading.RLock()

    def _find(self, product_id: str) -> Optional[dict]:
        oid = _object_id(product_id)
        if oid is None:
            return None
        return next((d for d in self._docs if d["_id"] == oid), None)

    def distinct_categories(self) -> List[str]:
        with self._lock:
            return sorted({d["category"] for d in self._docs})

    def count_matching(self, product_filter: ProductFilter) -> int:
        with self._lock:
            return sum(1 for d in self._docs if product_filter.matches(d))

    def fetch_page(self, product_filter: ProductFilter, sort: SortDirection, skip: int, limit: int) -> List[dict]:
        with self._lock:
            docs = [d for d in self._docs if product_filter.matches(d)]
            # sorted() is stable, so equal prices keep insertion order in both directions
            if sort is not SortDirection.NONE:
                docs = sorted(docs, key=lambda d: d["price"], reverse=sort is SortDirection.DESCENDING)
            return [doc_to_dict(copy.deepcopy(d)) for d in docs[skip:skip + limit]]

    def find_by_id(self, product_id: str) -> Optional[dict]:
        with self._lock:
            doc = self._find(product_id)
            return doc_to_dict(copy.deepcopy(doc)) if doc else None

    def slice_embedded_reviews(self, product_id: str, skip: int, limit: int) -> Optional[List[dict]]:
        with self._lock:
            doc = self._find(product_id)
            if doc is None:
                return None
            return [doc_to_dict(copy.deepcopy(r)) for r in doc["reviews"][skip:skip + limit]]

    def insert(self, product: Product) -> dict:
        doc = {"_id": ObjectId(), **product.model_dump()}
        with self._lock:
            self._docs.append(doc)
            return doc_to_dict(copy.deepcopy(doc))

    def delete(self, product_id: str) -> bool:
        with self._lock:
            doc = self._find(product_id)
            if doc is None:
                return False
            self._docs.remove(doc)
            return True

    def push_review(self, product_id: str, review: Review) -> Optional[dict]:
        review_doc = {"_id": ObjectId(), **review.model_dump()}
        with self._lock:
            doc = self._find(product_id)
            if doc is None:
                return None
            doc["reviews"].append(review_doc)
            return doc_to_dict(copy.deepcopy(review_doc))

    def pull_review(self, review_id: str) -> bool:
        oid = _object_id(review_id)
        if oid is None:
            return False
        with self._lock:
            for doc in self._docs:
                for review in doc["reviews"]:
                    if review["_id"] == oid:
                        doc["reviews"].remove(review)
                        return True
        return False
