"""
MongoProductRepository tests.

The pymongo database is a MagicMock; assertions check the exact filters,
collations, sorts and projections sent to the collection.
"""

import re

import pytest
from bson import ObjectId
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError
from unittest.mock import MagicMock

import catalog
from errors import OutOfRange, StoreError
from repository import MongoProductRepository, ProductFilter
from schemas import Product, Review, SortDirection

PRODUCT_ID = ObjectId("5f1d7c2e9b1e8a3d4c5b6a79")
REVIEW_ID = ObjectId("5f1d7c2e9b1e8a3d4c5b6a80")


@pytest.fixture
def collection():
    return MagicMock()


@pytest.fixture
def mongo_repo(collection):
    db = MagicMock()
    db.__getitem__.return_value = collection
    return MongoProductRepository(db)


def _product_doc(**overrides):
    doc = {
        "_id": PRODUCT_ID,
        "category": "Tools",
        "name": "Hammer",
        "price": 12.0,
        "image": "https://example.com/h.jpg",
        "reviews": [{"_id": REVIEW_ID, "username": "ann", "text": "solid"}],
    }
    doc.update(overrides)
    return doc


class TestProductFilter:
    def test_empty_filter(self):
        assert ProductFilter().to_mongo() == {}

    def test_category_and_text(self):
        query = ProductFilter(category="Tools", text="a.b").to_mongo()
        assert query == {"category": "Tools", "name": {"$regex": re.escape("a.b"), "$options": "i"}}


class TestReads:
    def test_distinct_categories(self, mongo_repo, collection):
        collection.distinct.return_value = ["Home", "Tools"]
        assert mongo_repo.distinct_categories() == ["Home", "Tools"]
        collection.distinct.assert_called_once_with("category")

    def test_count_uses_case_insensitive_collation(self, mongo_repo, collection):
        collection.count_documents.return_value = 3
        assert mongo_repo.count_matching(ProductFilter(category="tools")) == 3

        args, kwargs = collection.count_documents.call_args
        assert args == ({"category": "tools"},)
        assert kwargs["collation"].document == {"locale": "en", "strength": 2}

    def test_fetch_page(self, mongo_repo, collection):
        cursor = collection.find.return_value
        cursor.sort.return_value.skip.return_value.limit.return_value = iter([_product_doc()])

        products = mongo_repo.fetch_page(ProductFilter(text="ham"), SortDirection.DESCENDING, 8, 8)

        args, kwargs = collection.find.call_args
        assert args == ({"name": {"$regex": "ham", "$options": "i"}},)
        assert kwargs["collation"].document == {"locale": "en", "strength": 2}
        cursor.sort.assert_called_once_with([("price", -1), ("_id", 1)])
        cursor.sort.return_value.skip.assert_called_once_with(8)
        cursor.sort.return_value.skip.return_value.limit.assert_called_once_with(8)
        assert products[0]["id"] == str(PRODUCT_ID)
        assert products[0]["reviews"][0]["id"] == str(REVIEW_ID)

    @pytest.mark.parametrize("sort,expected", [
        (SortDirection.ASCENDING, [("price", 1), ("_id", 1)]),
        (SortDirection.NONE, [("_id", 1)]),
    ])
    def test_fetch_page_sort_spec(self, mongo_repo, collection, sort, expected):
        cursor = collection.find.return_value
        cursor.sort.return_value.skip.return_value.limit.return_value = iter([])
        assert mongo_repo.fetch_page(ProductFilter(), sort, 0, 8) == []
        cursor.sort.assert_called_once_with(expected)

    def test_find_by_id(self, mongo_repo, collection):
        collection.find_one.return_value = _product_doc()
        product = mongo_repo.find_by_id(str(PRODUCT_ID))
        collection.find_one.assert_called_once_with({"_id": PRODUCT_ID})
        assert product["id"] == str(PRODUCT_ID)
        assert "_id" not in product

    def test_find_by_malformed_id_skips_the_store(self, mongo_repo, collection):
        assert mongo_repo.find_by_id("nope") is None
        collection.find_one.assert_not_called()

    def test_slice_embedded_reviews(self, mongo_repo, collection):
        collection.find_one.return_value = _product_doc()
        reviews = mongo_repo.slice_embedded_reviews(str(PRODUCT_ID), 4, 4)
        collection.find_one.assert_called_once_with({"_id": PRODUCT_ID}, {"reviews": {"$slice": [4, 4]}})
        assert reviews == [{"id": str(REVIEW_ID), "username": "ann", "text": "solid"}]

    def test_slice_missing_product(self, mongo_repo, collection):
        collection.find_one.return_value = None
        assert mongo_repo.slice_embedded_reviews(str(PRODUCT_ID), 0, 4) is None


class TestWrites:
    def test_insert(self, mongo_repo, collection):
        collection.insert_one.return_value.inserted_id = PRODUCT_ID
        product = Product(name="Hammer", category="Tools", price=12, image="https://example.com/h.jpg")

        created = mongo_repo.insert(product)

        stored = collection.insert_one.call_args[0][0]
        assert stored == {"name": "Hammer", "category": "Tools", "price": 12.0,
                          "image": "https://example.com/h.jpg", "reviews": []}
        assert created["id"] == str(PRODUCT_ID)
        assert created["reviews"] == []

    def test_delete(self, mongo_repo, collection):
        collection.delete_one.return_value.deleted_count = 1
        assert mongo_repo.delete(str(PRODUCT_ID)) is True
        collection.delete_one.assert_called_once_with({"_id": PRODUCT_ID})

        collection.delete_one.return_value.deleted_count = 0
        assert mongo_repo.delete(str(PRODUCT_ID)) is False

    def test_push_review(self, mongo_repo, collection):
        collection.update_one.return_value.matched_count = 1
        created = mongo_repo.push_review(str(PRODUCT_ID), Review(username="bob", text="ok"))

        query, update = collection.update_one.call_args[0]
        assert query == {"_id": PRODUCT_ID}
        pushed = update["$push"]["reviews"]
        assert isinstance(pushed["_id"], ObjectId)
        assert created == {"id": str(pushed["_id"]), "username": "bob", "text": "ok"}

    def test_push_review_unknown_product(self, mongo_repo, collection):
        collection.update_one.return_value.matched_count = 0
        assert mongo_repo.push_review(str(PRODUCT_ID), Review(username="bob", text="ok")) is None

    def test_pull_review(self, mongo_repo, collection):
        collection.update_one.return_value.modified_count = 1
        assert mongo_repo.pull_review(str(REVIEW_ID)) is True
        collection.update_one.assert_called_once_with(
            {"reviews": {"$elemMatch": {"_id": REVIEW_ID}}},
            {"$pull": {"reviews": {"_id": REVIEW_ID}}},
        )

    def test_pull_unknown_review(self, mongo_repo, collection):
        collection.update_one.return_value.modified_count = 0
        assert mongo_repo.pull_review(str(REVIEW_ID)) is False
        assert mongo_repo.pull_review("bad-id") is False


class TestStoreErrors:
    def test_read_failure_keeps_message(self, mongo_repo, collection):
        collection.count_documents.side_effect = ServerSelectionTimeoutError("localhost:27017: connection refused")
        with pytest.raises(StoreError) as exc_info:
            mongo_repo.count_matching(ProductFilter())
        assert "connection refused" in str(exc_info.value)

    def test_write_failure(self, mongo_repo, collection):
        collection.delete_one.side_effect = PyMongoError("write failed")
        with pytest.raises(StoreError, match="write failed"):
            mongo_repo.delete(str(PRODUCT_ID))


class TestPageBounds:
    def test_listing_page_beyond_int64_never_reaches_the_driver(self, mongo_repo, collection):
        collection.distinct.return_value = []
        with pytest.raises(OutOfRange):
            catalog.list_products(mongo_repo, catalog.ProductQuery.from_params(page=str(10 ** 19)))
        collection.find.assert_not_called()

    def test_review_page_beyond_int64_never_reaches_the_driver(self, mongo_repo, collection):
        with pytest.raises(OutOfRange):
            catalog.list_reviews(mongo_repo, str(PRODUCT_ID), str(10 ** 19))
        collection.find_one.assert_not_called()


class TestInMemoryConcurrency:
    def test_parallel_writes_and_reads(self):
        from concurrent.futures import ThreadPoolExecutor

        from repository import InMemoryProductRepository

        repo = InMemoryProductRepository()
        product = Product(name="Hammer", category="Tools", price=12, image="https://example.com/h.jpg")

        def work(i):
            created = repo.insert(product)
            repo.push_review(created["id"], Review(username=f"u{i}", text="ok"))
            return repo.count_matching(ProductFilter(category="tools"))

        with ThreadPoolExecutor(max_workers=8) as pool:
            counts = list(pool.map(work, range(200)))

        assert max(counts) == 200
        assert repo.count_matching(ProductFilter()) == 200
        page = repo.fetch_page(ProductFilter(), SortDirection.ASCENDING, 0, 200)
        assert all(len(p["reviews"]) == 1 for p in page)
