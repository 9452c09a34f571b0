"""Pytest configuration for catalog tests."""

import os

import pytest

# Keep the app on the in-memory store regardless of the developer's shell.
os.environ.pop("DATABASE_URL", None)
os.environ.pop("DATABASE_NAME", None)

from fastapi.testclient import TestClient  # noqa: E402

from main import app, get_repository  # noqa: E402
from repository import InMemoryProductRepository  # noqa: E402
from schemas import Product  # noqa: E402


@pytest.fixture
def repo():
    """Fresh, empty product store for every test."""
    return InMemoryProductRepository()


@pytest.fixture
def client(repo):
    app.dependency_overrides[get_repository] = lambda: repo
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def make_product(repo):
    def _make(name="Widget", category="Tools", price=10.0, image="https://example.com/p.jpg"):
        return repo.insert(Product(name=name, category=category, price=price, image=image))
    return _make
