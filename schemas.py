"""
Database Schemas for the product catalog

Each Pydantic model represents a document stored in MongoDB.
- Product -> "product" collection
- Review  -> embedded in Product.reviews, never a collection of its own
"""

from enum import Enum
from pydantic import BaseModel, Field
from typing import List


class SortDirection(str, Enum):
    NONE = "none"
    ASCENDING = "asc"
    DESCENDING = "desc"


class Review(BaseModel):
    username: str = Field(..., min_length=1, description="Reviewer display name")
    text: str = Field(..., min_length=1, description="Review body")


class Product(BaseModel):
    category: str = Field(..., min_length=1, description="Product category (department)")
    name: str = Field(..., min_length=1, description="Product name")
    price: float = Field(..., ge=0, description="Price in dollars")
    image: str = Field(..., min_length=1, description="Image URL")
    reviews: List[Review] = Field(default_factory=list, description="Reviews, oldest first")
