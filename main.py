from fastapi import FastAPI, Body, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import List, Optional

import catalog
from config import Settings
from database import connect
from errors import CatalogError
from logger import get_logger, set_level
from repository import InMemoryProductRepository, MongoProductRepository, ProductRepository
from seed import generate_fake_products

logger = get_logger("api")

settings = Settings.from_env()
set_level(settings.log_level)
db = connect(settings)

app = FastAPI(title="Catalog API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def build_repository(database) -> ProductRepository:
    if database is None:
        logger.warning("DATABASE_URL/DATABASE_NAME not set, using in-memory product store")
        return InMemoryProductRepository()
    return MongoProductRepository(database)


repository = build_repository(db)


def get_repository() -> ProductRepository:
    return repository


# ---------- Schemas ----------

class ReviewOut(BaseModel):
    id: str
    username: str
    text: str

class ProductOut(BaseModel):
    id: str
    category: str
    name: str
    price: float
    image: str
    reviews: List[ReviewOut] = []

class ProductListOut(BaseModel):
    count: int
    categories: List[str]
    product_results: List[ProductOut]

class ReviewListOut(BaseModel):
    total_review_count: int
    reviews: List[ReviewOut]

class MessageOut(BaseModel):
    message: str


# ---------- Errors ----------

@app.exception_handler(CatalogError)
async def catalog_error_handler(request: Request, exc: CatalogError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    else:
        logger.warning("%s %s -> %s: %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# ---------- Basic Routes ----------

@app.get("/")
def read_root():
    return {"message": "Catalog Backend Running"}


# ---------- Product Routes ----------

@app.get("/api/products", response_model=ProductListOut)
def list_products(
    page: Optional[str] = None,
    category: Optional[str] = None,
    query: Optional[str] = None,
    price: Optional[str] = None,
    repo: ProductRepository = Depends(get_repository),
):
    spec = catalog.ProductQuery.from_params(page=page, category=category, query=query, price=price)
    return catalog.list_products(repo, spec)

@app.post("/api/products", response_model=ProductOut)
def create_product(payload: Optional[dict] = Body(None), repo: ProductRepository = Depends(get_repository)):
    return catalog.create_product(repo, payload)

@app.get("/api/products/{product_id}", response_model=ProductOut)
def get_product(product_id: str, repo: ProductRepository = Depends(get_repository)):
    return catalog.get_product(repo, product_id)

@app.delete("/api/products/{product_id}", response_model=MessageOut)
def delete_product(product_id: str, repo: ProductRepository = Depends(get_repository)):
    return {"message": catalog.delete_product(repo, product_id)}


# ---------- Review Routes ----------

@app.get("/api/products/{product_id}/reviews", response_model=ReviewListOut)
def list_reviews(product_id: str, page: Optional[str] = None, repo: ProductRepository = Depends(get_repository)):
    return catalog.list_reviews(repo, product_id, page)

@app.post("/api/products/{product_id}/reviews", response_model=ReviewOut)
def add_review(product_id: str, payload: Optional[dict] = Body(None), repo: ProductRepository = Depends(get_repository)):
    return catalog.add_review(repo, product_id, payload)

@app.delete("/api/reviews/{review_id}", response_model=MessageOut)
def delete_review(review_id: str, repo: ProductRepository = Depends(get_repository)):
    return {"message": catalog.delete_review(repo, review_id)}


# ---------- Seed Data ----------

@app.post("/api/generate-fake-data")
def generate_fake_data(repo: ProductRepository = Depends(get_repository)):
    created = generate_fake_products(repo)
    return {"inserted": len(created)}


# ---------- Diagnostics ----------

@app.get("/test")
def test_database():
    response = {
        "backend": "Running",
        "database": "Not Configured",
        "database_name": settings.database_name,
        "store": type(repository).__name__,
        "collections": [],
    }
    if db is None:
        return response

    try:
        response["collections"] = db.list_collection_names()[:10]
        response["database"] = "Connected & Working"
    except Exception as e:
        logger.error("Database check failed: %s", e)
        response["database"] = f"Error: {str(e)[:80]}"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
