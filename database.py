"""
MongoDB connection and document helpers.

The client is built explicitly from Settings and handed to the repository;
nothing here holds a module-level connection.
"""
from datetime import datetime
from typing import Any, Dict, Optional, Union

from bson import ObjectId
from pydantic import BaseModel
from pymongo import MongoClient
from pymongo.database import Database

from config import Settings
from logger import get_logger

logger = get_logger("database")


def connect(settings: Settings) -> Optional[Database]:
    """Return a handle on the configured database, or None when unset."""
    if not settings.database_configured:
        return None
    client = MongoClient(settings.database_url)
    logger.info("Connected to MongoDB database %s", settings.database_name)
    return client[settings.database_name]


def create_document(db: Database, collection_name: str, data: Union[BaseModel, Dict[str, Any]]) -> str:
    """Insert a document and return its id as a string."""
    if isinstance(data, BaseModel):
        data = data.model_dump()
    result = db[collection_name].insert_one(dict(data))
    return str(result.inserted_id)


def doc_to_dict(doc: dict) -> dict:
    """Make a stored document JSON friendly: ObjectIds become strings, _id becomes id."""
    out = {}
    for k, v in doc.items():
        if isinstance(v, ObjectId):
            out[k] = str(v)
        elif isinstance(v, datetime):
            out[k] = v.isoformat()
        elif isinstance(v, list):
            out[k] = [doc_to_dict(i) if isinstance(i, dict) else i for i in v]
        else:
            out[k] = v
    if "_id" in out:
        out["id"] = out.pop("_id")
    return out
