"""MongoDB access: client lifecycle, collection names and document helpers."""

import logging
from functools import lru_cache, wraps
from typing import Any, Callable, Union

from bson import ObjectId
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import settings
from errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)

LISTINGS = "nyumba_listings"
AGENTS = "nyumba_agents"
REPORTS = "nyumba_reports"
ESCROWS = "nyumba_escrows"
ACTIVITY_LOG = "activity_log"
USERS = "users"


@lru_cache(maxsize=1)
def get_client() -> MongoClient:
    return MongoClient(settings.database_url)


def get_db() -> Database:
    """FastAPI dependency yielding the application database."""
    return get_client()[settings.database_name]


def parse_object_id(value: Union[str, ObjectId, None], label: str = "Document") -> ObjectId:
    """Malformed identifiers are reported the same way as missing documents."""
    if isinstance(value, ObjectId):
        return value
    if not value or not ObjectId.is_valid(value):
        raise NotFoundError(f"{label} not found")
    return ObjectId(value)


def serialize(value: Any) -> Any:
    """Make a stored document JSON friendly: ``_id`` becomes ``id``, ObjectIds become strings."""
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {("id" if key == "_id" else key): serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [serialize(item) for item in value]
    return value


def guard_store(message: str) -> Callable:
    """Map driver failures inside the wrapped operation to PersistenceError(message)."""

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except PyMongoError:
                logger.exception(message, extra={"operation": func.__qualname__})
                raise PersistenceError(message)

        return wrapper

    return decorator
