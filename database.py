"""
MongoDB access for the reading backend.

`Store` wraps a pymongo Database and turns driver errors into the types in
errors.py. Collection names are fixed here; the services only use the
constants below.
"""
from contextlib import contextmanager
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import BulkWriteError, ConnectionFailure, DuplicateKeyError

from errors import DuplicateKey, StoreUnavailable
from logging_setup import get_logger

log = get_logger("rovel.database")

MANGA = "manga"
NOVELS = "novels"
CHAPTERS = "chapters"
USERS = "users"
ADS_CONFIG = "adsConfig"
# One entry per work id, shared by manga and novels
WORK_IDS = "workIds"

# (collection, key fields) for every uniqueness constraint
UNIQUE_KEYS: List[Tuple[str, List[str]]] = [
    (MANGA, ["id"]),
    (NOVELS, ["id"]),
    (CHAPTERS, ["normalizedTitle", "chapterId"]),
    (USERS, ["id"]),
    (WORK_IDS, ["id"]),
]


def serialize(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Drop Mongo's _id and stringify any ObjectId values."""
    if not doc:
        return doc
    out = {k: v for k, v in doc.items() if k != "_id"}
    for k, v in list(out.items()):
        if isinstance(v, ObjectId):
            out[k] = str(v)
    return out


@contextmanager
def unavailable_on_disconnect():
    # ServerSelectionTimeoutError and AutoReconnect are both ConnectionFailure
    try:
        yield
    except ConnectionFailure as e:
        raise StoreUnavailable(str(e))


def _as_dict(record: Any) -> Dict[str, Any]:
    if isinstance(record, BaseModel):
        return record.model_dump()
    return dict(record)


class Store:
    def __init__(self, db: Database):
        self.db = db

    @property
    def name(self) -> str:
        return self.db.name

    def collection_names(self) -> List[str]:
        with unavailable_on_disconnect():
            return self.db.list_collection_names()

    def close(self) -> None:
        self.db.client.close()

    def ensure_indexes(self) -> None:
        for name, fields in UNIQUE_KEYS:
            with unavailable_on_disconnect():
                self.db[name].create_index([(f, ASCENDING) for f in fields], unique=True)
            log.debug("unique index on %s(%s)", name, ", ".join(fields))

    # -------------------- Writes --------------------

    def insert(self, collection: str, record: Any) -> Dict[str, Any]:
        data = _as_dict(record)
        try:
            with unavailable_on_disconnect():
                self.db[collection].insert_one(data)
        except DuplicateKeyError as e:
            raise DuplicateKey(f"Duplicate key in {collection}: {e.details.get('keyValue') if e.details else e}")
        return serialize(data)

    def insert_many(self, collection: str, records: Iterable[Any]) -> int:
        docs = [_as_dict(r) for r in records]
        if not docs:
            return 0
        try:
            with unavailable_on_disconnect():
                result = self.db[collection].insert_many(docs)
        except BulkWriteError as e:
            raise DuplicateKey(f"Bulk insert into {collection} failed: {e.details.get('writeErrors', [])[:1]}")
        return len(result.inserted_ids)

    def update_one(self, collection: str, filter_dict: Dict[str, Any], patch: Dict[str, Any]) -> int:
        """Merge `patch` into the first match. Returns the matched count (0 or 1)."""
        if not patch:
            return 1 if self.find_one(collection, filter_dict) is not None else 0
        try:
            with unavailable_on_disconnect():
                result = self.db[collection].update_one(filter_dict, {"$set": patch})
        except DuplicateKeyError as e:
            raise DuplicateKey(f"Duplicate key in {collection}: {e}")
        return result.matched_count

    def upsert(self, collection: str, filter_dict: Dict[str, Any], patch: Dict[str, Any]) -> None:
        with unavailable_on_disconnect():
            self.db[collection].update_one(filter_dict, {"$set": patch}, upsert=True)

    def delete_one(self, collection: str, filter_dict: Dict[str, Any]) -> int:
        with unavailable_on_disconnect():
            return self.db[collection].delete_one(filter_dict).deleted_count

    # -------------------- Reads --------------------

    def find(
        self,
        collection: str,
        filter_dict: Optional[Dict[str, Any]] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: Optional[int] = None,
    ):
        """Lazy cursor; errors raised while iterating it are mapped in main.py."""
        cursor = self.db[collection].find(filter_dict or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return cursor

    def find_one(self, collection: str, filter_dict: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        with unavailable_on_disconnect():
            return self.db[collection].find_one(filter_dict)

    def count(self, collection: str, filter_dict: Optional[Dict[str, Any]] = None) -> int:
        with unavailable_on_disconnect():
            return self.db[collection].count_documents(filter_dict or {})

    def max_value(self, collection: str, field: str, default: int = 0) -> int:
        with unavailable_on_disconnect():
            docs = list(self.find(collection, {}, sort=[(field, -1)], limit=1))
        if docs and docs[0].get(field) is not None:
            return docs[0][field]
        return default


def connect(url: str, name: str, timeout_ms: int = 5000) -> Store:
    """Open a client and ping the server. Raises StoreUnavailable when it can't be reached."""
    client = MongoClient(url, serverSelectionTimeoutMS=timeout_ms)
    try:
        client.admin.command("ping")
    except ConnectionFailure as e:
        client.close()
        raise StoreUnavailable(f"Could not reach MongoDB: {e}")
    log.info("Connected to MongoDB database %s", name)
    return Store(client[name])
