"""
MongoDB access for the club site.

`db` is the process-wide database handle (None when the store is not
configured). `ContentStore` is the accessor layer used by the public renderer
and the admin editor: every document is validated against its schema on the
way in and on the way out, and driver failures surface as
`StoreUnavailableError`.
"""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from bson.objectid import ObjectId
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from config import settings
from errors import NotFoundError, StoreUnavailableError, ValidationError
from schemas import COLLECTIONS, SINGLETONS, TIMESTAMPED, Document

logger = logging.getLogger(__name__)

OrderBy = Iterable[Tuple[str, int]]


def _connect() -> Optional[Database]:
    if not settings.store_configured:
        logger.info("DATABASE_URL not set, content store disabled")
        return None
    client = MongoClient(settings.DATABASE_URL, serverSelectionTimeoutMS=settings.STORE_TIMEOUT_MS, tz_aware=True)
    return client[settings.DATABASE_NAME]


db = _connect()


def create_document(collection_name: str, data: Union[BaseModel, dict], database: Optional[Database] = None) -> str:
    """Insert one document and return its id as a string."""
    target = database if database is not None else db
    if target is None:
        raise StoreUnavailableError("Content store is not configured")
    if isinstance(data, BaseModel):
        payload = data.model_dump(by_alias=True, exclude={"id"})
    else:
        payload = dict(data)
    result = target[collection_name].insert_one(payload)
    return str(result.inserted_id)


def get_documents(collection_name: str, filter_dict: Optional[dict] = None, sort: Optional[OrderBy] = None,
                  limit: Optional[int] = None, database: Optional[Database] = None) -> List[dict]:
    target = database if database is not None else db
    if target is None:
        raise StoreUnavailableError("Content store is not configured")
    cursor = target[collection_name].find(filter_dict or {})
    if sort:
        cursor = cursor.sort(list(sort))
    if limit:
        cursor = cursor.limit(limit)
    return list(cursor)


def _key(doc_id: str):
    return ObjectId(doc_id) if ObjectId.is_valid(doc_id) else doc_id


@contextmanager
def _store_errors(action: str, collection: str):
    try:
        yield
    except PyMongoError as e:
        logger.warning(f"Store {action} on {collection} failed: {e}")
        raise StoreUnavailableError(f"Could not {action} {collection}: {e}") from e


class ContentStore:
    """Read/write accessor over the five content collections."""

    def __init__(self, database: Database):
        self.db = database

    # Schema boundary

    @staticmethod
    def model_for(collection: str):
        try:
            return COLLECTIONS[collection]
        except KeyError:
            raise NotFoundError(collection) from None

    def _validate(self, collection: str, data: Dict[str, Any]) -> Document:
        model = self.model_for(collection)
        try:
            if "_id" in data:
                return model.from_document(data)
            return model.model_validate(data)
        except PydanticValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc']) or 'document'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ValidationError(collection, problems) from e

    @staticmethod
    def wire_names(model, data: Dict[str, Any]) -> Dict[str, Any]:
        """Translate python attribute names in `data` to their stored aliases."""
        out = {}
        for key, value in data.items():
            field = model.model_fields.get(key)
            out[field.alias if field is not None and field.alias else key] = value
        return out

    # Contract

    def get(self, collection: str, doc_id: Optional[str] = None, where: Optional[dict] = None,
            order_by: Optional[OrderBy] = None):
        """Return one validated document, or every document of a collection.

        Singleton collections always resolve to their fixed-key document.
        Raises NotFoundError when a requested document does not exist.
        """
        self.model_for(collection)
        if doc_id is None and collection in SINGLETONS:
            doc_id = SINGLETONS[collection]

        if doc_id is not None:
            with _store_errors("read", collection):
                raw = self.db[collection].find_one({"_id": _key(doc_id)})
            if raw is None:
                raise NotFoundError(collection, doc_id)
            return self._validate(collection, raw)

        with _store_errors("read", collection):
            docs = get_documents(collection, where, sort=order_by, database=self.db)
        return [self._validate(collection, d) for d in docs]

    def put(self, collection: str, data: Union[Document, Dict[str, Any]], doc_id: Optional[str] = None) -> str:
        """Add a document (store-assigned id) or overwrite one at `doc_id`."""
        model = self.model_for(collection)
        if isinstance(data, BaseModel):
            data = data.model_dump(by_alias=True, exclude={"id"})
        data = self.wire_names(model, data)
        data.pop("id", None)
        if collection in TIMESTAMPED:
            data["date"] = datetime.now(timezone.utc)
        if doc_id is None and collection in SINGLETONS:
            doc_id = SINGLETONS[collection]

        document = self._validate(collection, data).to_document()
        if doc_id is None:
            with _store_errors("add to", collection):
                new_id = create_document(collection, document, database=self.db)
            logger.info(f"Added {collection}/{new_id}")
            return new_id

        with _store_errors("write", collection):
            self.db[collection].replace_one({"_id": _key(doc_id)}, document, upsert=True)
        logger.info(f"Wrote {collection}/{doc_id}")
        return doc_id

    def update(self, collection: str, doc_id: str, patch: Dict[str, Any]) -> None:
        """Merge `patch` into an existing document; the merged result is re-validated."""
        model = self.model_for(collection)
        with _store_errors("read", collection):
            existing = self.db[collection].find_one({"_id": _key(doc_id)})
        if existing is None:
            raise NotFoundError(collection, doc_id)

        merged = {k: v for k, v in existing.items() if k != "_id"}
        merged.update(self.wire_names(model, patch))
        merged.pop("id", None)
        if collection in TIMESTAMPED:
            merged["date"] = datetime.now(timezone.utc)
        document = self._validate(collection, merged).to_document()

        with _store_errors("update", collection):
            self.db[collection].replace_one({"_id": existing["_id"]}, document)
        logger.info(f"Updated {collection}/{doc_id}")

    def delete(self, collection: str, doc_id: str) -> None:
        self.model_for(collection)
        with _store_errors("delete from", collection):
            result = self.db[collection].delete_one({"_id": _key(doc_id)})
        if result.deleted_count == 0:
            raise NotFoundError(collection, doc_id)
        logger.info(f"Deleted {collection}/{doc_id}")

    def collection_names(self) -> List[str]:
        with _store_errors("list", "collections"):
            return self.db.list_collection_names()
