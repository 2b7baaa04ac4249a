# backend/services/orders/order_store.py

import logging
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from backend.services.errors import StoreUnavailable

log = logging.getLogger(__name__)

NEWEST_FIRST = [("created_at", DESCENDING), ("_id", DESCENDING)]


def id_filter(order_id: str) -> Optional[Dict[str, Any]]:
    """
    Orders are addressable by Mongo _id or by the human ORD-... reference.
    Returns None for an empty id.
    """
    order_id = (order_id or "").strip()
    if not order_id:
        return None
    if ObjectId.is_valid(order_id):
        return {"_id": ObjectId(order_id)}
    return {"order_id": order_id}


class OrderStore:
    """Thin wrapper over the orders collection. Every pymongo failure becomes StoreUnavailable."""

    def __init__(self, collection):
        if collection is None:
            raise StoreUnavailable("orders collection is not available (Mongo disabled or not initialized)")
        self.col = collection

    def ensure_indexes(self):
        try:
            self.col.create_index([("order_id", ASCENDING)], unique=True, sparse=True)
            self.col.create_index([("seller_id", ASCENDING), ("created_at", DESCENDING)])
            self.col.create_index([("farmer_id", ASCENDING), ("created_at", DESCENDING)])
            self.col.create_index([("deliveryman_id", ASCENDING), ("created_at", DESCENDING)])
            self.col.create_index([("status", ASCENDING), ("accepted_by_deliveryman", ASCENDING)])
        except PyMongoError as e:
            log.warning("orders index error: %s", e)

    def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        try:
            inserted = self.col.insert_one(doc)
        except DuplicateKeyError:
            raise
        except PyMongoError as e:
            raise StoreUnavailable(f"insert failed: {e}") from e
        doc["_id"] = inserted.inserted_id
        return doc

    def get(self, order_id: str) -> Optional[Dict[str, Any]]:
        q = id_filter(order_id)
        if q is None:
            return None
        try:
            return self.col.find_one(q)
        except PyMongoError as e:
            raise StoreUnavailable(f"lookup failed: {e}") from e

    def find(self, query: Dict[str, Any], limit: int, skip: int = 0) -> List[Dict[str, Any]]:
        try:
            cursor = self.col.find(query).sort(NEWEST_FIRST).skip(skip).limit(limit)
            return list(cursor)
        except PyMongoError as e:
            raise StoreUnavailable(f"find failed: {e}") from e

    def count(self, query: Dict[str, Any]) -> int:
        try:
            return self.col.count_documents(query)
        except PyMongoError as e:
            raise StoreUnavailable(f"count failed: {e}") from e

    def update_guarded(self, _id: ObjectId, guard: Dict[str, Any], changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Compare-and-set: apply `changes` only while the stored doc still matches `guard`.
        Returns the updated doc, or None when the guard no longer holds.
        """
        q = {"_id": _id}
        q.update(guard)
        try:
            return self.col.find_one_and_update(
                q,
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            raise StoreUnavailable(f"update failed: {e}") from e

    def sum(self, query: Dict[str, Any], field: str) -> float:
        pipeline = [
            {"$match": query},
            {"$group": {"_id": None, "total": {"$sum": f"${field}"}}},
        ]
        try:
            rows = list(self.col.aggregate(pipeline))
        except PyMongoError as e:
            raise StoreUnavailable(f"aggregate failed: {e}") from e
        return float(rows[0]["total"]) if rows else 0.0
