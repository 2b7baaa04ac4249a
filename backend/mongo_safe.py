# backend/mongo_safe.py
from __future__ import annotations

from flask import current_app

from backend.services.errors import StoreUnavailable


def get_db():
    """
    Returns mongo.db for the current app.
    Raises StoreUnavailable when Mongo is disabled or init_mongo(app) was never called.
    """
    if current_app.config.get("DISABLE_MONGO"):
        raise StoreUnavailable("Mongo is disabled (DISABLE_MONGO=1)")

    from backend.mongo import mongo  # Flask-PyMongo instance
    db = getattr(mongo, "db", None)
    if db is None:
        raise StoreUnavailable("Mongo is not initialized")
    return db


def get_col(name: str):
    """
    Convenience helper:
      col = get_col(current_app.config["ORDERS_COLLECTION"])
    """
    return get_db()[name]
