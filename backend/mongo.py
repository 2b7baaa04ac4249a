# backend/mongo.py
from __future__ import annotations

from flask_pymongo import PyMongo

mongo = PyMongo()


def init_mongo(app):
    """
    Initializes Flask-PyMongo.
    Requires app.config["MONGO_URI"] (see load_config).
    Call this during app startup (create_app).
    """
    if app.config.get("DISABLE_MONGO"):
        app.logger.warning("Mongo disabled by DISABLE_MONGO=1")
        return mongo

    if not app.config.get("MONGO_URI"):
        app.logger.warning("MONGO_URI not set. Mongo will not be initialized.")
        return mongo

    mongo.init_app(app)

    from backend.services.orders.order_store import OrderStore

    OrderStore(mongo.db[app.config["ORDERS_COLLECTION"]]).ensure_indexes()
    app.logger.info("Mongo initialized")

    return mongo
