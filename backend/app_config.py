# backend/app_config.py

import logging
import os


def load_config(app):
    """
    Load all Flask configuration in a clean centralized way.
    """
    # ------------------------------
    # Mongo
    # ------------------------------
    app.config["MONGO_URI"] = os.getenv(
        "MONGO_URI",
        "mongodb://localhost:27017/agri_marketplace_db"
    )
    app.config["DISABLE_MONGO"] = os.getenv("DISABLE_MONGO", "0") == "1"
    app.config["ORDERS_COLLECTION"] = os.getenv("ORDERS_COLLECTION", "seller_orders")
    app.config["USERS_COLLECTION"] = os.getenv("USERS_COLLECTION", "users")

    # ------------------------------
    # Order listings
    # ------------------------------
    app.config["ORDERS_PAGE_SIZE"] = int(os.getenv("ORDERS_PAGE_SIZE", "50"))
    app.config["ORDERS_MAX_PAGE_SIZE"] = int(os.getenv("ORDERS_MAX_PAGE_SIZE", "100"))

    # ------------------------------
    # Security Keys
    # ------------------------------
    app.config["SECRET_KEY"] = os.getenv("SECRET_KEY", os.urandom(24))
    app.config["JWT_SECRET_KEY"] = os.getenv("JWT_SECRET_KEY", "change-me")

    # ------------------------------
    # Logging
    # ------------------------------
    app.config["LOG_LEVEL"] = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=app.config["LOG_LEVEL"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app.logger.setLevel(app.config["LOG_LEVEL"])

    app.logger.info("Config loaded (orders collection: %s)", app.config["ORDERS_COLLECTION"])
