# backend/routes/root/root_routes.py

from datetime import datetime, timezone

from flask import Blueprint, current_app, jsonify
from pymongo.errors import PyMongoError

from backend.mongo_safe import get_db
from backend.services.errors import StoreUnavailable

# Root blueprint
root_bp = Blueprint("root", __name__)


# -----------------------------
# HEALTH CHECK
# -----------------------------
@root_bp.get("/health")
def health():
    """Service status plus a ping of the order store."""
    store = "ok"
    try:
        get_db().command("ping")
    except (StoreUnavailable, PyMongoError) as e:
        current_app.logger.warning("health: store unavailable: %s", e)
        store = "unavailable"

    return jsonify(
        ok=store == "ok",
        service="agri-marketplace-orders",
        store=store,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
