# backend/routes/orders/order_routes.py

from typing import Optional

from flask import Blueprint, current_app, jsonify, request, session
from flask_jwt_extended import get_jwt, get_jwt_identity, verify_jwt_in_request
from flask_jwt_extended.exceptions import JWTExtendedException
from jwt.exceptions import PyJWTError

from backend.mongo_safe import get_col
from backend.services.errors import OrderError, ValidationError
from backend.services.orders.order_queries import OrderQueries
from backend.services.orders.order_store import OrderStore
from backend.services.orders.orders_service import OrderService

orders_bp = Blueprint("orders_bp", __name__, url_prefix="/orders")


# -------------------- HELPERS --------------------

def _store() -> OrderStore:
    return OrderStore(get_col(current_app.config["ORDERS_COLLECTION"]))


def _service() -> OrderService:
    return OrderService(_store())


def _queries() -> OrderQueries:
    return OrderQueries(
        _store(),
        users_col=get_col(current_app.config["USERS_COLLECTION"]),
        page_size=current_app.config["ORDERS_PAGE_SIZE"],
        max_page_size=current_app.config["ORDERS_MAX_PAGE_SIZE"],
    )


def _acting_user(role: str) -> Optional[str]:
    """
    Id of the logged-in user when they hold `role`.
    Web session first, then an optional JWT (mobile). None if neither applies.
    """
    if session.get("role") == role and session.get("user_id"):
        return session["user_id"]

    try:
        verify_jwt_in_request(optional=True)
    except (JWTExtendedException, PyJWTError) as e:
        current_app.logger.info("ignoring unusable JWT: %s", e)
        return None

    user_id = get_jwt_identity()
    claims = get_jwt() or {}
    if (claims.get("role") or "").lower() == role and user_id:
        return str(user_id)
    return None


def _body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return dict(data)


@orders_bp.errorhandler(OrderError)
def _order_error(e: OrderError):
    if e.status_code >= 500:
        current_app.logger.error("orders: %s", e.message)
    return jsonify(e.to_dict()), e.status_code


# -------------------- APIs --------------------

@orders_bp.post("")
def submit_order():
    payload = _body()
    if not (payload.get("sellerId") or payload.get("seller_id")):
        seller_id = _acting_user("seller")
        if seller_id:
            payload["sellerId"] = seller_id

    order = _service().submit_order(payload)
    return jsonify(ok=True, order=order), 201


@orders_bp.get("")
def list_orders():
    args = request.args
    queries = _queries()
    result = queries.list(
        role=args.get("role", "all"),
        user_id=args.get("id"),
        status=args.get("status") or args.get("deliveryStatus"),
        page=args.get("page"),
        limit=args.get("limit"),
    )
    if args.get("expand") == "parties":
        result["orders"] = queries.with_parties(result["orders"])
    return jsonify(ok=True, **result)


@orders_bp.get("/summary")
def orders_summary():
    summary = _queries().summary(request.args.get("role"), request.args.get("id"))
    return jsonify(ok=True, summary=summary)


@orders_bp.get("/<order_id>")
def get_order(order_id: str):
    return jsonify(ok=True, order=_service().get_order(order_id))


@orders_bp.put("/<order_id>/decision")
def decide_order(order_id: str):
    order = _service().decide(order_id, _body())
    return jsonify(ok=True, order=order)


@orders_bp.put("/<order_id>/accept")
def accept_order(order_id: str):
    payload = _body()
    if not (payload.get("deliverymanId") or payload.get("deliveryman_id")):
        deliveryman_id = _acting_user("deliveryman")
        if deliveryman_id:
            payload["deliverymanId"] = deliveryman_id

    order = _service().accept_delivery(order_id, payload)
    return jsonify(ok=True, order=order)


@orders_bp.put("/<order_id>/delivery-status")
def update_delivery_status(order_id: str):
    order = _service().advance_delivery(order_id, _body())
    return jsonify(ok=True, order=order)
