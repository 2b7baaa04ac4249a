# backend/fastapi/orders_api.py
# FastAPI router that exposes the order lifecycle to the mobile apps.
# Requires: same MongoDB as the Flask app + same JWT secret as server.py
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Any, Dict, Optional

import jwt
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pymongo import MongoClient

from backend.services.errors import OrderError
from backend.services.orders.order_queries import OrderQueries
from backend.services.orders.order_store import OrderStore
from backend.services.orders.orders_service import OrderService

log = logging.getLogger(__name__)

# ======= Config (match the Flask app) =======
MONGO_URI         = os.environ.get("MONGO_URI", "mongodb://localhost:27017/agri_marketplace_db")
JWT_SECRET_KEY    = os.environ.get("JWT_SECRET_KEY", "change-me")
ORDERS_COLLECTION = os.environ.get("ORDERS_COLLECTION", "seller_orders")
USERS_COLLECTION  = os.environ.get("USERS_COLLECTION", "users")
PAGE_SIZE         = int(os.environ.get("ORDERS_PAGE_SIZE", "50"))
MAX_PAGE_SIZE     = int(os.environ.get("ORDERS_MAX_PAGE_SIZE", "100"))

router = APIRouter(prefix="/api/v1/orders", tags=["orders"])

# --- one HTTPBearer scheme for this router (docs will show a lock) ---
bearer = HTTPBearer(scheme_name="AccessToken", bearerFormat="JWT", auto_error=False)


# ---------- Store wiring ----------
@lru_cache(maxsize=1)
def _db():
    return MongoClient(MONGO_URI).get_database()


def get_order_service() -> OrderService:
    return OrderService(OrderStore(_db()[ORDERS_COLLECTION]))


def get_order_queries() -> OrderQueries:
    db = _db()
    return OrderQueries(
        OrderStore(db[ORDERS_COLLECTION]),
        users_col=db[USERS_COLLECTION],
        page_size=PAGE_SIZE,
        max_page_size=MAX_PAGE_SIZE,
    )


# ---------- JWT helpers ----------
def _jwt_decode(token: str) -> Dict[str, Any]:
    try:
        return jwt.decode(token, JWT_SECRET_KEY, algorithms=["HS256"], options={"verify_sub": False})
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError:
        raise HTTPException(status_code=401, detail="Invalid token")


def auth_identity(credentials: HTTPAuthorizationCredentials = Security(bearer)) -> Dict[str, Any]:
    if not credentials or (credentials.scheme or "").lower() != "bearer":
        raise HTTPException(status_code=401, detail="Missing or invalid Authorization header")

    payload = _jwt_decode(credentials.credentials.strip())
    if payload.get("type") != "access":
        raise HTTPException(status_code=401, detail="Not an access token")

    # identity in 'user'; fallback to 'sub'
    identity = payload.get("user")
    if not identity and isinstance(payload.get("sub"), dict):
        identity = payload["sub"]
    if not identity and isinstance(payload.get("sub"), str):
        identity = {"userId": payload["sub"], "role": payload.get("role")}

    if not identity:
        raise HTTPException(status_code=401, detail="Invalid token payload")
    return identity


def _require_role(identity: Dict[str, Any], *roles: str) -> str:
    role = (identity.get("role") or "").lower()
    if role not in roles:
        raise HTTPException(status_code=403, detail=f"Only {' / '.join(roles)} can access this endpoint")
    uid = identity.get("userId")
    if not uid:
        raise HTTPException(status_code=401, detail="Missing userId in token")
    return str(uid)


def _call(fn, *args):
    try:
        return fn(*args)
    except OrderError as e:
        if e.status_code >= 500:
            log.error("orders api: %s", e.message)
        raise HTTPException(status_code=e.status_code, detail=e.to_dict())


def _owned_by(service: OrderService, order_id: str, field: str, uid: str) -> Dict[str, Any]:
    order = _call(service.get_order, order_id)
    owner = order.get(field)
    if owner and owner != uid:
        raise HTTPException(status_code=403, detail="Order belongs to another user")
    return order


# ---------- Endpoints ----------
@router.post("", status_code=201)
def submit_order(
    body: Dict[str, Any] = Body(...),
    identity: Dict[str, Any] = Depends(auth_identity),
    service: OrderService = Depends(get_order_service),
):
    uid = _require_role(identity, "seller")
    payload = dict(body)
    payload["sellerId"] = uid
    return {"ok": True, "order": _call(service.submit_order, payload)}


@router.get("/mine")
def my_orders(
    status: Optional[str] = Query(None),
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    identity: Dict[str, Any] = Depends(auth_identity),
    queries: OrderQueries = Depends(get_order_queries),
):
    uid = _require_role(identity, "seller", "farmer", "deliveryman")
    role = identity["role"].lower()
    result = _call(queries.list, role, uid, status, page, limit)
    return {"ok": True, "userId": uid, **result}


@router.get("/available")
def available_orders(
    page: Optional[int] = Query(None),
    limit: Optional[int] = Query(None),
    identity: Dict[str, Any] = Depends(auth_identity),
    queries: OrderQueries = Depends(get_order_queries),
):
    _require_role(identity, "deliveryman")
    return {"ok": True, **_call(queries.available_for_delivery, page, limit)}


@router.get("/summary")
def my_summary(
    identity: Dict[str, Any] = Depends(auth_identity),
    queries: OrderQueries = Depends(get_order_queries),
):
    uid = _require_role(identity, "seller", "farmer", "deliveryman")
    return {"ok": True, "summary": _call(queries.summary, identity["role"].lower(), uid)}


@router.get("/{order_id}")
def get_order(
    order_id: str,
    identity: Dict[str, Any] = Depends(auth_identity),
    service: OrderService = Depends(get_order_service),
):
    _require_role(identity, "seller", "farmer", "deliveryman")
    return {"ok": True, "order": _call(service.get_order, order_id)}


@router.put("/{order_id}/decision")
def decide_order(
    order_id: str,
    body: Dict[str, Any] = Body(...),
    identity: Dict[str, Any] = Depends(auth_identity),
    service: OrderService = Depends(get_order_service),
):
    uid = _require_role(identity, "farmer")
    _owned_by(service, order_id, "farmerId", uid)
    return {"ok": True, "order": _call(service.decide, order_id, body)}


@router.put("/{order_id}/accept")
def accept_order(
    order_id: str,
    body: Optional[Dict[str, Any]] = Body(None),
    identity: Dict[str, Any] = Depends(auth_identity),
    service: OrderService = Depends(get_order_service),
):
    uid = _require_role(identity, "deliveryman")
    payload = dict(body or {})
    payload["deliverymanId"] = uid
    return {"ok": True, "order": _call(service.accept_delivery, order_id, payload)}


@router.put("/{order_id}/delivery-status")
def update_delivery_status(
    order_id: str,
    body: Dict[str, Any] = Body(...),
    identity: Dict[str, Any] = Depends(auth_identity),
    service: OrderService = Depends(get_order_service),
):
    uid = _require_role(identity, "deliveryman")
    _owned_by(service, order_id, "deliverymanId", uid)
    return {"ok": True, "order": _call(service.advance_delivery, order_id, body)}
