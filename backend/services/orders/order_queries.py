# backend/services/orders/order_queries.py

from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo.errors import PyMongoError

from backend.models.orders.order_models import DeliveryStatus, OrderStatus, order_to_dict
from backend.services.errors import StoreUnavailable, ValidationError
from backend.services.orders.order_store import OrderStore

ROLES = ("seller", "farmer", "deliveryman", "available", "all")

# role -> field holding that party's id on the order
ROLE_FIELDS = {
    "seller": "seller_id",
    "farmer": "farmer_id",
    "deliveryman": "deliveryman_id",
}


def _enum(enum_cls, value: Optional[str], field: str):
    if value in (None, ""):
        return None
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = ", ".join(e.value for e in enum_cls)
        raise ValidationError(f"{field}: must be one of {allowed}") from None


def _normalize_party(user_doc: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "userId": user_doc.get("userId") or user_doc.get("user_id") or str(user_doc.get("_id")),
        "name": user_doc.get("name") or user_doc.get("fullName") or user_doc.get("companyName") or "-",
        "role": user_doc.get("role") or user_doc.get("userType") or "-",
        "phone": user_doc.get("phone") or user_doc.get("mobile") or user_doc.get("contact") or "-",
        "email": user_doc.get("email") or "-",
        "address": user_doc.get("address") or user_doc.get("location") or "-",
    }


class OrderQueries:
    """Read-only views over the orders collection. Newest first, paged."""

    def __init__(self, store: OrderStore, users_col=None, page_size: int = 50, max_page_size: int = 100):
        self.store = store
        self.users_col = users_col
        self.max_page_size = max(1, int(max_page_size))
        self.page_size = min(max(1, int(page_size)), self.max_page_size)

    # -------------------------
    # paging
    # -------------------------
    def _page(self, page=None, limit=None):
        try:
            page = int(page) if page not in (None, "") else 1
            limit = int(limit) if limit not in (None, "") else self.page_size
        except (TypeError, ValueError):
            raise ValidationError("page/limit must be integers") from None
        if page < 1 or limit < 1:
            raise ValidationError("page/limit must be positive")
        limit = min(limit, self.max_page_size)
        return page, limit, (page - 1) * limit

    def _run(self, query: Dict[str, Any], page=None, limit=None) -> Dict[str, Any]:
        page, limit, skip = self._page(page, limit)
        docs = self.store.find(query, limit=limit, skip=skip)
        return {
            "orders": [order_to_dict(d) for d in docs],
            "page": page,
            "limit": limit,
        }

    # -------------------------
    # views
    # -------------------------
    def for_seller(self, seller_id: str, status: Optional[str] = None, page=None, limit=None):
        q: Dict[str, Any] = {"seller_id": seller_id}
        st = _enum(OrderStatus, status, "status")
        if st:
            q["status"] = st.value
        return self._run(q, page, limit)

    def for_farmer(self, farmer_id: str, status: Optional[str] = None, page=None, limit=None):
        q: Dict[str, Any] = {"farmer_id": farmer_id}
        st = _enum(OrderStatus, status, "status")
        if st:
            q["status"] = st.value
        return self._run(q, page, limit)

    def for_deliveryman(self, deliveryman_id: str, delivery_status: Optional[str] = None, page=None, limit=None):
        q: Dict[str, Any] = {"deliveryman_id": deliveryman_id, "accepted_by_deliveryman": True}
        ds = _enum(DeliveryStatus, delivery_status, "deliveryStatus")
        if ds:
            q["delivery_status"] = ds.value
        return self._run(q, page, limit)

    def available_for_delivery(self, page=None, limit=None):
        q = {"status": OrderStatus.APPROVED.value, "accepted_by_deliveryman": {"$ne": True}}
        return self._run(q, page, limit)

    def all_orders(self, status: Optional[str] = None, page=None, limit=None):
        q: Dict[str, Any] = {}
        st = _enum(OrderStatus, status, "status")
        if st:
            q["status"] = st.value
        return self._run(q, page, limit)

    def list(self, role: str, user_id: Optional[str] = None, status: Optional[str] = None, page=None, limit=None):
        """Dispatch used by the HTTP layers (GET /orders?role=...&id=...&status=...)."""
        role = (role or "all").strip().lower()
        if role not in ROLES:
            raise ValidationError(f"role: must be one of {', '.join(ROLES)}")

        if role == "available":
            return self.available_for_delivery(page, limit)
        if role == "all":
            return self.all_orders(status, page, limit)

        if not user_id:
            raise ValidationError(f"id: required when role={role}")
        if role == "seller":
            return self.for_seller(user_id, status, page, limit)
        if role == "farmer":
            return self.for_farmer(user_id, status, page, limit)
        return self.for_deliveryman(user_id, status, page, limit)

    # -------------------------
    # explicit party join
    # -------------------------
    def with_parties(self, orders: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """
        Attach seller/farmer/deliveryman public profiles to serialized orders
        with a single users lookup. Unknown ids resolve to None.
        """
        if self.users_col is None or not orders:
            return orders

        ids = set()
        for o in orders:
            for key in ("sellerId", "farmerId", "deliverymanId"):
                if o.get(key):
                    ids.add(o[key])

        profiles = self._lookup_users(ids)
        for o in orders:
            o["seller"] = profiles.get(o.get("sellerId"))
            o["farmer"] = profiles.get(o.get("farmerId"))
            o["deliveryman"] = profiles.get(o.get("deliverymanId"))
        return orders

    def _lookup_users(self, ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = [i for i in ids if i]
        if not ids:
            return {}

        oids = [ObjectId(i) for i in ids if ObjectId.is_valid(i)]
        ors: List[Dict[str, Any]] = [{"userId": {"$in": ids}}, {"user_id": {"$in": ids}}]
        if oids:
            ors.append({"_id": {"$in": oids}})

        try:
            docs = list(self.users_col.find({"$or": ors}, {"password": 0}))
        except PyMongoError as e:
            raise StoreUnavailable(f"users lookup failed: {e}") from e

        wanted = set(ids)
        out: Dict[str, Dict[str, Any]] = {}
        for u in docs:
            party = _normalize_party(u)
            for key in (u.get("userId"), u.get("user_id"), str(u.get("_id"))):
                if key in wanted:
                    out[key] = party
        return out

    # -------------------------
    # KPIs
    # -------------------------
    def summary(self, role: str, user_id: str) -> Dict[str, Any]:
        role = (role or "").strip().lower()
        field = ROLE_FIELDS.get(role)
        if not field:
            raise ValidationError(f"role: must be one of {', '.join(ROLE_FIELDS)}")
        if not user_id:
            raise ValidationError("id: required")

        base = {field: user_id}
        by_status = {s.value: self.store.count({**base, "status": s.value}) for s in OrderStatus}
        by_delivery = {
            d.value: self.store.count({**base, "accepted_by_deliveryman": True, "delivery_status": d.value})
            for d in DeliveryStatus
        }

        revenue = self.store.sum({**base, "status": OrderStatus.APPROVED.value}, "total_price")

        return {
            "role": role,
            "id": user_id,
            "total": sum(by_status.values()),
            "byStatus": by_status,
            "byDeliveryStatus": by_delivery,
            "approvedRevenue": round(revenue, 2),
        }
