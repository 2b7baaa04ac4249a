# backend/services/orders/orders_service.py

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from pydantic import ValidationError as PydanticValidationError
from pymongo.errors import DuplicateKeyError

from backend.models.orders.order_models import (
    AcceptModel,
    DecisionModel,
    DeliveryStatus,
    DeliveryStatusModel,
    OrderCreateModel,
    OrderStatus,
    order_to_dict,
)
from backend.services.errors import InvalidTransition, NotFound, StoreUnavailable, ValidationError
from backend.services.orders import order_state
from backend.services.orders.order_state import NoOp, OrderState, Reject
from backend.services.orders.order_store import OrderStore

log = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def validate(model, payload: Optional[Dict[str, Any]]):
    """Run a pydantic model over a request body and raise our ValidationError on failure."""
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as e:
        details = [
            {"field": ".".join(str(p) for p in err.get("loc", ())), "message": err.get("msg")}
            for err in e.errors()
        ]
        first = details[0] if details else {"field": "", "message": "invalid input"}
        raise ValidationError(f"{first['field']}: {first['message']}", details) from None


class OrderService:
    """
    Order lifecycle: seller submits, farmer decides, deliveryman accepts and
    advances delivery. Every transition is a guarded compare-and-set.
    """

    MAX_CAS_ATTEMPTS = 3

    def __init__(self, store: OrderStore, clock: Callable[[], datetime] = _utcnow):
        self.store = store
        self.clock = clock

    # =========================
    # ID GENERATORS
    # =========================
    def generate_order_id(self) -> str:
        # ORD-YYYYMMDD-XXXXX
        date_part = self.clock().strftime("%Y%m%d")
        suffix = random.randint(10000, 99999)
        return f"ORD-{date_part}-{suffix}"

    # =========================
    # CREATE
    # =========================
    def submit_order(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        data = validate(OrderCreateModel, payload)
        now = self.clock()

        doc = {
            "name": data.name or data.company,
            "item": data.item,
            "category": data.category,
            "product_image": data.product_image,
            "quantity": data.quantity,
            "price": data.price,
            "total_price": round(data.quantity * data.price, 2),

            "seller_id": data.seller_id,
            "farmer_id": data.farmer_id,
            "deliveryman_id": None,

            "district": data.district,
            "company": data.company,
            "mobile": data.mobile,
            "email": data.email,
            "address": data.address,
            "posted_date": data.posted_date,
            "expire_date": data.expire_date,

            "status": OrderStatus.PENDING.value,
            "accepted_by_deliveryman": False,
            "delivery_status": DeliveryStatus.PENDING.value,

            "created_at": now,
            "updated_at": now,
            "farmer_approval_date": None,
            "delivery_accepted_date": None,
            "delivery_completed_date": None,

            "notes": {"seller": data.note, "farmer": None, "deliveryman": None},
        }

        for attempt in range(self.MAX_CAS_ATTEMPTS):
            doc["order_id"] = self.generate_order_id()
            try:
                saved = self.store.insert(dict(doc))
                break
            except DuplicateKeyError as e:
                log.info("order id collision on %s, regenerating", doc["order_id"])
                if attempt == self.MAX_CAS_ATTEMPTS - 1:
                    raise StoreUnavailable(f"could not allocate an order id: {e}") from e

        log.info(
            "order %s submitted by seller %s to farmer %s (%s x %s)",
            saved["order_id"], data.seller_id, data.farmer_id, data.quantity, data.item,
        )
        return order_to_dict(saved)

    # =========================
    # READ
    # =========================
    def get_order(self, order_id: str) -> Dict[str, Any]:
        return order_to_dict(self._load(order_id))

    def _load(self, order_id: str) -> Dict[str, Any]:
        doc = self.store.get(order_id)
        if not doc:
            raise NotFound(f"order {order_id} not found")
        return doc

    @staticmethod
    def _state(doc: Dict[str, Any]) -> OrderState:
        try:
            return OrderState.from_doc(doc)
        except ValueError as e:
            raise InvalidTransition(
                f"stored order has an unrecognised state: {e}",
                current=order_to_dict(doc),
            ) from e

    # =========================
    # TRANSITIONS
    # =========================
    def decide(self, order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = validate(DecisionModel, payload)
        return self._transition(
            order_id,
            lambda state, now: order_state.decide(state, body.status, now),
            requested=body.status.value,
            role="farmer",
            note=body.note,
        )

    def accept_delivery(self, order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = validate(AcceptModel, payload)
        return self._transition(
            order_id,
            lambda state, now: order_state.accept_delivery(state, body.deliveryman_id, now),
            requested=f"accept:{body.deliveryman_id}",
            role="deliveryman",
            note=body.note,
        )

    def advance_delivery(self, order_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = validate(DeliveryStatusModel, payload)
        return self._transition(
            order_id,
            lambda state, now: order_state.advance_delivery(state, body.delivery_status, now),
            requested=body.delivery_status.value,
            role="deliveryman",
            note=body.note,
        )

    def _transition(self, order_id, step, requested: str, role: str, note: Optional[str] = None):
        for _ in range(self.MAX_CAS_ATTEMPTS):
            doc = self._load(order_id)
            state = self._state(doc)
            now = self.clock()

            result = step(state, now)

            if isinstance(result, NoOp):
                log.info("order %s: %s already satisfied (%s)", doc.get("order_id"), requested, state.describe())
                if not note or (doc.get("notes") or {}).get(role) == note:
                    return order_to_dict(doc)
                # repeat carries a new note: store it only while the state is unchanged
                updated = self.store.update_guarded(
                    doc["_id"], state.as_filter(), {f"notes.{role}": note, "updated_at": now}
                )
                if updated is not None:
                    return order_to_dict(updated)
                log.info("order %s: guard lost while storing %s note, re-reading", doc.get("order_id"), role)
                continue

            if isinstance(result, Reject):
                log.warning("order %s: rejected %s: %s", doc.get("order_id"), requested, result.reason)
                raise InvalidTransition(result.reason, current=order_to_dict(doc), requested=requested)

            changes = dict(result.changes)
            changes["updated_at"] = now
            if note:
                changes[f"notes.{role}"] = note

            updated = self.store.update_guarded(doc["_id"], result.guard, changes)
            if updated is not None:
                log.info("order %s: %s applied (%s)", doc.get("order_id"), requested, ", ".join(sorted(result.changes)))
                return order_to_dict(updated)

            # another writer got there first; re-read and re-evaluate
            log.info("order %s: guard lost while applying %s, re-reading", doc.get("order_id"), requested)

        current = self._load(order_id)
        raise InvalidTransition(
            f"order changed concurrently while applying {requested}; current {self._state(current).describe()}",
            current=order_to_dict(current),
            requested=requested,
        )
