# backend/services/orders/order_state.py
"""
Pure transition logic for an order.

Every guard takes the current OrderState and returns one of:
  Apply(changes, guard)  -> write `changes` only if the stored doc still matches `guard`
  NoOp()                 -> transition already satisfied, nothing to write
  Reject(reason)         -> guard violated

No I/O happens here; OrderService applies the result against the store.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Union

from backend.models.orders.order_models import DECISIONS, DeliveryStatus, OrderStatus


# delivered / not-delivered are terminal
DELIVERY_MOVES = {
    DeliveryStatus.PENDING: {DeliveryStatus.IN_TRANSIT, DeliveryStatus.DELIVERED, DeliveryStatus.NOT_DELIVERED},
    DeliveryStatus.IN_TRANSIT: {DeliveryStatus.DELIVERED, DeliveryStatus.NOT_DELIVERED},
    DeliveryStatus.DELIVERED: set(),
    DeliveryStatus.NOT_DELIVERED: set(),
}


@dataclass(frozen=True)
class OrderState:
    status: OrderStatus = OrderStatus.PENDING
    accepted_by_deliveryman: bool = False
    delivery_status: DeliveryStatus = DeliveryStatus.PENDING
    deliveryman_id: Optional[str] = None
    farmer_approval_date: Optional[datetime] = None
    delivery_accepted_date: Optional[datetime] = None
    delivery_completed_date: Optional[datetime] = None

    @classmethod
    def from_doc(cls, doc: Dict[str, Any]) -> "OrderState":
        """Read the tagged fields of a stored order. Unknown or non-canonical values raise ValueError."""
        return cls(
            status=OrderStatus(doc.get("status") or "pending"),
            accepted_by_deliveryman=bool(doc.get("accepted_by_deliveryman")),
            delivery_status=DeliveryStatus(doc.get("delivery_status") or "pending"),
            deliveryman_id=doc.get("deliveryman_id"),
            farmer_approval_date=doc.get("farmer_approval_date"),
            delivery_accepted_date=doc.get("delivery_accepted_date"),
            delivery_completed_date=doc.get("delivery_completed_date"),
        )

    def as_filter(self) -> Dict[str, Any]:
        """Mongo filter matching a stored order that is still in exactly this state."""
        return {
            "status": self.status.value,
            "accepted_by_deliveryman": True if self.accepted_by_deliveryman else {"$ne": True},
            "delivery_status": self.delivery_status.value,
            "deliveryman_id": self.deliveryman_id,
        }

    def describe(self) -> str:
        accepted = f"accepted by {self.deliveryman_id}" if self.accepted_by_deliveryman else "not accepted"
        return f"status={self.status.value}, {accepted}, delivery={self.delivery_status.value}"


@dataclass(frozen=True)
class Apply:
    changes: Dict[str, Any]
    guard: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NoOp:
    pass


@dataclass(frozen=True)
class Reject:
    reason: str


Result = Union[Apply, NoOp, Reject]


def decide(state: OrderState, decision: OrderStatus, now: datetime) -> Result:
    if decision not in DECISIONS:
        return Reject(f"'{decision.value}' is not a farmer decision")

    if state.status == decision:
        return NoOp()

    if state.status != OrderStatus.PENDING:
        return Reject(f"order already {state.status.value}; cannot change to {decision.value}")

    changes: Dict[str, Any] = {"status": decision.value}
    if state.farmer_approval_date is None:
        changes["farmer_approval_date"] = now
    return Apply(changes=changes, guard={"status": OrderStatus.PENDING.value})


def accept_delivery(state: OrderState, deliveryman_id: str, now: datetime) -> Result:
    if state.accepted_by_deliveryman:
        if state.deliveryman_id == deliveryman_id:
            return NoOp()
        return Reject(
            f"order already accepted by deliveryman {state.deliveryman_id}; "
            f"cannot accept for {deliveryman_id}"
        )

    if state.status != OrderStatus.APPROVED:
        return Reject(f"order is {state.status.value}; only approved orders can be accepted for delivery")

    changes: Dict[str, Any] = {
        "accepted_by_deliveryman": True,
        "deliveryman_id": deliveryman_id,
    }
    if state.delivery_accepted_date is None:
        changes["delivery_accepted_date"] = now
    return Apply(
        changes=changes,
        guard={"status": OrderStatus.APPROVED.value, "accepted_by_deliveryman": {"$ne": True}},
    )


def advance_delivery(state: OrderState, new_status: DeliveryStatus, now: datetime) -> Result:
    if not state.accepted_by_deliveryman:
        return Reject(
            f"delivery not accepted yet (status={state.status.value}); "
            f"cannot set delivery status to {new_status.value}"
        )

    if state.delivery_status == new_status:
        return NoOp()

    if new_status not in DELIVERY_MOVES[state.delivery_status]:
        return Reject(f"delivery is {state.delivery_status.value}; cannot move to {new_status.value}")

    changes: Dict[str, Any] = {"delivery_status": new_status.value}
    if new_status == DeliveryStatus.DELIVERED and state.delivery_completed_date is None:
        changes["delivery_completed_date"] = now
    return Apply(
        changes=changes,
        guard={"accepted_by_deliveryman": True, "delivery_status": state.delivery_status.value},
    )
