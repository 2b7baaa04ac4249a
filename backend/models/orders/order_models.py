from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class OrderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DISAPPROVED = "disapproved"


class DeliveryStatus(str, Enum):
    PENDING = "pending"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"
    NOT_DELIVERED = "not-delivered"


DECISIONS = (OrderStatus.APPROVED, OrderStatus.DISAPPROVED)


def _lower(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


class _CamelModel(BaseModel):
    # UI sends camelCase, python callers may use field names
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class OrderCreateModel(_CamelModel):
    seller_id: str = Field(..., alias="sellerId", min_length=1)
    farmer_id: str = Field(..., alias="farmerId", min_length=1)
    item: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0, allow_inf_nan=False)
    price: float = Field(..., gt=0, allow_inf_nan=False)

    name: Optional[str] = None
    category: str = "vegetable"
    product_image: Optional[str] = Field(None, alias="productImage")
    district: Optional[str] = None
    company: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    posted_date: Optional[str] = Field(None, alias="postedDate", validate_default=True)
    expire_date: Optional[str] = Field(None, alias="expireDate")
    note: Optional[str] = None

    @field_validator("email")
    @classmethod
    def _loose_email(cls, v: Optional[str]) -> Optional[str]:
        if not v:
            return None
        if "@" not in v or " " in v:
            raise ValueError("invalid email format (expected something like user@host)")
        return v

    @field_validator("posted_date")
    @classmethod
    def _default_posted(cls, v: Optional[str]) -> str:
        return v or datetime.now(timezone.utc).strftime("%Y-%m-%d")


class DecisionModel(_CamelModel):
    status: OrderStatus
    note: Optional[str] = None

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        return _lower(v)

    @field_validator("status")
    @classmethod
    def _decided_only(cls, v: OrderStatus) -> OrderStatus:
        if v not in DECISIONS:
            raise ValueError("decision must be 'approved' or 'disapproved'")
        return v


class AcceptModel(_CamelModel):
    deliveryman_id: str = Field(..., alias="deliverymanId", min_length=1)
    note: Optional[str] = None


class DeliveryStatusModel(_CamelModel):
    delivery_status: DeliveryStatus = Field(..., alias="deliveryStatus")
    note: Optional[str] = None

    @field_validator("delivery_status", mode="before")
    @classmethod
    def _normalize_status(cls, v):
        return _lower(v)


def _iso(v):
    return v.isoformat() if isinstance(v, datetime) else v


def order_to_dict(doc: dict) -> dict:
    """Flatten a stored order into the camelCase shape the UI renders."""
    notes = doc.get("notes") or {}
    return {
        "id": str(doc.get("_id")) if doc.get("_id") is not None else None,
        "orderId": doc.get("order_id"),
        "name": doc.get("name"),
        "item": doc.get("item"),
        "category": doc.get("category"),
        "productImage": doc.get("product_image"),
        "quantity": doc.get("quantity"),
        "price": doc.get("price"),
        "totalPrice": doc.get("total_price"),
        "sellerId": doc.get("seller_id"),
        "farmerId": doc.get("farmer_id"),
        "deliverymanId": doc.get("deliveryman_id"),
        "district": doc.get("district"),
        "company": doc.get("company"),
        "mobile": doc.get("mobile"),
        "email": doc.get("email"),
        "address": doc.get("address"),
        "postedDate": doc.get("posted_date"),
        "expireDate": doc.get("expire_date"),
        "status": doc.get("status"),
        "acceptedByDeliveryman": bool(doc.get("accepted_by_deliveryman")),
        "deliveryStatus": doc.get("delivery_status"),
        "createdAt": _iso(doc.get("created_at")),
        "updatedAt": _iso(doc.get("updated_at")),
        "farmerApprovalDate": _iso(doc.get("farmer_approval_date")),
        "deliveryAcceptedDate": _iso(doc.get("delivery_accepted_date")),
        "deliveryCompletedDate": _iso(doc.get("delivery_completed_date")),
        "notes": {
            "seller": notes.get("seller"),
            "farmer": notes.get("farmer"),
            "deliveryman": notes.get("deliveryman"),
        },
    }
