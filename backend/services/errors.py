# backend/services/errors.py

from typing import Any, Dict, List, Optional


class OrderError(Exception):
    """Base error for the order core. Carries the HTTP status it maps to."""

    status_code = 500
    code = "order_error"

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.code

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "error": self.code, "message": self.message}


class ValidationError(OrderError):
    status_code = 400
    code = "validation_error"

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.details = details or []

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        if self.details:
            out["details"] = self.details
        return out


class NotFound(OrderError):
    status_code = 404
    code = "not_found"


class InvalidTransition(OrderError):
    """
    A state guard was violated. `order` is the current authoritative
    document (already serialized) so callers can reconcile.
    """

    status_code = 409
    code = "invalid_transition"

    def __init__(self, message: str, current: Optional[Dict[str, Any]] = None, requested: Any = None):
        super().__init__(message)
        self.current = current
        self.requested = requested

    def to_dict(self) -> Dict[str, Any]:
        out = super().to_dict()
        out["requested"] = self.requested
        if self.current is not None:
            out["order"] = self.current
        return out


class StoreUnavailable(OrderError):
    status_code = 500
    code = "store_unavailable"
