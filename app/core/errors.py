# FILE: app/core/errors.py
from __future__ import annotations

from typing import Any, Optional


class PurchaseOrderError(RuntimeError):
    """Base for every rejection raised by the purchase-order services.

    Nothing is written when one of these escapes a service call: the caller's
    ``with db.begin()`` block rolls the transaction back.
    """

    status_code = 400
    code = "PURCHASE_ORDER_ERROR"

    def __init__(self, message: str, *, details: Any = None):
        super().__init__(message)
        self.details = details

    def to_error(self) -> dict:
        out = {"msg": str(self), "code": self.code}
        if self.details is not None:
            out["details"] = self.details
        return out


class ValidationError(PurchaseOrderError):
    code = "VALIDATION_ERROR"


class ExceededLimits(PurchaseOrderError):
    code = "EXCEEDED_LIMITS"

    def __init__(self, message: str, *, violations: Optional[dict] = None):
        # violations: {"ITEM_LIMIT": {"<item>": "<used>:<limit>"}, ...}
        super().__init__(message, details=violations or {})
        self.violations = violations or {}


class InvalidTransition(PurchaseOrderError):
    status_code = 409
    code = "INVALID_TRANSITION"


class InvalidState(PurchaseOrderError):
    status_code = 409
    code = "INVALID_STATE"


class NotFound(PurchaseOrderError):
    status_code = 404
    code = "NOT_FOUND"


class PermissionDenied(PurchaseOrderError):
    status_code = 403
    code = "PERMISSION_DENIED"
