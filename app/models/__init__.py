# app/models/__init__.py
from .user import User, UserRole, Role, RolePermission, Permission
from .masters import Site, Vendor, BillingAddress, SiteDeliveryAddress, PaymentTerm, Unit, Item
from .budget import SiteBudget, Indent, IndentItem, IndentStatus
from .number_series import DocNumberSeries
from .purchase_order import (
    PurchaseOrder,
    PurchaseOrderDetail,
    POPaymentTerm,
    ApprovalStatus,
    POStatus,
    ChargeStatus,
)

__all__ = [
    "User",
    "UserRole",
    "Role",
    "RolePermission",
    "Permission",
    "Site",
    "Vendor",
    "BillingAddress",
    "SiteDeliveryAddress",
    "PaymentTerm",
    "Unit",
    "Item",
    "SiteBudget",
    "Indent",
    "IndentItem",
    "IndentStatus",
    "DocNumberSeries",
    "PurchaseOrder",
    "PurchaseOrderDetail",
    "POPaymentTerm",
    "ApprovalStatus",
    "POStatus",
    "ChargeStatus",
]
