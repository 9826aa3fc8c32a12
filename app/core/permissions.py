# FILE: app/core/permissions.py
from __future__ import annotations

import enum


class POPerm(str, enum.Enum):
    VIEW = "purchase_orders.view"
    CREATE = "purchase_orders.create"
    UPDATE = "purchase_orders.update"
    DELETE = "purchase_orders.delete"
    APPROVE1 = "purchase_orders.approve1"
    APPROVE2 = "purchase_orders.approve2"
    COMPLETE = "purchase_orders.complete"
    SUSPEND = "purchase_orders.suspend"
    REMARKS = "purchase_orders.remarks"
    BILL_STATUS = "purchase_orders.bill_status"
    PO_STATUS = "purchase_orders.po_status"


ALL_PO_PERMS = [p.value for p in POPerm]
