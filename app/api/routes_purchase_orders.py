# FILE: app/api/routes_purchase_orders.py
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query
from pydantic import ValidationError as SchemaError
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.api.deps import current_user, get_db
from app.core.errors import PurchaseOrderError
from app.core.permissions import POPerm
from app.core.rbac import require_any
from app.models.purchase_order import ApprovalStatus
from app.models.user import User
from app.schemas.purchase_order import POCreateIn, POListRowOut, POOut, POUpdateIn, parse_patch_body
from app.services.po_workflow import display_status
from app.services.purchase_order_service import (
    create_purchase_order,
    delete_purchase_order,
    get_purchase_order,
    list_purchase_orders,
    transition_purchase_order,
    update_purchase_order,
)
from app.utils.resp import err, ok, page_meta

logger = logging.getLogger(__name__)
router = APIRouter()

P_PO_VIEW = [POPerm.VIEW, POPerm.CREATE, POPerm.UPDATE, POPerm.APPROVE1, POPerm.APPROVE2]
P_PO_CREATE = [POPerm.CREATE]
P_PO_DELETE = [POPerm.DELETE]


def _domain_err(e: PurchaseOrderError):
    return err(str(e), e.status_code, code=e.code, details=e.details)


def _safe_err(e: Exception):
    # Make SQL errors readable instead of full trace
    if isinstance(e, IntegrityError):
        return err("Database constraint error (duplicate/invalid reference).", 400)
    status_code = getattr(e, "status_code", 500)
    if status_code >= 500:
        logger.exception("Purchase order request failed")
        return err("Internal server error", 500)
    return err(str(getattr(e, "detail", e)), status_code)


def _po_out(po) -> Dict[str, Any]:
    data = POOut.model_validate(po).model_dump()
    data["payment_term_ids"] = [t.payment_term_id for t in po.po_payment_terms]
    data["display_status"] = display_status(po.approval_status, po.is_suspended)
    return data


def _row_out(po) -> Dict[str, Any]:
    data = POListRowOut.model_validate(po).model_dump()
    data["display_status"] = display_status(po.approval_status, po.is_suspended)
    return data


@router.get("")
def list_purchase_orders_api(
    search: Optional[str] = Query(None),
    site_id: Optional[int] = Query(None),
    vendor_id: Optional[int] = Query(None),
    approval_status: Optional[ApprovalStatus] = Query(None),
    approved2: Optional[bool] = Query(None),
    is_suspended: Optional[bool] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    sort: str = Query("order_date"),
    order: str = Query("desc"),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    try:
        require_any(user, P_PO_VIEW)
        rows, total = list_purchase_orders(
            db,
            search=search,
            site_id=site_id,
            vendor_id=vendor_id,
            approval_status=approval_status,
            approved2=approved2,
            is_suspended=is_suspended,
            date_from=date_from,
            date_to=date_to,
            page=page,
            per_page=per_page,
            sort=sort,
            order=order,
        )
        return ok([_row_out(x) for x in rows], meta=page_meta(page, per_page, total))
    except Exception as e:
        return _safe_err(e)


@router.get("/{po_id}")
def get_purchase_order_api(po_id: int, db: Session = Depends(get_db), user: User = Depends(current_user)):
    try:
        require_any(user, P_PO_VIEW)
        return ok(_po_out(get_purchase_order(db, po_id)))
    except PurchaseOrderError as e:
        return _domain_err(e)
    except Exception as e:
        return _safe_err(e)


@router.post("")
def create_purchase_order_api(payload: POCreateIn, db: Session = Depends(get_db), user: User = Depends(current_user)):
    try:
        require_any(user, P_PO_CREATE)
        with db.begin():
            po = create_purchase_order(db, payload, getattr(user, "id", None))
        return ok(_po_out(get_purchase_order(db, po.id)), status_code=201)
    except PurchaseOrderError as e:
        return _domain_err(e)
    except Exception as e:
        return _safe_err(e)


@router.patch("/{po_id}")
def patch_purchase_order_api(
    po_id: int,
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    user: User = Depends(current_user),
):
    """
    Either a DRAFT edit / remarks / bill_status / po_status update, or a status
    change when the body carries status_action.
    """
    try:
        req = parse_patch_body(body)
    except SchemaError as e:
        details = [{"loc": list(x.get("loc", ())), "msg": x.get("msg")} for x in e.errors()]
        return err("Invalid request body", 400, code="VALIDATION_ERROR", details=details)

    try:
        with db.begin():
            if isinstance(req, POUpdateIn):
                update_purchase_order(db, po_id, req, user)
            else:
                transition_purchase_order(db, po_id, req, user)
        return ok(_po_out(get_purchase_order(db, po_id)))
    except PurchaseOrderError as e:
        return _domain_err(e)
    except Exception as e:
        return _safe_err(e)


@router.delete("/{po_id}")
def delete_purchase_order_api(po_id: int, db: Session = Depends(get_db), user: User = Depends(current_user)):
    try:
        require_any(user, P_PO_DELETE)
        with db.begin():
            delete_purchase_order(db, po_id, getattr(user, "id", None))
        return ok({"id": po_id, "deleted": True})
    except PurchaseOrderError as e:
        return _domain_err(e)
    except Exception as e:
        return _safe_err(e)
