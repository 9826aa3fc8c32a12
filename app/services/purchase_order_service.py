# FILE: app/services/purchase_order_service.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.errors import InvalidState, InvalidTransition, NotFound, ValidationError
from app.core.permissions import POPerm
from app.core.rbac import ensure_perm, has_perm
from app.models.budget import Indent, IndentItem
from app.models.masters import BillingAddress, Item, PaymentTerm, Site, SiteDeliveryAddress, Vendor
from app.models.purchase_order import (
    ApprovalStatus,
    POPaymentTerm,
    PurchaseOrder,
    PurchaseOrderDetail,
)
from app.schemas.purchase_order import ANNOTATION_FIELDS, Approve1In, Approve2In, POCreateIn, POUpdateIn
from app.services.amount_words import amount_in_words
from app.services.budget_guard import BudgetScope, CeilingProvider, ProposedLine, check_budget
from app.services.po_amounts import (
    Charge,
    D,
    LineAmounts,
    check_line_inputs,
    compute_header,
    compute_line,
)
from app.services.po_numbers import generate_po_number
from app.services.po_workflow import Action, POState, TransitionPlan, effective_qty, plan_transition
from app.utils.timezone import now_db

logger = logging.getLogger(__name__)

REQUIRED_HEADER_FIELDS = (
    "order_date",
    "delivery_date",
    "site_id",
    "vendor_id",
    "billing_address_id",
    "delivery_address_id",
    "quotation_number",
    "quotation_date",
)

# header columns a DRAFT edit may overwrite directly
_EDITABLE_HEADER_FIELDS = REQUIRED_HEADER_FIELDS + (
    "payment_terms_in_days",
    "transport",
    "delivery_schedule",
    "note",
    "terms",
)

_APPROVAL_HEADER_FIELDS = ("note", "transport", "delivery_schedule", "terms")

CHARGES = ("transit_insurance", "transport_charge", "gst_reverse")

SORTABLE = {
    "order_number": PurchaseOrder.order_number,
    "order_date": PurchaseOrder.order_date,
    "created_at": PurchaseOrder.created_at,
}


@dataclass
class PreparedLine:
    item_id: int
    qty: Decimal
    rate: Decimal
    discount_percent: Decimal
    cgst_percent: Decimal
    sgst_percent: Decimal
    igst_percent: Decimal
    amounts: LineAmounts
    remark: Optional[str] = None
    id: Optional[int] = None
    indent_item_id: Optional[int] = None


# -------------------------
# helpers
# -------------------------
def _prepare_line(row_no: int, problems: Dict[str, List[str]], *, item_id, qty, rate, discount_percent,
                  cgst_percent, sgst_percent, igst_percent, remark=None, id=None,
                  indent_item_id=None) -> Optional[PreparedLine]:
    issues = check_line_inputs(qty, rate, discount_percent, cgst_percent, sgst_percent, igst_percent)
    if issues:
        problems[str(row_no)] = issues
        return None
    return PreparedLine(
        item_id=int(item_id),
        qty=D(qty),
        rate=D(rate),
        discount_percent=D(discount_percent),
        cgst_percent=D(cgst_percent),
        sgst_percent=D(sgst_percent),
        igst_percent=D(igst_percent),
        amounts=compute_line(qty, rate, discount_percent, cgst_percent, sgst_percent, igst_percent),
        remark=remark,
        id=id,
        indent_item_id=indent_item_id,
    )


def _prepare_input_lines(lines) -> List[PreparedLine]:
    if not lines:
        raise ValidationError("Purchase order must have at least 1 line item.")

    problems: Dict[str, List[str]] = {}
    out: List[PreparedLine] = []
    for n, li in enumerate(lines, start=1):
        p = _prepare_line(
            n, problems,
            item_id=li.item_id,
            qty=li.qty,
            rate=li.rate,
            discount_percent=li.discount_percent,
            cgst_percent=li.cgst_percent,
            sgst_percent=li.sgst_percent,
            igst_percent=li.igst_percent,
            remark=li.remark,
            id=li.id,
            indent_item_id=li.indent_item_id,
        )
        if p:
            out.append(p)

    if problems:
        raise ValidationError("Invalid line items.", details={"lines": problems})
    return out


def _charge_of(payload_charge, po: Optional[PurchaseOrder], name: str) -> Charge:
    """Payload value wins; otherwise whatever the order already holds."""
    if payload_charge is not None:
        return Charge(payload_charge.status, payload_charge.amount)
    if po is None:
        return Charge()
    return Charge(getattr(po, f"{name}_status"), getattr(po, f"{name}_amount"))


def _check_charges(charges: Dict[str, Charge]) -> None:
    bad = {}
    for name, ch in charges.items():
        if ch.amount is not None and D(ch.amount) < 0:
            bad[name] = "amount must be >= 0"
    if bad:
        raise ValidationError("Invalid charges.", details={"charges": bad})


def _charge_values(charges: Dict[str, Charge]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for name, ch in charges.items():
        out[f"{name}_status"] = ch.status
        out[f"{name}_amount"] = D(ch.amount) if ch.amount is not None else None
    return out


def _totals_values(amounts: List[LineAmounts], charges: Dict[str, Charge]) -> Dict[str, Any]:
    t = compute_header(
        amounts,
        transit_insurance=charges.get("transit_insurance"),
        transport_charge=charges.get("transport_charge"),
        gst_reverse=charges.get("gst_reverse"),
    )
    return {
        "total_amount": t.total_amount,
        "total_cgst": t.total_cgst,
        "total_sgst": t.total_sgst,
        "total_igst": t.total_igst,
        "total_discount": t.total_discount,
        "amount_in_words": amount_in_words(t.total_amount),
    }


def _missing_header(values: Dict[str, Any]) -> List[str]:
    missing = []
    for k in REQUIRED_HEADER_FIELDS:
        v = values.get(k)
        if v is None or (isinstance(v, str) and not v.strip()):
            missing.append(k)
    return missing


def _check_header(db: Session, values: Dict[str, Any]) -> None:
    missing = _missing_header(values)
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )

    if values["delivery_date"] < values["order_date"]:
        raise ValidationError("delivery_date cannot be before order_date.")

    bad: Dict[str, str] = {}
    site = db.get(Site, values["site_id"])
    if not site or not site.is_active:
        bad["site_id"] = "Invalid site_id"
    vendor = db.get(Vendor, values["vendor_id"])
    if not vendor or not vendor.is_active:
        bad["vendor_id"] = "Invalid vendor_id"
    if not db.get(BillingAddress, values["billing_address_id"]):
        bad["billing_address_id"] = "Invalid billing_address_id"
    addr = db.get(SiteDeliveryAddress, values["delivery_address_id"])
    if not addr or (site and addr.site_id != site.id):
        bad["delivery_address_id"] = "Delivery address does not belong to the site"

    if bad:
        raise ValidationError("Invalid references.", details=bad)


def _check_items(db: Session, prepared: List[PreparedLine]) -> None:
    ids = {p.item_id for p in prepared}
    found = {
        int(i)
        for (i,) in db.query(Item.id).filter(Item.id.in_(ids), Item.is_active.is_(True)).all()
    }
    missing = sorted(ids - found)
    if missing:
        raise ValidationError(
            f"Invalid item_id: {', '.join(str(i) for i in missing)}",
            details={"item_id": missing},
        )


def _check_payment_terms(db: Session, ids: Optional[List[int]]) -> List[int]:
    if not ids:
        return []
    uniq = list(dict.fromkeys(int(i) for i in ids))
    found = {int(i) for (i,) in db.query(PaymentTerm.id).filter(PaymentTerm.id.in_(uniq)).all()}
    missing = [i for i in uniq if i not in found]
    if missing:
        raise ValidationError(
            f"Invalid payment_term_id: {', '.join(str(i) for i in missing)}",
            details={"payment_term_ids": missing},
        )
    return uniq


def _set_payment_terms(po: PurchaseOrder, ids: List[int]) -> None:
    po.po_payment_terms = [POPaymentTerm(payment_term_id=i) for i in ids]
    po.payment_term_id = ids[0] if ids else None


def _check_indent(db: Session, indent_id: Optional[int], site_id: int, prepared: List[PreparedLine]) -> None:
    linked = [p for p in prepared if p.indent_item_id]
    if not indent_id:
        if linked:
            raise ValidationError("indent_item_id given without indent_id.")
        return

    indent = db.get(Indent, indent_id)
    if not indent:
        raise ValidationError("Invalid indent_id.", details={"indent_id": indent_id})
    if indent.site_id and indent.site_id != site_id:
        raise ValidationError("Indent belongs to a different site.")

    for p in linked:
        it = db.get(IndentItem, p.indent_item_id)
        if not it or it.indent_id != indent.id:
            raise ValidationError(f"Indent item {p.indent_item_id} is not part of indent {indent.id}.")
        if it.item_id != p.item_id:
            raise ValidationError(f"Indent item {p.indent_item_id} is for a different item.")


def _link_indent_items(db: Session, pairs: List[Tuple[Optional[int], PurchaseOrderDetail]]) -> None:
    for indent_item_id, detail in pairs:
        if not indent_item_id:
            continue
        it = db.get(IndentItem, indent_item_id)
        it.purchase_order_detail_id = detail.id


def _unlink_indent_items(db: Session, detail_ids: List[int]) -> None:
    if not detail_ids:
        return
    (
        db.query(IndentItem)
        .filter(IndentItem.purchase_order_detail_id.in_(detail_ids))
        .update({IndentItem.purchase_order_detail_id: None}, synchronize_session=False)
    )


def _budget_lines(prepared: List[PreparedLine]) -> List[ProposedLine]:
    return [ProposedLine(p.item_id, p.qty, p.rate, p.amounts.amount) for p in prepared]


def _write_line(d: PurchaseOrderDetail, p: PreparedLine) -> None:
    a = p.amounts
    d.item_id = p.item_id
    d.remark = p.remark
    d.rate = p.rate
    d.discount_percent = p.discount_percent
    d.cgst_percent = p.cgst_percent
    d.sgst_percent = p.sgst_percent
    d.igst_percent = p.igst_percent
    d.dis_amount = a.dis_amount
    d.cgst_amount = a.cgst_amount
    d.sgst_amount = a.sgst_amount
    d.igst_amount = a.igst_amount
    d.amount = a.amount


def _query_full(db: Session):
    return db.query(PurchaseOrder).options(
        selectinload(PurchaseOrder.details).selectinload(PurchaseOrderDetail.item),
        selectinload(PurchaseOrder.site),
        selectinload(PurchaseOrder.vendor),
        selectinload(PurchaseOrder.billing_address),
        selectinload(PurchaseOrder.delivery_address),
        selectinload(PurchaseOrder.payment_term),
        selectinload(PurchaseOrder.po_payment_terms),
        selectinload(PurchaseOrder.created_by),
        selectinload(PurchaseOrder.approved1_by),
        selectinload(PurchaseOrder.approved2_by),
    )


def load_purchase_order(db: Session, po_id: int, *, lock: bool = False) -> PurchaseOrder:
    q = db.query(PurchaseOrder).options(selectinload(PurchaseOrder.details)).filter(PurchaseOrder.id == po_id)
    if lock:
        q = q.with_for_update()
    po = q.first()
    if not po:
        raise NotFound("Purchase order not found.")
    return po


def get_purchase_order(db: Session, po_id: int) -> PurchaseOrder:
    po = _query_full(db).filter(PurchaseOrder.id == po_id).first()
    if not po:
        raise NotFound("Purchase order not found.")
    return po


# -------------------------
# Create
# -------------------------
def create_purchase_order(
    db: Session,
    payload: POCreateIn,
    user_id: Optional[int],
    *,
    provider: Optional[CeilingProvider] = None,
) -> PurchaseOrder:
    header = payload.model_dump(include=set(_EDITABLE_HEADER_FIELDS))
    _check_header(db, header)

    prepared = _prepare_input_lines(payload.lines)
    _check_items(db, prepared)
    term_ids = _check_payment_terms(db, payload.payment_term_ids)
    _check_indent(db, payload.indent_id, header["site_id"], prepared)

    charges = {name: _charge_of(getattr(payload, name), None, name) for name in CHARGES}
    _check_charges(charges)

    check_budget(
        db,
        BudgetScope(site_id=header["site_id"], indent_id=payload.indent_id),
        _budget_lines(prepared),
        provider,
    )

    order_number = generate_po_number(db, header["site_id"])
    now = now_db()

    po = PurchaseOrder(
        order_number=order_number,
        indent_id=payload.indent_id,
        approval_status=ApprovalStatus.DRAFT,
        is_suspended=False,
        is_complete=False,
        po_status=payload.po_status,
        created_by_id=user_id,
        updated_by_id=user_id,
        created_at=now,
        updated_at=now,
        **header,
        **_charge_values(charges),
        **_totals_values([p.amounts for p in prepared], charges),
    )
    _set_payment_terms(po, term_ids)
    db.add(po)
    db.flush()

    pairs = []
    for n, p in enumerate(prepared, start=1):
        d = PurchaseOrderDetail(
            purchase_order_id=po.id,
            serial_no=n,
            qty=p.qty,
            ordered_qty=p.qty,
            created_at=now,
            updated_at=now,
        )
        _write_line(d, p)
        po.details.append(d)
        pairs.append((p.indent_item_id, d))
    db.flush()

    _link_indent_items(db, pairs)
    db.flush()

    logger.info("Purchase order %s created by user=%s total=%s", po.order_number, user_id, po.total_amount)
    return po


# -------------------------
# Update (DRAFT edit + annotations)
# -------------------------
def ensure_editable(po: PurchaseOrder) -> None:
    if po.approval_status != ApprovalStatus.DRAFT:
        raise InvalidState(f"Only DRAFT purchase orders can be edited (current: {po.approval_status.value}).")
    if po.is_suspended:
        raise InvalidState("Suspended purchase orders cannot be edited.")


def _apply_annotations(po: PurchaseOrder, notes: Dict[str, Any], actor: Any) -> Dict[str, Any]:
    perms = {"remarks": POPerm.REMARKS, "bill_status": POPerm.BILL_STATUS, "po_status": POPerm.PO_STATUS}
    for field_name in notes:
        ensure_perm(actor, perms[field_name], action=f"set {field_name}")
    for field_name, value in notes.items():
        setattr(po, field_name, value)
    return notes


def annotate_purchase_order(db: Session, po_id: int, notes: Dict[str, Any], actor: Any) -> PurchaseOrder:
    """remarks / bill_status / po_status; allowed at every stage, suspended or not."""
    unknown = set(notes) - set(ANNOTATION_FIELDS)
    if unknown:
        raise ValidationError(f"Unsupported fields: {', '.join(sorted(unknown))}")
    po = load_purchase_order(db, po_id, lock=True)
    _apply_annotations(po, notes, actor)
    po.updated_by_id = getattr(actor, "id", None)
    po.updated_at = now_db()
    db.flush()
    return po


def update_purchase_order(
    db: Session,
    po_id: int,
    payload: POUpdateIn,
    actor: Any,
    *,
    provider: Optional[CeilingProvider] = None,
) -> PurchaseOrder:
    data = payload.model_dump(exclude_unset=True)
    notes = {k: data.pop(k) for k in ANNOTATION_FIELDS if k in data}

    if not data:
        if not notes:
            raise ValidationError("Nothing to update.")
        return annotate_purchase_order(db, po_id, notes, actor)

    ensure_perm(actor, POPerm.UPDATE, action="edit a purchase order")

    po = load_purchase_order(db, po_id, lock=True)
    ensure_editable(po)

    header = {k: getattr(po, k) for k in _EDITABLE_HEADER_FIELDS}
    header.update({k: data[k] for k in _EDITABLE_HEADER_FIELDS if k in data})
    _check_header(db, header)

    existing = {d.id: d for d in po.details}
    if "lines" in data:
        prepared = _prepare_input_lines(payload.lines)
        foreign = [p.id for p in prepared if p.id is not None and p.id not in existing]
        if foreign:
            raise ValidationError(
                f"Line ids not part of this purchase order: {', '.join(str(i) for i in foreign)}")
    else:
        problems: Dict[str, List[str]] = {}
        prepared = [
            _prepare_line(
                d.serial_no, problems,
                item_id=d.item_id, qty=d.qty, rate=d.rate,
                discount_percent=d.discount_percent, cgst_percent=d.cgst_percent,
                sgst_percent=d.sgst_percent, igst_percent=d.igst_percent,
                remark=d.remark, id=d.id,
            )
            for d in po.details
        ]
        if problems:
            raise ValidationError("Invalid line items.", details={"lines": problems})
    _check_items(db, prepared)
    _check_indent(db, po.indent_id, header["site_id"], prepared)

    term_ids = None
    if "payment_term_ids" in data:
        term_ids = _check_payment_terms(db, payload.payment_term_ids)

    charges = {name: _charge_of(getattr(payload, name) if name in data else None, po, name) for name in CHARGES}
    _check_charges(charges)

    check_budget(
        db,
        BudgetScope(site_id=header["site_id"], indent_id=po.indent_id, exclude_po_id=po.id),
        _budget_lines(prepared),
        provider,
    )

    # all checks passed; mutate
    now = now_db()
    for k, v in header.items():
        setattr(po, k, v)
    for k, v in _charge_values(charges).items():
        setattr(po, k, v)
    for k, v in _totals_values([p.amounts for p in prepared], charges).items():
        setattr(po, k, v)
    if term_ids is not None:
        _set_payment_terms(po, term_ids)

    keep_ids = {p.id for p in prepared if p.id is not None}
    dropped = [d for d in po.details if d.id not in keep_ids]
    _unlink_indent_items(db, [d.id for d in dropped])
    for d in dropped:
        po.details.remove(d)

    pairs = []
    for n, p in enumerate(prepared, start=1):
        d = existing.get(p.id) if p.id is not None else None
        if d is None:
            d = PurchaseOrderDetail(created_at=now)
            po.details.append(d)
        d.serial_no = n
        d.qty = p.qty
        d.ordered_qty = p.qty
        d.updated_at = now
        _write_line(d, p)
        pairs.append((p.indent_item_id, d))

    if notes:
        _apply_annotations(po, notes, actor)

    po.updated_by_id = getattr(actor, "id", None)
    po.updated_at = now
    db.flush()

    _link_indent_items(db, pairs)
    db.flush()

    logger.info("Purchase order %s updated by user=%s", po.order_number, po.updated_by_id)
    return po


# -------------------------
# Status transitions
# -------------------------
def _approval_lines(po: PurchaseOrder, req, stage: int) -> Tuple[List[PreparedLine], Dict[int, Decimal]]:
    """
    Merge per-line approver edits over the stored lines.
    Returns prepared lines (qty = quantity in force at the new stage) and the
    approved qty per detail id.
    """
    qty_field = f"approved{stage}_qty"
    overrides = {li.id: li for li in (req.lines or [])}

    existing_ids = {d.id for d in po.details}
    foreign = sorted(set(overrides) - existing_ids)
    if foreign:
        raise ValidationError(
            f"Line ids not part of this purchase order: {', '.join(str(i) for i in foreign)}")

    def pick(o, name, current):
        v = getattr(o, name, None) if o is not None else None
        return current if v is None else v

    problems: Dict[str, List[str]] = {}
    prepared: List[PreparedLine] = []
    approved: Dict[int, Decimal] = {}

    for d in po.details:
        o = overrides.get(d.id)
        prior = effective_qty(d, po.approval_status)
        qty = pick(o, qty_field, prior)
        p = _prepare_line(
            d.serial_no, problems,
            item_id=d.item_id,
            qty=qty,
            rate=pick(o, "rate", d.rate),
            discount_percent=pick(o, "discount_percent", d.discount_percent),
            cgst_percent=pick(o, "cgst_percent", d.cgst_percent),
            sgst_percent=pick(o, "sgst_percent", d.sgst_percent),
            igst_percent=pick(o, "igst_percent", d.igst_percent),
            remark=pick(o, "remark", d.remark),
            id=d.id,
        )
        if p:
            prepared.append(p)
            approved[d.id] = p.qty

    if problems:
        raise ValidationError("Invalid approval quantities.", details={"lines": problems})
    return prepared, approved


def _persist_transition(db: Session, po: PurchaseOrder, plan: TransitionPlan, values: Dict[str, Any]) -> None:
    """
    Conditional UPDATE: only succeeds while the row still shows the status the
    plan was made against. A concurrent winner leaves rowcount at 0.
    """
    res = db.execute(
        update(PurchaseOrder)
        .where(
            PurchaseOrder.id == po.id,
            PurchaseOrder.approval_status == plan.from_status,
            PurchaseOrder.is_suspended == plan.from_suspended,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if res.rowcount != 1:
        logger.warning(
            "Lost race on purchase order id=%s action=%s (expected %s, suspended=%s)",
            po.id, plan.action.value, plan.from_status.value, plan.from_suspended,
        )
        raise InvalidTransition("Purchase order was changed by another request; reload and try again.")


def apply_transition(
    db: Session,
    po: PurchaseOrder,
    req,
    actor: Any,
    *,
    provider: Optional[CeilingProvider] = None,
) -> PurchaseOrder:
    actor_id = getattr(actor, "id", None)
    plan = plan_transition(POState.of(po), req.status_action, actor_id, lambda p: has_perm(actor, p))

    now = now_db()
    values: Dict[str, Any] = {"updated_by_id": actor_id, "updated_at": now}
    line_writes: List[Tuple[PurchaseOrderDetail, PreparedLine]] = []
    approved: Dict[int, Decimal] = {}

    if plan.qty_stage:
        if not isinstance(req, (Approve1In, Approve2In)):
            raise ValidationError(f"{plan.action.value} needs an approval body.")
        prepared, approved = _approval_lines(po, req, plan.qty_stage)

        charges = {name: _charge_of(getattr(req, name), po, name) for name in CHARGES}
        _check_charges(charges)
        totals = _totals_values([p.amounts for p in prepared], charges)

        limit = settings.PO_AUTO_APPROVE2_LIMIT
        if plan.action == Action.APPROVE1 and limit is not None and totals["total_amount"] <= limit:
            plan = plan.escalated()

        check_budget(
            db,
            BudgetScope(site_id=po.site_id, indent_id=po.indent_id, exclude_po_id=po.id),
            _budget_lines(prepared),
            provider,
        )

        values.update(_charge_values(charges))
        values.update(totals)
        for k in _APPROVAL_HEADER_FIELDS:
            v = getattr(req, k, None)
            if v is not None:
                values[k] = v

        by_id = {d.id: d for d in po.details}
        line_writes = [(by_id[p.id], p) for p in prepared]

    elif plan.action == Action.UNSUSPEND:
        # suspended orders are left out of sibling consumption, so coming back counts again
        check_budget(
            db,
            BudgetScope(site_id=po.site_id, indent_id=po.indent_id, exclude_po_id=po.id),
            [
                ProposedLine(d.item_id, D(effective_qty(d, po.approval_status)), D(d.rate), D(d.amount))
                for d in po.details
            ],
            provider,
        )

    if plan.action == Action.APPROVE1:
        values.update(approved1_by_id=actor_id, approved1_at=now)
        if plan.auto_approve2:
            values.update(approved2_by_id=actor_id, approved2_at=now)
    elif plan.action == Action.APPROVE2:
        values.update(approved2_by_id=actor_id, approved2_at=now)
    elif plan.action == Action.COMPLETE:
        values.update(is_complete=True, completed_by_id=actor_id, completed_at=now)
    elif plan.action == Action.SUSPEND:
        values.update(suspended_by_id=actor_id, suspended_at=now)

    values["approval_status"] = plan.to_status
    values["is_suspended"] = plan.to_suspended

    _persist_transition(db, po, plan, values)

    for d, p in line_writes:
        _write_line(d, p)
        if plan.action == Action.APPROVE1:
            d.ordered_qty = d.qty
            d.approved1_qty = approved[d.id]
            if plan.auto_approve2:
                d.approved2_qty = approved[d.id]
        else:
            d.approved2_qty = approved[d.id]
        d.updated_at = now
    db.flush()
    db.expire(po)

    logger.info(
        "Purchase order id=%s %s by user=%s -> %s%s",
        po.id, plan.action.value, actor_id, plan.to_status.value,
        " (suspended)" if plan.to_suspended else "",
    )
    return po


def transition_purchase_order(
    db: Session,
    po_id: int,
    req,
    actor: Any,
    *,
    provider: Optional[CeilingProvider] = None,
) -> PurchaseOrder:
    po = load_purchase_order(db, po_id, lock=True)
    return apply_transition(db, po, req, actor, provider=provider)


# -------------------------
# Delete
# -------------------------
def delete_purchase_order(db: Session, po_id: int, user_id: Optional[int]) -> None:
    po = load_purchase_order(db, po_id, lock=True)
    if po.approval_status != ApprovalStatus.DRAFT or po.approved1_by_id is not None:
        raise InvalidState(f"Only DRAFT purchase orders can be deleted (current: {po.approval_status.value}).")
    if po.is_suspended:
        raise InvalidState("Suspended purchase orders cannot be deleted.")

    _unlink_indent_items(db, [d.id for d in po.details])
    order_number = po.order_number
    db.delete(po)
    db.flush()
    logger.info("Purchase order %s deleted by user=%s", order_number, user_id)


# -------------------------
# List
# -------------------------
def list_purchase_orders(
    db: Session,
    *,
    search: Optional[str] = None,
    site_id: Optional[int] = None,
    vendor_id: Optional[int] = None,
    approval_status: Optional[ApprovalStatus] = None,
    approved2: Optional[bool] = None,
    is_suspended: Optional[bool] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    page: int = 1,
    per_page: int = 20,
    sort: str = "order_date",
    order: str = "desc",
) -> Tuple[List[PurchaseOrder], int]:
    page = max(int(page or 1), 1)
    per_page = min(max(int(per_page or 20), 1), 100)

    q = db.query(PurchaseOrder)

    if search:
        like = f"%{search.strip()}%"
        q = q.filter(or_(
            PurchaseOrder.order_number.ilike(like),
            PurchaseOrder.quotation_number.ilike(like),
            PurchaseOrder.note.ilike(like),
        ))
    if site_id:
        q = q.filter(PurchaseOrder.site_id == site_id)
    if vendor_id:
        q = q.filter(PurchaseOrder.vendor_id == vendor_id)
    if approval_status:
        q = q.filter(PurchaseOrder.approval_status == approval_status)
    if approved2:
        # ready for receipt
        q = q.filter(
            PurchaseOrder.approval_status == ApprovalStatus.APPROVED_LEVEL_2,
            PurchaseOrder.is_suspended.is_(False),
        )
    if is_suspended is not None:
        q = q.filter(PurchaseOrder.is_suspended.is_(bool(is_suspended)))
    if date_from:
        q = q.filter(PurchaseOrder.order_date >= date_from)
    if date_to:
        q = q.filter(PurchaseOrder.order_date <= date_to)

    total = q.with_entities(func.count(PurchaseOrder.id)).scalar() or 0

    col = SORTABLE.get(sort or "", PurchaseOrder.order_date)
    primary = col.asc() if (order or "").lower() == "asc" else col.desc()

    rows = (
        q.options(
            selectinload(PurchaseOrder.site),
            selectinload(PurchaseOrder.vendor),
            selectinload(PurchaseOrder.created_by),
        )
        .order_by(primary, PurchaseOrder.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return rows, int(total)
