# app/services/budget_guard.py
from __future__ import annotations

import calendar
import enum
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Protocol

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import ExceededLimits
from app.models.budget import Indent, IndentItem, SiteBudget
from app.models.purchase_order import PurchaseOrder, PurchaseOrderDetail
from app.services.po_amounts import D, ZERO
from app.utils.timezone import today_ist

logger = logging.getLogger(__name__)


class LimitKind(str, enum.Enum):
    ITEM_LIMIT = "ITEM_LIMIT"
    RATE_LIMIT = "RATE_LIMIT"
    VALUE_LIMIT = "VALUE_LIMIT"


_KIND_LABELS = {
    LimitKind.ITEM_LIMIT: "Item limit exceeded",
    LimitKind.RATE_LIMIT: "Rate limit exceeded",
    LimitKind.VALUE_LIMIT: "Value limit exceeded",
}


@dataclass(frozen=True)
class BudgetLimits:
    """Ceilings for one item. None means that ceiling is not configured."""
    max_qty: Optional[Decimal] = None
    max_rate: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    # quantity already taken by sibling orders against the same source
    consumed_qty: Decimal = ZERO


@dataclass(frozen=True)
class ProposedLine:
    item_id: int
    qty: Decimal
    rate: Decimal
    amount: Decimal


@dataclass
class ValidationResult:
    violations: Dict[LimitKind, Dict[str, str]] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.violations

    def as_dict(self) -> Dict[str, Dict[str, str]]:
        return {k.value: dict(v) for k, v in self.violations.items()}

    @property
    def message(self) -> str:
        return format_violations(self.violations)

    def raise_for_violations(self) -> None:
        if self.violations:
            raise ExceededLimits(self.message, violations=self.as_dict())


def fmt_decimal(x) -> str:
    """110.0000 -> '110', 12.50 -> '12.5'."""
    d = D(x)
    if d == d.to_integral_value():
        return str(d.quantize(Decimal(1)))
    return format(d.normalize(), "f")


def format_violations(violations: Dict[Any, Dict[str, str]]) -> str:
    """
    "Item limit exceeded -> 7: 110:100 | Rate limit exceeded -> 7: 120:100"

    Segments come in ITEM, RATE, VALUE order; items inside a segment are
    comma separated.
    """
    parts: List[str] = []
    for kind in LimitKind:
        per_item = violations.get(kind) or violations.get(kind.value)
        if not per_item:
            continue
        items = ", ".join(f"{ref}: {val}" for ref, val in per_item.items())
        parts.append(f"{_KIND_LABELS[kind]} -> {items}")
    return " | ".join(parts)


def validate(lines: Iterable[ProposedLine], limits_by_item: Dict[int, BudgetLimits]) -> ValidationResult:
    """
    Check proposed lines against per-item ceilings.

    Quantities and amounts of lines sharing an item are summed first; the rate
    check uses the highest rate among them. Items absent from `limits_by_item`
    are unconstrained.
    """
    qty_by_item: Dict[int, Decimal] = {}
    amount_by_item: Dict[int, Decimal] = {}
    rate_by_item: Dict[int, Decimal] = {}

    for li in lines:
        iid = int(li.item_id)
        qty_by_item[iid] = qty_by_item.get(iid, ZERO) + D(li.qty)
        amount_by_item[iid] = amount_by_item.get(iid, ZERO) + D(li.amount)
        rate_by_item[iid] = max(rate_by_item.get(iid, ZERO), D(li.rate))

    result = ValidationResult()

    for iid, qty in qty_by_item.items():
        lim = limits_by_item.get(iid)
        if lim is None:
            continue
        ref = str(iid)

        if lim.max_qty is not None:
            used = D(lim.consumed_qty) + qty
            if used > D(lim.max_qty):
                result.violations.setdefault(LimitKind.ITEM_LIMIT, {})[ref] = (
                    f"{fmt_decimal(used)}:{fmt_decimal(lim.max_qty)}"
                )

        if lim.max_rate is not None:
            rate = rate_by_item[iid]
            if rate > D(lim.max_rate):
                result.violations.setdefault(LimitKind.RATE_LIMIT, {})[ref] = (
                    f"{fmt_decimal(rate)}:{fmt_decimal(lim.max_rate)}"
                )

        if lim.max_amount is not None:
            amount = amount_by_item[iid]
            if amount > D(lim.max_amount):
                result.violations.setdefault(LimitKind.VALUE_LIMIT, {})[ref] = (
                    f"{fmt_decimal(amount)}:{fmt_decimal(lim.max_amount)}"
                )

    return result


# =========================
# Ceiling providers
# =========================
@dataclass(frozen=True)
class BudgetScope:
    site_id: Optional[int]
    indent_id: Optional[int] = None
    exclude_po_id: Optional[int] = None


class CeilingProvider(Protocol):
    def limits_for(self, db: Session, scope: BudgetScope, item_ids: Iterable[int]) -> Dict[int, BudgetLimits]:
        ...


def _effective_qty_expr():
    return func.coalesce(
        PurchaseOrderDetail.approved2_qty,
        PurchaseOrderDetail.approved1_qty,
        PurchaseOrderDetail.qty,
    )


def sibling_consumption(db: Session, scope: BudgetScope, item_ids: Iterable[int], *, by_indent: bool = False) -> Dict[int, Decimal]:
    """
    Quantity already ordered per item by other, non-suspended orders sharing
    the site (or the indent when by_indent is set).
    """
    ids = sorted({int(i) for i in item_ids})
    if not ids:
        return {}

    stmt = (
        select(PurchaseOrderDetail.item_id, func.sum(_effective_qty_expr()))
        .join(PurchaseOrder, PurchaseOrder.id == PurchaseOrderDetail.purchase_order_id)
        .where(PurchaseOrderDetail.item_id.in_(ids))
        .where(PurchaseOrder.is_suspended.is_(False))
        .group_by(PurchaseOrderDetail.item_id)
    )
    if by_indent:
        stmt = stmt.where(PurchaseOrder.indent_id == scope.indent_id)
    else:
        stmt = stmt.where(PurchaseOrder.site_id == scope.site_id)
    if scope.exclude_po_id:
        stmt = stmt.where(PurchaseOrder.id != scope.exclude_po_id)

    return {int(iid): D(total) for iid, total in db.execute(stmt).all()}


class NoCeilings:
    def limits_for(self, db: Session, scope: BudgetScope, item_ids: Iterable[int]) -> Dict[int, BudgetLimits]:
        return {}


class SiteBudgetCeilings:
    """Per site+item budget rows. Items with no row are unconstrained."""

    def limits_for(self, db: Session, scope: BudgetScope, item_ids: Iterable[int]) -> Dict[int, BudgetLimits]:
        ids = sorted({int(i) for i in item_ids})
        if not ids or not scope.site_id:
            return {}

        # row locks keep two orders from passing against the same ceiling
        rows = (
            db.query(SiteBudget)
            .filter(SiteBudget.site_id == scope.site_id, SiteBudget.item_id.in_(ids))
            .order_by(SiteBudget.item_id.asc())
            .with_for_update()
            .all()
        )
        if not rows:
            return {}

        consumed = sibling_consumption(db, scope, [r.item_id for r in rows])
        return {
            int(r.item_id): BudgetLimits(
                max_qty=D(r.budget_qty),
                max_rate=D(r.budget_rate) if r.budget_rate is not None else None,
                max_amount=D(r.budget_value) if r.budget_value is not None else None,
                consumed_qty=consumed.get(int(r.item_id), ZERO),
            )
            for r in rows
        }


class IndentCeilings:
    """Allotted (approved, else requested) indent quantity per item."""

    def limits_for(self, db: Session, scope: BudgetScope, item_ids: Iterable[int]) -> Dict[int, BudgetLimits]:
        ids = sorted({int(i) for i in item_ids})
        if not ids or not scope.indent_id:
            return {}

        indent = (
            db.query(Indent)
            .filter(Indent.id == scope.indent_id)
            .with_for_update()
            .first()
        )
        if not indent:
            return {}

        allotted: Dict[int, Decimal] = {}
        for it in db.query(IndentItem).filter(IndentItem.indent_id == indent.id, IndentItem.item_id.in_(ids)).all():
            q = it.approved_qty if it.approved_qty is not None else it.indent_qty
            allotted[int(it.item_id)] = allotted.get(int(it.item_id), ZERO) + D(q)

        consumed = sibling_consumption(db, scope, allotted.keys(), by_indent=True)
        return {
            iid: BudgetLimits(max_qty=q, consumed_qty=consumed.get(iid, ZERO))
            for iid, q in allotted.items()
        }


class MonthlyQuotaCeilings:
    """
    Scale another provider's ceilings down to a slice of the month:
    month_qty / month_days * slice_days. Rate ceilings are left alone.
    """

    def __init__(self, inner: CeilingProvider, *, month_days: int, slice_days: int):
        if month_days <= 0:
            raise ValueError("month_days must be > 0")
        self.inner = inner
        self.month_days = int(month_days)
        self.slice_days = int(slice_days)

    def _scale(self, v: Optional[Decimal]) -> Optional[Decimal]:
        if v is None:
            return None
        return D(v) * Decimal(self.slice_days) / Decimal(self.month_days)

    def limits_for(self, db: Session, scope: BudgetScope, item_ids: Iterable[int]) -> Dict[int, BudgetLimits]:
        out = {}
        for iid, lim in self.inner.limits_for(db, scope, item_ids).items():
            out[iid] = BudgetLimits(
                max_qty=self._scale(lim.max_qty),
                max_rate=lim.max_rate,
                max_amount=self._scale(lim.max_amount),
                consumed_qty=lim.consumed_qty,
            )
        return out


def provider_from_settings() -> CeilingProvider:
    if not settings.PO_BUDGET_VALIDATION:
        return NoCeilings()
    source = (settings.PO_BUDGET_SOURCE or "").strip().lower()
    if source == "site_budget":
        provider: CeilingProvider = SiteBudgetCeilings()
    elif source == "indent":
        provider = IndentCeilings()
    else:
        return NoCeilings()

    if settings.PO_BUDGET_SLICE_DAYS:
        today = today_ist()
        provider = MonthlyQuotaCeilings(
            provider,
            month_days=calendar.monthrange(today.year, today.month)[1],
            slice_days=settings.PO_BUDGET_SLICE_DAYS,
        )
    return provider


def check_budget(
    db: Session,
    scope: BudgetScope,
    lines: List[ProposedLine],
    provider: Optional[CeilingProvider] = None,
) -> ValidationResult:
    """Load ceilings for the proposed items and raise ExceededLimits on any violation."""
    provider = provider or provider_from_settings()
    limits = provider.limits_for(db, scope, [li.item_id for li in lines])
    result = validate(lines, limits)
    if not result.ok:
        logger.warning(
            "Budget check failed site=%s indent=%s po=%s: %s",
            scope.site_id, scope.indent_id, scope.exclude_po_id, result.message,
        )
    result.raise_for_violations()
    return result
