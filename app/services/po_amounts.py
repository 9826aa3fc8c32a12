# app/services/po_amounts.py
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, Iterable, List, Optional

ZERO = Decimal("0")
HUNDRED = Decimal("100")
CENT = Decimal("0.01")

MAX_QTY = Decimal("9999999999.9999")
MAX_RATE = Decimal("9999999999.99")

EXCLUSIVE = "EXCLUSIVE"


def D(x) -> Decimal:
    """None, garbage and NaN/Infinity all read as 0."""
    if isinstance(x, bool):
        return ZERO
    try:
        d = x if isinstance(x, Decimal) else Decimal(str(x if x is not None else 0).strip() or "0")
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not d.is_finite():
        return ZERO
    return d


def round2(x) -> Decimal:
    """Round half away from zero to 2 places."""
    try:
        return D(x).quantize(CENT, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        # too many digits for the context; nonsense in, nonsense out
        return ZERO


@dataclass(frozen=True)
class LineAmounts:
    base_amount: Decimal
    dis_amount: Decimal
    taxable_amount: Decimal
    cgst_amount: Decimal
    sgst_amount: Decimal
    igst_amount: Decimal
    amount: Decimal


@dataclass(frozen=True)
class Charge:
    status: Optional[Any] = None
    amount: Any = None

    @property
    def is_exclusive(self) -> bool:
        s = self.status.value if isinstance(self.status, Enum) else self.status
        return str(s or "").upper() == EXCLUSIVE

    @property
    def billed_amount(self) -> Decimal:
        return round2(self.amount) if self.is_exclusive else ZERO


@dataclass(frozen=True)
class HeaderTotals:
    lines_amount: Decimal
    total_discount: Decimal
    taxable_amount: Decimal
    total_cgst: Decimal
    total_sgst: Decimal
    total_igst: Decimal
    charges_amount: Decimal
    total_amount: Decimal


def compute_line(qty, rate, discount_percent=0, cgst_percent=0, sgst_percent=0, igst_percent=0) -> LineAmounts:
    base = D(qty) * D(rate)

    dis_amount = round2(base * D(discount_percent) / HUNDRED)
    taxable = round2(base - dis_amount)
    cgst = round2(taxable * D(cgst_percent) / HUNDRED)
    sgst = round2(taxable * D(sgst_percent) / HUNDRED)
    igst = round2(taxable * D(igst_percent) / HUNDRED)

    return LineAmounts(
        base_amount=round2(base),
        dis_amount=dis_amount,
        taxable_amount=taxable,
        cgst_amount=cgst,
        sgst_amount=sgst,
        igst_amount=igst,
        amount=round2(taxable + cgst + sgst + igst),
    )


def compute_header(
    lines: Iterable[Any],
    transit_insurance: Optional[Charge] = None,
    transport_charge: Optional[Charge] = None,
    gst_reverse: Optional[Charge] = None,
) -> HeaderTotals:
    """
    Sum line figures and add the EXCLUSIVE charges.

    `lines` may hold LineAmounts or ORM detail rows; only the attribute names
    matter (amount, dis_amount, cgst_amount, sgst_amount, igst_amount).
    INCLUSIVE / NOT_APPLICABLE / missing charges add nothing.
    """
    amount = dis = cgst = sgst = igst = ZERO
    for li in lines:
        amount += round2(getattr(li, "amount", 0))
        dis += round2(getattr(li, "dis_amount", 0))
        cgst += round2(getattr(li, "cgst_amount", 0))
        sgst += round2(getattr(li, "sgst_amount", 0))
        igst += round2(getattr(li, "igst_amount", 0))

    charges = ZERO
    for ch in (transit_insurance, transport_charge, gst_reverse):
        if ch is not None:
            charges += ch.billed_amount

    amount = round2(amount)
    return HeaderTotals(
        lines_amount=amount,
        total_discount=round2(dis),
        taxable_amount=round2(amount - cgst - sgst - igst),
        total_cgst=round2(cgst),
        total_sgst=round2(sgst),
        total_igst=round2(igst),
        charges_amount=round2(charges),
        total_amount=round2(amount + charges),
    )


def check_line_inputs(qty, rate, discount_percent=0, cgst_percent=0, sgst_percent=0, igst_percent=0) -> List[str]:
    """Caller-side preconditions; compute_line itself never rejects input."""
    problems: List[str] = []
    q = D(qty)
    r = D(rate)
    if q <= 0:
        problems.append("qty must be > 0")
    elif q > MAX_QTY:
        problems.append(f"qty must be <= {MAX_QTY}")
    if r < 0:
        problems.append("rate must be >= 0")
    elif r > MAX_RATE:
        problems.append(f"rate must be <= {MAX_RATE}")
    for label, pct in (
        ("discount_percent", discount_percent),
        ("cgst_percent", cgst_percent),
        ("sgst_percent", sgst_percent),
        ("igst_percent", igst_percent),
    ):
        p = D(pct)
        if p < 0 or p > HUNDRED:
            problems.append(f"{label} must be between 0 and 100")
    return problems
