# app/services/po_numbers.py
from __future__ import annotations

from datetime import date, datetime
from typing import NamedTuple, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import NotFound, ValidationError
from app.models.masters import Site
from app.models.number_series import DocNumberSeries
from app.utils.timezone import today_ist


class FinancialYear(NamedTuple):
    start: date
    end: date
    label: str


def financial_year(d: Optional[date] = None) -> FinancialYear:
    """Indian financial year, 1 April to 31 March; label like '25-26'."""
    d = d or today_ist()
    if isinstance(d, datetime):
        d = d.date()
    start_year = d.year if d.month >= 4 else d.year - 1
    end_year = start_year + 1
    label = f"{start_year % 100:02d}-{end_year % 100:02d}"
    return FinancialYear(date(start_year, 4, 1), date(end_year, 3, 31), label)


def _locked_series(db: Session, prefix: str) -> Optional[DocNumberSeries]:
    return (
        db.query(DocNumberSeries)
        .filter(DocNumberSeries.prefix == prefix)
        .with_for_update()
        .first()
    )


def next_doc_number(db: Session, prefix: str, width: int = 5) -> str:
    row = _locked_series(db, prefix)

    if not row:
        # Two requests may create the first row of a prefix together; the loser
        # re-reads the winner's row. The savepoint keeps the outer work intact.
        try:
            with db.begin_nested():
                row = DocNumberSeries(prefix=prefix, next_seq=1)
                db.add(row)
        except IntegrityError:
            row = _locked_series(db, prefix)
            if not row:
                raise

    seq = int(row.next_seq or 1)
    row.next_seq = seq + 1
    db.flush()

    return f"{prefix}{seq:0{width}d}"


def generate_po_number(db: Session, site_id: int, on: Optional[date] = None) -> str:
    """
    Pattern: <COMPANY>/<FY>/<SITECODE>/<NNNNN>
    FY always comes from the server date, not the order date.
    """
    site = db.get(Site, site_id)
    if not site:
        raise NotFound("Site not found")
    code = (site.site_code or "").strip().upper()
    if not code:
        raise ValidationError(
            "Site Code is not added. Please add Site Code to generate the Purchase Order Number.")

    fy = financial_year(on)
    prefix = f"{settings.PO_COMPANY_CODE}/{fy.label}/{code}/"
    return next_doc_number(db, prefix)
