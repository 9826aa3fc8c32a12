# app/services/amount_words.py
from __future__ import annotations

from decimal import Decimal
from typing import Any, List

from app.services.po_amounts import round2

_ONES = [
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen"
]
_TENS = [
    "", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty",
    "Ninety"
]


def _below_hundred(n: int) -> str:
    if n < 20:
        return _ONES[n]
    t, o = divmod(n, 10)
    return _TENS[t] if o == 0 else f"{_TENS[t]} {_ONES[o]}"


def _below_thousand(n: int) -> str:
    h, r = divmod(n, 100)
    parts: List[str] = []
    if h:
        parts.append(f"{_ONES[h]} Hundred")
    if r:
        parts.append(_below_hundred(r))
    return " ".join(parts)


def int_to_words_indian(n: int) -> str:
    """Indian grouping: Crore / Lakh / Thousand / Hundred."""
    if n == 0:
        return "Zero"
    if n < 0:
        return f"Minus {int_to_words_indian(-n)}"

    parts: List[str] = []
    crore, n = divmod(n, 10000000)
    if crore:
        # 100+ crore reads as "One Hundred Crore", "Two Thousand Crore", ...
        parts.append(f"{int_to_words_indian(crore)} Crore")

    lakh, n = divmod(n, 100000)
    if lakh:
        parts.append(f"{_below_hundred(lakh)} Lakh")

    thousand, n = divmod(n, 1000)
    if thousand:
        parts.append(f"{_below_hundred(thousand)} Thousand")

    if n:
        parts.append(_below_thousand(n))

    return " ".join(p for p in parts if p)


def amount_in_words(amount: Any) -> str:
    d = round2(amount)
    sign = "Minus " if d < 0 else ""
    d = abs(d)

    rupees = int(d)
    paise = int((d - Decimal(rupees)) * 100)

    words = f"{sign}Rupees {int_to_words_indian(rupees)}"
    if paise:
        words += f" and {_below_hundred(paise)} Paise"
    return f"{words} Only"
