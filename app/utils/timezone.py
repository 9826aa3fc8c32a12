# FILE: app/utils/timezone.py
"""Sites run on India Standard Time; DATETIME columns hold naive IST values."""
from __future__ import annotations

from datetime import date, datetime
from zoneinfo import ZoneInfo

IST = ZoneInfo("Asia/Kolkata")


def now_ist() -> datetime:
    return datetime.now(IST)


def now_db() -> datetime:
    """Approval / suspension / completion stamps."""
    return now_ist().replace(tzinfo=None)


def today_ist() -> date:
    # FY boundaries and PO numbers follow the local calendar, not UTC
    return now_ist().date()
