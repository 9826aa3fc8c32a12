# app/db/base.py
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """All procurement tables (masters, budgets, indents, purchase orders) inherit from this."""
    pass


# Import all models so metadata is complete for create_all()
from app.models import (  # noqa: F401, E402
    user,
    masters,
    budget,
    number_series,
    purchase_order,
)
