# FILE: app/models/budget.py
from __future__ import annotations

import enum
from datetime import datetime, date
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric,
    ForeignKey, Text, Enum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.db.base import Base

Money = Numeric(14, 2)
Qty = Numeric(14, 4)


class IndentStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    APPROVED_1 = "APPROVED_1"
    APPROVED_2 = "APPROVED_2"
    COMPLETED = "COMPLETED"


# -------------------------
# Site budget (ceilings per site + item)
# -------------------------
class SiteBudget(Base):
    __tablename__ = "site_budgets"
    __table_args__ = (
        UniqueConstraint("site_id", "item_id", name="uq_site_budgets_site_item"),
    )

    id = Column(Integer, primary_key=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)

    budget_qty = Column(Qty, nullable=False, default=Decimal("0"))
    # NULL rate/value means that ceiling is not configured
    budget_rate = Column(Money, nullable=True)
    budget_value = Column(Money, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    site = relationship("Site")
    item = relationship("Item")


# -------------------------
# Indent
# -------------------------
class Indent(Base):
    __tablename__ = "indents"
    __table_args__ = (
        Index("ix_indents_site_date", "site_id", "indent_date"),
    )

    id = Column(Integer, primary_key=True)
    indent_no = Column(String(100), unique=True, nullable=True)
    indent_date = Column(Date, nullable=False, default=date.today)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=True, index=True)

    approval_status = Column(Enum(IndentStatus, name="indent_approval_status"),
                             nullable=False, default=IndentStatus.DRAFT)
    suspended = Column(Boolean, nullable=False, default=False)
    remarks = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    items = relationship("IndentItem", back_populates="indent", cascade="all, delete-orphan")
    purchase_orders = relationship("PurchaseOrder", back_populates="indent")


class IndentItem(Base):
    __tablename__ = "indent_items"

    id = Column(Integer, primary_key=True)
    indent_id = Column(Integer, ForeignKey("indents.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False, index=True)

    indent_qty = Column(Qty, nullable=False, default=Decimal("0"))
    approved_qty = Column(Qty, nullable=True)
    remark = Column(Text, nullable=True)

    purchase_order_detail_id = Column(
        Integer,
        ForeignKey("purchase_order_details.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    indent = relationship("Indent", back_populates="items")
    item = relationship("Item")
