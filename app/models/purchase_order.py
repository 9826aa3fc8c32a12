# FILE: app/models/purchase_order.py
from __future__ import annotations

import enum
from datetime import datetime
from decimal import Decimal
from sqlalchemy import (
    Column, Integer, String, Boolean, Date, DateTime, Numeric,
    ForeignKey, Text, Enum, Index, UniqueConstraint
)
from sqlalchemy.orm import relationship

from app.db.base import Base

Money = Numeric(14, 2)
Qty = Numeric(14, 4)
Percent = Numeric(5, 2)


# -------------------------
# Enums
# -------------------------
class ApprovalStatus(str, enum.Enum):
    DRAFT = "DRAFT"
    APPROVED_LEVEL_1 = "APPROVED_LEVEL_1"
    APPROVED_LEVEL_2 = "APPROVED_LEVEL_2"
    COMPLETED = "COMPLETED"


class POStatus(str, enum.Enum):
    OPEN = "OPEN"
    ORDER_PLACED = "ORDER_PLACED"
    IN_TRANSIT = "IN_TRANSIT"
    RECEIVED = "RECEIVED"
    HOLD = "HOLD"


class ChargeStatus(str, enum.Enum):
    EXCLUSIVE = "EXCLUSIVE"
    INCLUSIVE = "INCLUSIVE"
    NOT_APPLICABLE = "NOT_APPLICABLE"


# -------------------------
# Purchase Orders
# -------------------------
class PurchaseOrder(Base):
    __tablename__ = "purchase_orders"
    __table_args__ = (
        UniqueConstraint("order_number", name="uq_purchase_orders_order_number"),
        Index("ix_po_site_date", "site_id", "order_date"),
        Index("ix_po_vendor_date", "vendor_id", "order_date"),
        Index("ix_po_status_date", "approval_status", "order_date"),
    )

    id = Column(Integer, primary_key=True)

    order_number = Column(String(100), nullable=False, index=True)
    order_date = Column(Date, nullable=False)
    delivery_date = Column(Date, nullable=False)

    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    vendor_id = Column(Integer, ForeignKey("vendors.id"), nullable=False, index=True)
    billing_address_id = Column(Integer, ForeignKey("billing_addresses.id"), nullable=False)
    delivery_address_id = Column(Integer, ForeignKey("site_delivery_addresses.id"), nullable=False)
    payment_term_id = Column(Integer, ForeignKey("payment_terms.id"), nullable=True)
    indent_id = Column(Integer, ForeignKey("indents.id"), nullable=True, index=True)

    quotation_number = Column(String(100), nullable=False)
    quotation_date = Column(Date, nullable=False)
    transport = Column(String(255), nullable=True)
    delivery_schedule = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    payment_terms_in_days = Column(Integer, nullable=True)

    approval_status = Column(Enum(ApprovalStatus, name="po_approval_status"),
                             nullable=False, default=ApprovalStatus.DRAFT)
    is_suspended = Column(Boolean, nullable=False, default=False)
    is_complete = Column(Boolean, nullable=False, default=False)
    po_status = Column(Enum(POStatus, name="po_operational_status"), nullable=True)
    bill_status = Column(String(255), nullable=True)
    remarks = Column(Text, nullable=True)

    # supplementary charges: status and amount kept apart
    transit_insurance_status = Column(Enum(ChargeStatus, name="po_charge_status_ti"), nullable=True)
    transit_insurance_amount = Column(Money, nullable=True)
    transport_charge_status = Column(Enum(ChargeStatus, name="po_charge_status_pf"), nullable=True)
    transport_charge_amount = Column(Money, nullable=True)
    gst_reverse_status = Column(Enum(ChargeStatus, name="po_charge_status_gr"), nullable=True)
    gst_reverse_amount = Column(Money, nullable=True)

    total_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    total_cgst = Column(Money, nullable=False, default=Decimal("0.00"))
    total_sgst = Column(Money, nullable=False, default=Decimal("0.00"))
    total_igst = Column(Money, nullable=False, default=Decimal("0.00"))
    total_discount = Column(Money, nullable=False, default=Decimal("0.00"))
    amount_in_words = Column(String(500), nullable=False, default="")

    created_by_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    updated_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved1_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved1_at = Column(DateTime, nullable=True)
    approved2_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved2_at = Column(DateTime, nullable=True)
    suspended_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    suspended_at = Column(DateTime, nullable=True)
    completed_by_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    completed_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    site = relationship("Site", back_populates="purchase_orders")
    vendor = relationship("Vendor", back_populates="purchase_orders")
    billing_address = relationship("BillingAddress")
    delivery_address = relationship("SiteDeliveryAddress")
    payment_term = relationship("PaymentTerm")
    indent = relationship("Indent", back_populates="purchase_orders")

    created_by = relationship("User", foreign_keys=[created_by_id])
    approved1_by = relationship("User", foreign_keys=[approved1_by_id])
    approved2_by = relationship("User", foreign_keys=[approved2_by_id])
    suspended_by = relationship("User", foreign_keys=[suspended_by_id])
    completed_by = relationship("User", foreign_keys=[completed_by_id])

    details = relationship(
        "PurchaseOrderDetail",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderDetail.serial_no",
    )
    po_payment_terms = relationship("POPaymentTerm", back_populates="purchase_order", cascade="all, delete-orphan")


class PurchaseOrderDetail(Base):
    __tablename__ = "purchase_order_details"
    __table_args__ = (
        Index("ix_po_details_po", "purchase_order_id"),
        Index("ix_po_details_item", "item_id"),
    )

    id = Column(Integer, primary_key=True)

    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), nullable=False)
    serial_no = Column(Integer, nullable=False, default=1)
    item_id = Column(Integer, ForeignKey("items.id"), nullable=False)
    remark = Column(Text, nullable=True)

    qty = Column(Qty, nullable=False, default=Decimal("0"))
    ordered_qty = Column(Qty, nullable=True)
    approved1_qty = Column(Qty, nullable=True)
    approved2_qty = Column(Qty, nullable=True)

    rate = Column(Numeric(14, 2), nullable=False, default=Decimal("0"))
    discount_percent = Column(Percent, nullable=False, default=Decimal("0"))
    dis_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    cgst_percent = Column(Percent, nullable=False, default=Decimal("0"))
    cgst_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    sgst_percent = Column(Percent, nullable=False, default=Decimal("0"))
    sgst_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    igst_percent = Column(Percent, nullable=False, default=Decimal("0"))
    igst_amount = Column(Money, nullable=False, default=Decimal("0.00"))
    amount = Column(Money, nullable=False, default=Decimal("0.00"))

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    purchase_order = relationship("PurchaseOrder", back_populates="details")
    item = relationship("Item")


class POPaymentTerm(Base):
    __tablename__ = "po_payment_terms"

    purchase_order_id = Column(Integer, ForeignKey("purchase_orders.id", ondelete="CASCADE"), primary_key=True)
    payment_term_id = Column(Integer, ForeignKey("payment_terms.id"), primary_key=True)

    purchase_order = relationship("PurchaseOrder", back_populates="po_payment_terms")
    payment_term = relationship("PaymentTerm")
