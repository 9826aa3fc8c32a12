# FILE: app/models/masters.py
from __future__ import annotations

from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from app.db.base import Base


class Site(Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, index=True)
    site = Column(String(191), nullable=False)
    site_code = Column(String(30), nullable=True, index=True)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    delivery_addresses = relationship("SiteDeliveryAddress", back_populates="site")
    purchase_orders = relationship("PurchaseOrder", back_populates="site")


class Vendor(Base):
    __tablename__ = "vendors"

    id = Column(Integer, primary_key=True, index=True)
    vendor_name = Column(String(255), nullable=False)
    gstin = Column(String(50), default="")
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    purchase_orders = relationship("PurchaseOrder", back_populates="vendor")


class BillingAddress(Base):
    __tablename__ = "billing_addresses"

    id = Column(Integer, primary_key=True, index=True)
    company_name = Column(String(255), nullable=False)
    address_line1 = Column(String(500), default="")
    city = Column(String(120), default="")
    gstin = Column(String(50), default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)


class SiteDeliveryAddress(Base):
    __tablename__ = "site_delivery_addresses"

    id = Column(Integer, primary_key=True, index=True)
    site_id = Column(Integer, ForeignKey("sites.id"), nullable=False, index=True)
    address_line1 = Column(String(500), default="")
    address_line2 = Column(String(500), default="")
    city = Column(String(120), default="")
    state = Column(String(120), default="")
    pin_code = Column(String(20), default="")

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    site = relationship("Site", back_populates="delivery_addresses")


class PaymentTerm(Base):
    __tablename__ = "payment_terms"

    id = Column(Integer, primary_key=True, index=True)
    payment_term = Column(String(255), nullable=False)
    description = Column(String(1000), default="")


class Unit(Base):
    __tablename__ = "units"

    id = Column(Integer, primary_key=True, index=True)
    unit_name = Column(String(50), nullable=False)


class Item(Base):
    __tablename__ = "items"

    id = Column(Integer, primary_key=True, index=True)
    item_code = Column(String(50), unique=True, nullable=False, index=True)
    item = Column(String(255), nullable=False)
    unit_id = Column(Integer, ForeignKey("units.id"), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)

    unit = relationship("Unit")
