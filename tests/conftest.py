"""
Shared fixtures: a file-backed SQLite database per test (two sessions can
see each other's commits), seeded masters, and permission-carrying actors.
"""

import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("PO_BUDGET_SOURCE", "site_budget")

from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.permissions import POPerm
from app.db.init_db import init_db
from app.db.session import engine_kwargs
from app.models.masters import (
    BillingAddress,
    Item,
    PaymentTerm,
    Site,
    SiteDeliveryAddress,
    Unit,
    Vendor,
)
from app.models.user import User
from app.schemas.purchase_order import POCreateIn


@pytest.fixture
def engine(tmp_path):
    url = f"sqlite:///{tmp_path / 'procurement.db'}"
    eng = create_engine(url, **engine_kwargs(url))
    init_db(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine, future=True)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.rollback()
    s.close()


@pytest.fixture
def masters(session_factory):
    """Two sites (one without a code), a vendor, addresses, terms, items and users."""
    s = session_factory()
    try:
        site = Site(site="Ring Road Flyover", site_code="RRF")
        bare_site = Site(site="Unnamed Yard", site_code=None)
        vendor = Vendor(vendor_name="Sri Balaji Cements", gstin="33AAAAA0000A1Z5")
        billing = BillingAddress(company_name="DC Tech Projects", address_line1="12 Mount Road", city="Chennai")
        unit = Unit(unit_name="Bag")
        s.add_all([site, bare_site, vendor, billing, unit])
        s.flush()

        addr = SiteDeliveryAddress(site_id=site.id, address_line1="Gate 3", city="Chennai", state="TN")
        bare_addr = SiteDeliveryAddress(site_id=bare_site.id, address_line1="Back lane", city="Madurai")
        net30 = PaymentTerm(payment_term="Net 30", description="30 days from invoice")
        adv = PaymentTerm(payment_term="Advance 10%")
        cement = Item(item_code="CEM-OPC53", item="OPC 53 Cement", unit_id=unit.id)
        steel = Item(item_code="TMT-12", item="TMT Bar 12mm")
        sand = Item(item_code="MSAND", item="M-Sand")
        s.add_all([addr, bare_addr, net30, adv, cement, steel, sand])

        users = [
            User(id=1, name="Creator", email="creator@example.com"),
            User(id=2, name="Site Manager", email="l1@example.com"),
            User(id=3, name="Project Head", email="l2@example.com"),
            User(id=4, name="Admin", email="admin@example.com", is_admin=True),
        ]
        s.add_all(users)
        s.commit()

        return SimpleNamespace(
            site_id=site.id,
            bare_site_id=bare_site.id,
            vendor_id=vendor.id,
            billing_id=billing.id,
            delivery_id=addr.id,
            bare_delivery_id=bare_addr.id,
            term_ids=[net30.id, adv.id],
            cement_id=cement.id,
            steel_id=steel.id,
            sand_id=sand.id,
        )
    finally:
        s.close()


def make_actor(user_id, *perms, is_admin=False):
    return SimpleNamespace(
        id=user_id,
        is_admin=is_admin,
        permissions=[p.value if isinstance(p, POPerm) else p for p in perms],
        roles=[],
    )


@pytest.fixture
def creator():
    return make_actor(1, POPerm.VIEW, POPerm.CREATE, POPerm.UPDATE, POPerm.DELETE)


@pytest.fixture
def approver1():
    return make_actor(2, POPerm.VIEW, POPerm.APPROVE1, POPerm.SUSPEND, POPerm.REMARKS)


@pytest.fixture
def approver2():
    return make_actor(3, POPerm.VIEW, POPerm.APPROVE2, POPerm.COMPLETE, POPerm.SUSPEND,
                      POPerm.BILL_STATUS, POPerm.PO_STATUS)


@pytest.fixture
def admin():
    return make_actor(4, is_admin=True)


def line(item_id, qty="10", rate="100", **kw):
    out = {
        "item_id": item_id,
        "qty": Decimal(qty),
        "rate": Decimal(rate),
        "discount_percent": Decimal("10"),
        "cgst_percent": Decimal("9"),
        "sgst_percent": Decimal("9"),
        "igst_percent": Decimal("0"),
    }
    out.update(kw)
    return out


def po_payload(m, lines=None, **overrides) -> POCreateIn:
    data = {
        "order_date": date(2025, 6, 2),
        "delivery_date": date(2025, 6, 10),
        "site_id": m.site_id,
        "vendor_id": m.vendor_id,
        "billing_address_id": m.billing_id,
        "delivery_address_id": m.delivery_id,
        "payment_term_ids": list(m.term_ids),
        "quotation_number": "Q-7781",
        "quotation_date": date(2025, 5, 28),
        "lines": lines if lines is not None else [line(m.cement_id)],
    }
    data.update(overrides)
    return POCreateIn.model_validate(data)


@pytest.fixture
def make_po(session_factory, masters, creator):
    """Create and commit a DRAFT order; returns its id."""
    from app.services.purchase_order_service import create_purchase_order

    def _make(lines=None, provider=None, **overrides):
        s = session_factory()
        try:
            po = create_purchase_order(s, po_payload(masters, lines, **overrides), creator.id, provider=provider)
            s.commit()
            return po.id
        finally:
            s.close()

    return _make
