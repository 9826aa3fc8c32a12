"""
HTTP contract tests through FastAPI's TestClient.
"""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from app.api.deps import current_user, get_db
from app.core.config import settings
from app.main import app
from app.models.budget import SiteBudget

from conftest import line, make_actor, po_payload


@pytest.fixture
def acting():
    """Mutable holder: tests swap the actor between requests."""
    return {"user": None}


@pytest.fixture
def client(session_factory, masters, acting):
    def _get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[current_user] = lambda: acting["user"]
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def _body(masters, **overrides):
    return po_payload(masters, **overrides).model_dump(mode="json", exclude_none=True)


def _create(client, masters, acting, creator, **overrides):
    acting["user"] = creator
    r = client.post(f"{settings.API_V1_STR}/purchase-orders", json=_body(masters, **overrides))
    assert r.status_code == 201, r.text
    return r.json()["data"]


def url(po_id=None):
    base = f"{settings.API_V1_STR}/purchase-orders"
    return base if po_id is None else f"{base}/{po_id}"


def test_create_returns_draft_with_totals(client, masters, acting, creator):
    data = _create(client, masters, acting, creator)
    assert data["approval_status"] == "DRAFT"
    assert data["display_status"] == "DRAFT"
    assert Decimal(str(data["total_amount"])) == Decimal("1062.00")
    assert data["site"]["site"] == "Ring Road Flyover"
    assert data["vendor"]["vendor_name"] == "Sri Balaji Cements"
    assert data["delivery_address"]["address_line1"] == "Gate 3"
    assert data["details"][0]["item"]["item_code"] == "CEM-OPC53"
    assert sorted(data["payment_term_ids"]) == sorted(masters.term_ids)


def test_create_validation_failure_is_400(client, masters, acting, creator):
    acting["user"] = creator
    r = client.post(url(), json=_body(masters, lines=[line(masters.cement_id, qty="0")]))
    assert r.status_code == 400
    body = r.json()
    assert body["status"] is False
    assert body["error"]["code"] == "VALIDATION_ERROR"


def test_create_without_permission_is_403(client, masters, acting, approver1):
    acting["user"] = approver1
    r = client.post(url(), json=_body(masters))
    assert r.status_code == 403


def test_budget_failure_body_is_structured(client, session_factory, masters, acting, creator):
    s = session_factory()
    s.add(SiteBudget(site_id=masters.site_id, item_id=masters.cement_id, budget_qty=Decimal("100"),
                     budget_rate=Decimal("90")))
    s.commit()
    s.close()

    _create(client, masters, acting, creator, lines=[line(masters.cement_id, qty="90", rate="80")])

    r = client.post(url(), json=_body(masters, lines=[line(masters.cement_id, qty="20")]))
    assert r.status_code == 400
    err = r.json()["error"]
    cid = str(masters.cement_id)
    assert err["code"] == "EXCEEDED_LIMITS"
    assert err["details"] == {"ITEM_LIMIT": {cid: "110:100"}, "RATE_LIMIT": {cid: "100:90"}}
    assert err["msg"] == f"Item limit exceeded -> {cid}: 110:100 | Rate limit exceeded -> {cid}: 100:90"


def test_get_and_404(client, masters, acting, creator):
    po = _create(client, masters, acting, creator)
    r = client.get(url(po["id"]))
    assert r.status_code == 200
    assert r.json()["data"]["order_number"] == po["order_number"]

    r = client.get(url(999))
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "NOT_FOUND"


def test_patch_status_actions(client, masters, acting, creator, approver1, approver2):
    po = _create(client, masters, acting, creator)

    acting["user"] = approver1
    r = client.patch(url(po["id"]), json={"status_action": "approve1"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["approval_status"] == "APPROVED_LEVEL_1"

    # replay of the same action is an illegal transition now
    r = client.patch(url(po["id"]), json={"status_action": "approve1"})
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "INVALID_TRANSITION"

    acting["user"] = approver2
    r = client.patch(url(po["id"]), json={"status_action": "suspend"})
    assert r.status_code == 200
    assert r.json()["data"]["display_status"] == "APPROVED_LEVEL_1 (SUSPENDED)"

    r = client.patch(url(po["id"]), json={"status_action": "unsuspend"})
    assert r.status_code == 200
    r = client.patch(url(po["id"]), json={"status_action": "approve2"})
    assert r.status_code == 200
    r = client.patch(url(po["id"]), json={"status_action": "complete"})
    assert r.json()["data"]["approval_status"] == "COMPLETED"


def test_patch_permission_denied_is_403(client, masters, acting, creator):
    po = _create(client, masters, acting, creator)
    acting["user"] = make_actor(9, "purchase_orders.view")
    r = client.patch(url(po["id"]), json={"status_action": "approve1"})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "PERMISSION_DENIED"


def test_patch_unknown_action_is_400(client, masters, acting, creator):
    po = _create(client, masters, acting, creator)
    r = client.patch(url(po["id"]), json={"status_action": "approve9"})
    assert r.status_code == 400


def test_patch_draft_edit_and_remarks(client, masters, acting, creator, approver1):
    po = _create(client, masters, acting, creator)
    line_id = po["details"][0]["id"]

    r = client.patch(url(po["id"]), json={
        "lines": [{"id": line_id, "item_id": masters.cement_id, "qty": "5", "rate": "100"}],
    })
    assert r.status_code == 200, r.text
    assert Decimal(str(r.json()["data"]["total_amount"])) == Decimal("500.00")

    acting["user"] = approver1
    r = client.patch(url(po["id"]), json={"remarks": "vendor confirmed"})
    assert r.status_code == 200
    assert r.json()["data"]["remarks"] == "vendor confirmed"


def test_delete_rules(client, masters, acting, creator, approver1):
    draft = _create(client, masters, acting, creator)
    approved = _create(client, masters, acting, creator)

    acting["user"] = approver1
    client.patch(url(approved["id"]), json={"status_action": "approve1"})

    acting["user"] = creator
    assert client.delete(url(draft["id"])).status_code == 200
    assert client.get(url(draft["id"])).status_code == 404

    r = client.delete(url(approved["id"]))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "INVALID_STATE"


def test_list_with_meta(client, masters, acting, creator):
    for i in range(3):
        _create(client, masters, acting, creator, quotation_number=f"Q-{i}")
    r = client.get(url(), params={"per_page": 2, "page": 2, "sort": "order_number", "order": "asc"})
    assert r.status_code == 200
    body = r.json()
    assert body["meta"] == {"page": 2, "per_page": 2, "total": 3, "total_pages": 2}
    assert len(body["data"]) == 1
    assert body["data"][0]["quotation_number"] == "Q-2"


def test_real_token_resolves_user(session_factory, masters, monkeypatch):
    """current_user decodes `sub` as the user id and loads roles/permissions."""
    import app.api.deps as deps

    monkeypatch.setattr(deps, "SessionLocal", session_factory)
    token = jwt.encode({"sub": "4"}, settings.JWT_SECRET, algorithm=settings.JWT_ALG)
    user = deps.current_user(authorization=f"Bearer {token}")
    assert user.id == 4
    assert user.is_admin is True
