"""
Tests for the approval state machine (no database).
"""

from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.core.errors import InvalidTransition, PermissionDenied
from app.core.permissions import POPerm
from app.models.purchase_order import ApprovalStatus
from app.services.po_workflow import (
    Action,
    POState,
    display_status,
    effective_qty,
    plan_transition,
)

DRAFT = ApprovalStatus.DRAFT
L1 = ApprovalStatus.APPROVED_LEVEL_1
L2 = ApprovalStatus.APPROVED_LEVEL_2
DONE = ApprovalStatus.COMPLETED


def allow_all(_perm):
    return True


def allow(*perms):
    return lambda p: p in perms


@pytest.mark.parametrize("action, start, end", [
    ("approve1", DRAFT, L1),
    ("approve2", L1, L2),
    ("complete", L2, DONE),
])
def test_forward_transitions(action, start, end):
    state = POState(status=start, created_by_id=1, approved1_by_id=2 if start != DRAFT else None)
    plan = plan_transition(state, action, 3, allow_all)
    assert plan.from_status == start
    assert plan.to_status == end
    assert plan.from_suspended is False
    assert plan.to_suspended is False


@pytest.mark.parametrize("action, start", [
    ("approve2", DRAFT),
    ("complete", DRAFT),
    ("complete", L1),
    ("approve1", L1),
    ("approve1", L2),
    ("approve2", L2),
])
def test_out_of_order_transitions_are_rejected(action, start):
    with pytest.raises(InvalidTransition):
        plan_transition(POState(status=start, created_by_id=1), action, 9, allow_all)


@pytest.mark.parametrize("action", [a.value for a in Action])
def test_completed_is_terminal(action):
    state = POState(status=DONE, created_by_id=1, approved1_by_id=2)
    with pytest.raises(InvalidTransition):
        plan_transition(state, action, 9, allow_all)


def test_unknown_action():
    with pytest.raises(InvalidTransition):
        plan_transition(POState(status=DRAFT), "approve3", 1, allow_all)


def test_capability_is_checked_first():
    # even an illegal move reports the missing capability
    with pytest.raises(PermissionDenied):
        plan_transition(POState(status=L2), "approve1", 5, allow(POPerm.APPROVE2))


def test_creator_cannot_approve1():
    with pytest.raises(InvalidTransition):
        plan_transition(POState(status=DRAFT, created_by_id=7), "approve1", 7, allow_all)


def test_l1_approver_cannot_approve2():
    state = POState(status=L1, created_by_id=1, approved1_by_id=2)
    with pytest.raises(InvalidTransition):
        plan_transition(state, "approve2", 2, allow_all)
    with pytest.raises(InvalidTransition):
        plan_transition(state, "approve2", 1, allow_all)
    assert plan_transition(state, "approve2", 3, allow(POPerm.APPROVE2)).to_status == L2


def test_suspend_keeps_stage():
    plan = plan_transition(POState(status=L1, created_by_id=1), "suspend", 1, allow(POPerm.SUSPEND))
    assert plan.to_status == L1
    assert plan.to_suspended is True


def test_suspended_order_only_accepts_unsuspend():
    state = POState(status=DRAFT, is_suspended=True, created_by_id=1)
    for action in ("approve1", "approve2", "complete", "suspend"):
        with pytest.raises(InvalidTransition):
            plan_transition(state, action, 2, allow_all)
    plan = plan_transition(state, "unsuspend", 2, allow(POPerm.SUSPEND))
    assert plan.from_suspended is True
    assert plan.to_suspended is False
    assert plan.to_status == DRAFT


def test_unsuspend_requires_suspension():
    with pytest.raises(InvalidTransition):
        plan_transition(POState(status=DRAFT), "unsuspend", 2, allow_all)


def test_escalated_plan_lands_on_level2():
    plan = plan_transition(POState(status=DRAFT, created_by_id=1), "approve1", 2, allow_all).escalated()
    assert plan.to_status == L2
    assert plan.auto_approve2 is True
    assert plan.from_status == DRAFT


def test_only_approve1_escalates():
    plan = plan_transition(POState(status=L1, created_by_id=1, approved1_by_id=2), "approve2", 3, allow_all)
    with pytest.raises(InvalidTransition):
        plan.escalated()


def test_effective_qty_by_stage():
    li = SimpleNamespace(qty=Decimal("10"), approved1_qty=Decimal("8"), approved2_qty=Decimal("6"))
    assert effective_qty(li, DRAFT) == Decimal("10")
    assert effective_qty(li, L1) == Decimal("8")
    assert effective_qty(li, L2) == Decimal("6")
    assert effective_qty(li, DONE) == Decimal("6")

    partial = SimpleNamespace(qty=Decimal("10"), approved1_qty=Decimal("8"), approved2_qty=None)
    assert effective_qty(partial, L2) == Decimal("8")
    fresh = SimpleNamespace(qty=Decimal("10"), approved1_qty=None, approved2_qty=None)
    assert effective_qty(fresh, L1) == Decimal("10")


def test_display_status():
    assert display_status(L1, False) == "APPROVED_LEVEL_1"
    assert display_status("DRAFT", True) == "DRAFT (SUSPENDED)"
