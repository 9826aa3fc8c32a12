# app/services/po_workflow.py
from __future__ import annotations

import enum
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Optional, Tuple

from app.core.errors import InvalidTransition, PermissionDenied
from app.core.permissions import POPerm
from app.models.purchase_order import ApprovalStatus


class Action(str, enum.Enum):
    APPROVE1 = "approve1"
    APPROVE2 = "approve2"
    COMPLETE = "complete"
    SUSPEND = "suspend"
    UNSUSPEND = "unsuspend"


# action -> (required from-status, resulting status)
_STAGE_TRANSITIONS: Dict[Action, Tuple[ApprovalStatus, ApprovalStatus]] = {
    Action.APPROVE1: (ApprovalStatus.DRAFT, ApprovalStatus.APPROVED_LEVEL_1),
    Action.APPROVE2: (ApprovalStatus.APPROVED_LEVEL_1, ApprovalStatus.APPROVED_LEVEL_2),
    Action.COMPLETE: (ApprovalStatus.APPROVED_LEVEL_2, ApprovalStatus.COMPLETED),
}

# suspension may be toggled anywhere before completion
_SUSPENDABLE = {
    ApprovalStatus.DRAFT,
    ApprovalStatus.APPROVED_LEVEL_1,
    ApprovalStatus.APPROVED_LEVEL_2,
}

ACTION_PERMS: Dict[Action, POPerm] = {
    Action.APPROVE1: POPerm.APPROVE1,
    Action.APPROVE2: POPerm.APPROVE2,
    Action.COMPLETE: POPerm.COMPLETE,
    Action.SUSPEND: POPerm.SUSPEND,
    Action.UNSUSPEND: POPerm.SUSPEND,
}


@dataclass(frozen=True)
class POState:
    status: ApprovalStatus
    is_suspended: bool = False
    created_by_id: Optional[int] = None
    approved1_by_id: Optional[int] = None

    @classmethod
    def of(cls, po: Any) -> "POState":
        return cls(
            status=ApprovalStatus(po.approval_status),
            is_suspended=bool(po.is_suspended),
            created_by_id=po.created_by_id,
            approved1_by_id=po.approved1_by_id,
        )


@dataclass(frozen=True)
class TransitionPlan:
    """
    What a permitted action does. from_status/from_suspended are the values the
    persisting UPDATE must still find on the row; anything else means a
    concurrent request won.
    """
    action: Action
    from_status: ApprovalStatus
    from_suspended: bool
    to_status: ApprovalStatus
    to_suspended: bool
    auto_approve2: bool = False

    @property
    def qty_stage(self) -> int:
        """Which approved_qty column this plan writes (0 = none)."""
        if self.action == Action.APPROVE1:
            return 1
        if self.action == Action.APPROVE2:
            return 2
        return 0

    def escalated(self) -> "TransitionPlan":
        """Level-1 approval that also records level 2 in the same step."""
        if self.action != Action.APPROVE1:
            raise InvalidTransition("Only level-1 approval can be escalated")
        return replace(self, to_status=ApprovalStatus.APPROVED_LEVEL_2, auto_approve2=True)


def display_status(status: Any, is_suspended: bool) -> str:
    s = ApprovalStatus(status).value
    return f"{s} (SUSPENDED)" if is_suspended else s


def plan_transition(
    state: POState,
    action: Any,
    actor_id: int,
    can: Callable[[POPerm], bool],
) -> TransitionPlan:
    """
    Decide whether `actor_id` may apply `action` to an order in `state`.

    Checks run in this order: capability (PermissionDenied), then the state
    table (InvalidTransition), then actor separation (InvalidTransition).
    Separation is not waived for admins: whoever created an order may not
    approve it, and the level-1 approver may not also sign level 2.
    """
    try:
        action = Action(action)
    except ValueError:
        raise InvalidTransition(f"Unknown status action: {action!r}")

    perm = ACTION_PERMS[action]
    if not can(perm):
        raise PermissionDenied(f"Missing permission {perm.value} for {action.value}")

    status = state.status
    if status == ApprovalStatus.COMPLETED:
        raise InvalidTransition("Purchase order is completed; no further actions are allowed")

    if action == Action.SUSPEND:
        if state.is_suspended:
            raise InvalidTransition("Purchase order is already suspended")
        if status not in _SUSPENDABLE:
            raise InvalidTransition(f"Cannot suspend a purchase order in {status.value}")
        return TransitionPlan(action, status, False, status, True)

    if action == Action.UNSUSPEND:
        if not state.is_suspended:
            raise InvalidTransition("Purchase order is not suspended")
        return TransitionPlan(action, status, True, status, False)

    if state.is_suspended:
        raise InvalidTransition("Purchase order is suspended; unsuspend it first")

    required, target = _STAGE_TRANSITIONS[action]
    if status != required:
        raise InvalidTransition(
            f"Cannot {action.value} a purchase order in {status.value} (expected {required.value})"
        )

    if action == Action.APPROVE1 and state.created_by_id is not None and state.created_by_id == actor_id:
        raise InvalidTransition("The creator of a purchase order cannot approve it")

    if action == Action.APPROVE2:
        if state.created_by_id is not None and state.created_by_id == actor_id:
            raise InvalidTransition("The creator of a purchase order cannot approve it")
        if state.approved1_by_id is not None and state.approved1_by_id == actor_id:
            raise InvalidTransition("Level-2 approval needs a different user than level 1")

    return TransitionPlan(action, status, False, target, False)


def effective_qty(line: Any, status: Any) -> Any:
    """
    Quantity in force for a line at a given approval stage.

    DRAFT reads qty; level 1 prefers approved1_qty; level 2 and beyond prefer
    approved2_qty, then approved1_qty. Missing stage values fall back down.
    """
    status = ApprovalStatus(status)
    a1 = getattr(line, "approved1_qty", None)
    a2 = getattr(line, "approved2_qty", None)
    qty = getattr(line, "qty", None)

    if status == ApprovalStatus.DRAFT:
        return qty
    if status == ApprovalStatus.APPROVED_LEVEL_1:
        return a1 if a1 is not None else qty
    if a2 is not None:
        return a2
    return a1 if a1 is not None else qty
