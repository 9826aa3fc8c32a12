# FILE: app/core/rbac.py
"""
Capability checks for purchase-order users.

Admins pass every capability check here. Approval separation (creator and
level-1 approver may not sign later stages) lives in po_workflow and is not
waived for admins.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, FrozenSet, Iterable, Optional

from fastapi import HTTPException, status

from app.core.errors import PermissionDenied

ADMIN_ROLE_NAMES = {"ADMIN", "SUPER_ADMIN"}


def perm_code(x: Any) -> str:
    """Enum / str / Permission row / {"code": ...} -> "purchase_orders.approve1"."""
    if x is None:
        return ""
    if isinstance(x, Enum):
        return str(x.value).strip()
    if isinstance(x, str):
        return x.strip()
    if isinstance(x, dict):
        return perm_code(x.get("code"))
    if hasattr(x, "code"):
        return perm_code(getattr(x, "code"))
    return str(x).strip()


def is_admin_user(user: Any) -> bool:
    if not user:
        return False
    if bool(getattr(user, "is_admin", False)):
        return True
    for r in getattr(user, "roles", None) or []:
        name = getattr(r, "name", None)
        if isinstance(name, str) and name.strip().upper() in ADMIN_ROLE_NAMES:
            return True
    return False


def user_perm_codes(user: Any) -> FrozenSet[str]:
    """Direct grants (user.permissions) plus everything reachable through user.roles."""
    if not user:
        return frozenset()

    grants = list(getattr(user, "permissions", None) or [])
    for r in getattr(user, "roles", None) or []:
        grants.extend(getattr(r, "permissions", None) or [])

    return frozenset(c for c in (perm_code(p) for p in grants) if c)


def has_perm(user: Any, code: Any) -> bool:
    if is_admin_user(user):
        return True
    want = perm_code(code)
    return bool(want) and want in user_perm_codes(user)


def ensure_perm(user: Any, code: Any, *, action: Optional[str] = None) -> None:
    """Service-side check; raises the domain PermissionDenied (HTTP 403)."""
    if not has_perm(user, code):
        what = f" to {action}" if action else ""
        raise PermissionDenied(f"Missing permission {perm_code(code)}{what}")


def require_any(user: Any, required: Iterable[Any], *, message: Optional[str] = None) -> None:
    """
    Route-side check: 403 unless the user holds at least one of `required`.
    """
    if is_admin_user(user):
        return

    wanted = {perm_code(x) for x in required} - {""}
    if not wanted or user_perm_codes(user) & wanted:
        return

    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=message or "You do not have permission to perform this action.",
    )
