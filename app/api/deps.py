# app/api/deps.py
from __future__ import annotations

from typing import Generator, Optional

from fastapi import Header, HTTPException
from jose import JWTError, jwt
from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.db.session import SessionLocal
from app.models.user import Role, User


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# =========================================================
# AUTH HELPERS
# =========================================================
def _extract_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1]
    return None


def _decode_token(raw_token: str) -> dict:
    try:
        return jwt.decode(raw_token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid token")


def get_user_from_token(raw_token: Optional[str]) -> User:
    if not raw_token:
        raise HTTPException(status_code=401, detail="Missing token")

    payload = _decode_token(raw_token)
    sub = payload.get("sub")
    try:
        user_id = int(sub)
    except (TypeError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid token payload")

    # own short-lived session: the request session stays free for `with db.begin()`
    db = SessionLocal()
    try:
        user: Optional[User] = (
            db.query(User)
            .options(selectinload(User.roles).selectinload(Role.permissions))
            .filter(User.id == user_id)
            .first()
        )
        if not user:
            raise HTTPException(status_code=401, detail="User not found")
        if not user.is_active:
            raise HTTPException(status_code=403, detail="User inactive")
        return user
    finally:
        db.close()


def current_user(authorization: Optional[str] = Header(None)) -> User:
    return get_user_from_token(_extract_bearer(authorization))
