"""
auth.py - Request identity and permission dependencies.

The frontend session proxy forwards the signed-in user's id in X-User-Id.
Routes depend on get_current_user() or require_permission(resource, action).
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import Depends, Header, HTTPException

from db import SessionLocal
from models import User
from permissions import role_has_permission

logger = logging.getLogger(__name__)


def is_banned(user: User) -> bool:
    if not user.banned:
        return False
    if user.ban_expires is not None and user.ban_expires <= datetime.utcnow():
        return False
    return True


def load_user(user_id: Optional[str]) -> Optional[User]:
    """Fetch a user by id, detached from its session. None when missing."""
    user_id = (user_id or "").strip()
    if not user_id:
        return None
    db = SessionLocal()
    try:
        return db.query(User).filter(User.id == user_id).first()
    finally:
        db.close()


def get_current_user(x_user_id: Optional[str] = Header(None, alias="X-User-Id")) -> User:
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = load_user(x_user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if is_banned(user):
        logger.info(f"[auth] banned user rejected user_id={user.id}")
        raise HTTPException(status_code=403, detail="User is banned")

    return user


def require_permission(resource: str, action: str):
    """Dependency factory: 403 unless the current user's role grants resource:action."""

    def _dependency(user: User = Depends(get_current_user)) -> User:
        if not role_has_permission(user.role, resource, action):
            logger.info(f"[auth] forbidden user_id={user.id} role={user.role} need={resource}:{action}")
            raise HTTPException(status_code=403, detail="Forbidden")
        return user

    return _dependency
