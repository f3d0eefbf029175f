"""routers/users.py - Own profile and preferences, plus admin user management."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func

from auth import get_current_user, require_permission
from db import SessionLocal
from errors import AppValidationError
from models import EmailCampaign, EmailCampaignRecipient, Notification, User
from permissions import Role, parse_role
from schemas.users import (
    BanUserRequest,
    CreateUserRequest,
    PreferencesUpdate,
    ProfileUpdate,
    SearchField,
    SetRoleRequest,
    UserListResponse,
    UserOut,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users")
admin_router = APIRouter(prefix="/admin/users")


def user_out(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "role": u.role,
        "banned": bool(u.banned),
        "banReason": u.ban_reason,
        "banExpires": u.ban_expires,
        "wantsNotifications": bool(u.wants_notifications),
        "wantsNewsletter": bool(u.wants_newsletter),
        "createdAt": u.created_at,
    }


def _get_or_404(db, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# =====================================================================
# SECTION: SELF SERVICE
# =====================================================================

@router.get("/me", response_model=UserOut)
def get_me(user: User = Depends(get_current_user)):
    return user_out(user)


@router.put("/me", response_model=UserOut)
def update_me(payload: ProfileUpdate, user: User = Depends(get_current_user)):
    if payload.name is None and payload.email is None:
        raise AppValidationError("form", "No fields to update")

    db = SessionLocal()
    try:
        me = _get_or_404(db, user.id)
        if payload.email and payload.email.lower() != me.email.lower():
            taken = db.query(User.id).filter(func.lower(User.email) == payload.email.lower()).first()
            if taken:
                raise AppValidationError("form", "Email is already in use", "email")
            me.email = payload.email.lower()
        if payload.name is not None:
            me.name = payload.name
        db.commit()
        db.refresh(me)
        return user_out(me)
    finally:
        db.close()


@router.put("/me/preferences", response_model=UserOut)
def update_preferences(payload: PreferencesUpdate, user: User = Depends(get_current_user)):
    db = SessionLocal()
    try:
        me = _get_or_404(db, user.id)
        if payload.wantsNotifications is not None:
            me.wants_notifications = payload.wantsNotifications
        if payload.wantsNewsletter is not None:
            me.wants_newsletter = payload.wantsNewsletter
        me.preferences_updated_at = datetime.utcnow()
        db.commit()
        db.refresh(me)
        logger.info(
            f"[users] preferences user_id={me.id} notifications={me.wants_notifications} "
            f"newsletter={me.wants_newsletter}"
        )
        return user_out(me)
    finally:
        db.close()


# =====================================================================
# SECTION: ADMIN
# Super admins are never listed and cannot be created or assigned here.
# =====================================================================

@admin_router.get("", response_model=UserListResponse)
def list_users(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    searchValue: Optional[str] = Query(None),
    searchField: SearchField = Query("email"),
    admin: User = Depends(require_permission("user", "list")),
):
    db = SessionLocal()
    try:
        q = db.query(User).filter(User.role != Role.SUPER.value)
        if searchValue:
            column = User.email if searchField == "email" else User.name
            q = q.filter(column.ilike(f"%{searchValue.strip()}%"))

        total = q.count()
        rows = q.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
        return {"users": [user_out(u) for u in rows], "total": total, "limit": limit, "offset": offset}
    finally:
        db.close()


@admin_router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, admin: User = Depends(require_permission("user", "view"))):
    db = SessionLocal()
    try:
        return user_out(_get_or_404(db, user_id))
    finally:
        db.close()


@admin_router.post("", response_model=UserOut)
def create_user(payload: CreateUserRequest, admin: User = Depends(require_permission("user", "create"))):
    role = parse_role(payload.role)
    if role is None:
        raise AppValidationError("form", f"Unknown role: {payload.role}", "role")
    if role == Role.SUPER:
        raise HTTPException(status_code=403, detail="Super admin role cannot be assigned")

    db = SessionLocal()
    try:
        email = payload.email.lower()
        if db.query(User.id).filter(func.lower(User.email) == email).first():
            raise AppValidationError("form", "Email is already in use", "email")

        user = User(email=email, name=payload.name, role=role.value)
        db.add(user)
        db.commit()
        db.refresh(user)
        logger.info(f"[users] created user_id={user.id} role={user.role} by={admin.id}")
        return user_out(user)
    finally:
        db.close()


@admin_router.post("/{user_id}/set-role")
def set_role(
    user_id: str,
    payload: SetRoleRequest,
    admin: User = Depends(require_permission("user", "set-role")),
):
    role = parse_role(payload.role)
    if role is None:
        raise AppValidationError("form", f"Unknown role: {payload.role}", "role")
    if role == Role.SUPER:
        raise HTTPException(
            status_code=403,
            detail="Super admin role cannot be assigned. This role is reserved for system initialization only.",
        )

    db = SessionLocal()
    try:
        user = _get_or_404(db, user_id)
        if user.role == Role.SUPER.value:
            raise HTTPException(status_code=403, detail="Super admin cannot be modified")
        user.role = role.value
        db.commit()
        db.refresh(user)
        logger.info(f"[users] set-role user_id={user.id} role={user.role} by={admin.id}")
        return {"success": True, "user": user_out(user)}
    finally:
        db.close()


@admin_router.post("/{user_id}/ban")
def ban_user(
    user_id: str,
    payload: BanUserRequest,
    admin: User = Depends(require_permission("user", "ban")),
):
    db = SessionLocal()
    try:
        user = _get_or_404(db, user_id)
        if user.role == Role.SUPER.value:
            raise HTTPException(status_code=403, detail="Super admin cannot be banned")
        user.banned = True
        user.ban_reason = payload.reason or "No reason provided"
        user.ban_expires = (
            datetime.utcnow() + timedelta(days=payload.expiresInDays) if payload.expiresInDays else None
        )
        db.commit()
        logger.info(f"[users] banned user_id={user.id} until={user.ban_expires} by={admin.id}")
        return {"success": True, "user": {"id": user.id, "banned": True}}
    finally:
        db.close()


@admin_router.post("/{user_id}/unban")
def unban_user(user_id: str, admin: User = Depends(require_permission("user", "unban"))):
    db = SessionLocal()
    try:
        user = _get_or_404(db, user_id)
        user.banned = False
        user.ban_reason = None
        user.ban_expires = None
        db.commit()
        logger.info(f"[users] unbanned user_id={user.id} by={admin.id}")
        return {"success": True, "user": {"id": user.id, "banned": False}}
    finally:
        db.close()


@admin_router.delete("/{user_id}")
def delete_user(user_id: str, admin: User = Depends(require_permission("user", "delete"))):
    if user_id == admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    db = SessionLocal()
    try:
        user = _get_or_404(db, user_id)
        if user.role == Role.SUPER.value:
            raise HTTPException(status_code=403, detail="Super admin cannot be deleted")
        db.query(Notification).filter(Notification.user_id == user.id).delete(synchronize_session=False)
        db.query(EmailCampaignRecipient).filter(EmailCampaignRecipient.user_id == user.id).update(
            {EmailCampaignRecipient.user_id: None}, synchronize_session=False
        )
        db.query(EmailCampaign).filter(EmailCampaign.sent_by_id == user.id).update(
            {EmailCampaign.sent_by_id: None}, synchronize_session=False
        )
        db.delete(user)
        db.commit()
        logger.info(f"[users] deleted user_id={user_id} by={admin.id}")
        return {"success": True}
    finally:
        db.close()
