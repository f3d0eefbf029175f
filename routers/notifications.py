"""routers/notifications.py - Per-user notification inbox and admin send endpoints."""

import logging
from typing import Dict, List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func

from auth import get_current_user, require_permission
from db import SessionLocal
from dependencies import get_registry
from models import Notification, User
from permissions import Role
from schemas.notifications import (
    AdminNotificationListResponse,
    NotificationListResponse,
    NotificationOut,
    SendBulkNotificationRequest,
    SendBulkNotificationResponse,
    SendNotificationRequest,
    SendNotificationResponse,
    UnreadCountResponse,
)
from services.notification_registry import ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications")


def notification_out(n: Notification) -> Dict:
    return {
        "id": n.id,
        "title": n.title,
        "message": n.message,
        "type": n.type,
        "read": bool(n.read),
        "createdAt": n.created_at,
    }


def accepts_notifications(user: User) -> bool:
    """Staff always receive admin notifications; customers can opt out."""
    return user.role != Role.USER.value or bool(user.wants_notifications)


# =====================================================================
# SECTION: USER INBOX
# =====================================================================

@router.get("", response_model=NotificationListResponse)
def list_notifications(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    unreadOnly: bool = Query(False),
    user: User = Depends(get_current_user),
):
    db = SessionLocal()
    try:
        q = db.query(Notification).filter(Notification.user_id == user.id)
        if unreadOnly:
            q = q.filter(Notification.read.is_(False))

        total = q.count()
        rows = q.order_by(Notification.created_at.desc()).offset(offset).limit(limit).all()
        unread = (
            db.query(func.count(Notification.id))
            .filter(Notification.user_id == user.id, Notification.read.is_(False))
            .scalar()
        ) or 0

        return {
            "notifications": [notification_out(n) for n in rows],
            "total": total,
            "unreadCount": unread,
            "limit": limit,
            "offset": offset,
        }
    finally:
        db.close()


@router.get("/unread-count", response_model=UnreadCountResponse)
def unread_count(user: User = Depends(get_current_user)):
    db = SessionLocal()
    try:
        count = (
            db.query(func.count(Notification.id))
            .filter(Notification.user_id == user.id, Notification.read.is_(False))
            .scalar()
        ) or 0
        return {"count": count}
    finally:
        db.close()


# Declared before /{notification_id}/read so the literal path wins
@router.put("/mark-all-read")
def mark_all_read(user: User = Depends(get_current_user)):
    db = SessionLocal()
    try:
        updated = (
            db.query(Notification)
            .filter(Notification.user_id == user.id, Notification.read.is_(False))
            .update({Notification.read: True}, synchronize_session=False)
        )
        db.commit()
        logger.info(f"[notifications] mark-all-read user_id={user.id} updated={updated}")
        return {"success": True}
    finally:
        db.close()


@router.put("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: str, user: User = Depends(get_current_user)):
    db = SessionLocal()
    try:
        n = (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user.id)
            .first()
        )
        if not n:
            raise HTTPException(status_code=404, detail="Notification not found")
        n.read = True
        db.commit()
        db.refresh(n)
        return notification_out(n)
    finally:
        db.close()


@router.delete("/{notification_id}")
def delete_notification(notification_id: str, user: User = Depends(get_current_user)):
    db = SessionLocal()
    try:
        n = (
            db.query(Notification)
            .filter(Notification.id == notification_id, Notification.user_id == user.id)
            .first()
        )
        if not n:
            raise HTTPException(status_code=404, detail="Notification not found")
        db.delete(n)
        db.commit()
        return {"success": True}
    finally:
        db.close()


# =====================================================================
# SECTION: ADMIN SEND
# Persist first, then push; the stored row is the source of truth and
# the push only reaches users connected right now. DB work runs in the
# threadpool so open sockets keep being served meanwhile.
# =====================================================================

def _store_notification(payload: SendNotificationRequest) -> Dict:
    db = SessionLocal()
    try:
        target = db.query(User).filter(User.id == payload.userId).first()
        if not target:
            raise HTTPException(status_code=404, detail="User not found")

        if not accepts_notifications(target):
            raise HTTPException(
                status_code=403,
                detail={"message": "User has disabled notifications", "blocked": True},
            )

        n = Notification(
            user_id=target.id,
            title=payload.title,
            message=payload.message,
            type=payload.type,
        )
        db.add(n)
        db.commit()
        db.refresh(n)
        return notification_out(n)
    finally:
        db.close()


def _store_bulk_notifications(payload: SendBulkNotificationRequest, requested: List[str]) -> Tuple[Dict[str, Dict], int]:
    """Per-user rows for everyone who accepts notifications, plus the opted-out count."""
    db = SessionLocal()
    try:
        users = db.query(User).filter(User.id.in_(requested)).all()
        eligible = [u for u in users if accepts_notifications(u)]
        blocked = len(users) - len(eligible)

        created = []
        for u in eligible:
            n = Notification(user_id=u.id, title=payload.title, message=payload.message, type=payload.type)
            db.add(n)
            created.append(n)
        db.commit()
        payloads = {}
        for n in created:
            db.refresh(n)
            payloads[n.user_id] = notification_out(n)
        return payloads, blocked
    finally:
        db.close()


@router.post("/admin/send", response_model=SendNotificationResponse)
async def admin_send(
    payload: SendNotificationRequest,
    admin: User = Depends(require_permission("notification", "send")),
    registry: ConnectionRegistry = Depends(get_registry),
):
    out = await run_in_threadpool(_store_notification, payload)

    delivered = await registry.send_to_user(payload.userId, {"type": "notification", "payload": out})
    logger.info(f"[notifications] admin send by={admin.id} to={payload.userId} delivered={delivered}")
    return {"success": True, "notification": out, "delivered": delivered}


@router.post("/admin/send-bulk", response_model=SendBulkNotificationResponse)
async def admin_send_bulk(
    payload: SendBulkNotificationRequest,
    admin: User = Depends(require_permission("notification", "send")),
    registry: ConnectionRegistry = Depends(get_registry),
):
    requested = list(dict.fromkeys(payload.userIds))
    payloads, blocked = await run_in_threadpool(_store_bulk_notifications, payload, requested)

    online = 0
    offline = 0
    for user_id, out in payloads.items():
        if await registry.send_to_user(user_id, {"type": "notification", "payload": out}):
            online += 1
        else:
            offline += 1

    logger.info(
        f"[notifications] admin bulk by={admin.id} requested={len(requested)} "
        f"sent={len(payloads)} blocked={blocked} online={online}"
    )
    return {
        "success": True,
        "sent": len(payloads),
        "blocked": blocked,
        "online": online,
        "offline": offline,
    }


@router.get("/admin/all", response_model=AdminNotificationListResponse)
def admin_list_all(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    admin: User = Depends(require_permission("notification", "list")),
):
    db = SessionLocal()
    try:
        total = db.query(func.count(Notification.id)).scalar() or 0
        rows = (
            db.query(Notification, User)
            .outerjoin(User, User.id == Notification.user_id)
            .order_by(Notification.created_at.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        notifications = []
        for n, u in rows:
            item = notification_out(n)
            item["user"] = {"id": u.id, "name": u.name, "email": u.email} if u else None
            notifications.append(item)

        return {"notifications": notifications, "total": total, "limit": limit, "offset": offset}
    finally:
        db.close()
