"""routers/customers.py - Admin view of customer accounts (role = "user") and their preferences."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy import func

from auth import require_permission
from db import SessionLocal
from dependencies import get_now
from models import User
from permissions import Role
from schemas.users import (
    CustomerListResponse,
    CustomerOut,
    CustomerPreferencesResponse,
    CustomerStats,
    PreferencesUpdate,
    SearchField,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/customers")


def customer_out(u: User) -> dict:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "banned": bool(u.banned),
        "banReason": u.ban_reason,
        "banExpires": u.ban_expires,
        "wantsNotifications": bool(u.wants_notifications),
        "wantsNewsletter": bool(u.wants_newsletter),
        "preferencesUpdatedAt": u.preferences_updated_at,
        "createdAt": u.created_at,
        "updatedAt": u.updated_at,
    }


def _customers(db):
    return db.query(User).filter(User.role == Role.USER.value)


def _customer_or_404(db, customer_id: str) -> User:
    customer = _customers(db).filter(User.id == customer_id).first()
    if not customer:
        raise HTTPException(status_code=404, detail="Customer not found")
    return customer


@router.get("", response_model=CustomerListResponse)
def list_customers(
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    searchValue: Optional[str] = Query(None),
    searchField: SearchField = Query("email"),
    admin: User = Depends(require_permission("user", "list")),
):
    db = SessionLocal()
    try:
        q = _customers(db)
        if searchValue:
            column = User.email if searchField == "email" else User.name
            q = q.filter(column.ilike(f"%{searchValue.strip()}%"))

        total = q.count()
        rows = q.order_by(User.created_at.desc()).offset(offset).limit(limit).all()
        return {"customers": [customer_out(u) for u in rows], "total": total, "limit": limit, "offset": offset}
    finally:
        db.close()


@router.get("/stats/overview", response_model=CustomerStats)
def customer_stats(
    admin: User = Depends(require_permission("user", "list")),
    now: datetime = Depends(get_now),
):
    month_start = datetime(now.year, now.month, 1)

    db = SessionLocal()
    try:
        def count(*criteria) -> int:
            return _customers(db).filter(*criteria).with_entities(func.count(User.id)).scalar() or 0

        return {
            "totalCustomers": count(),
            "bannedCustomers": count(User.banned.is_(True)),
            "wantsNotifications": count(User.wants_notifications.is_(True)),
            "wantsNewsletter": count(User.wants_newsletter.is_(True)),
            "newThisMonth": count(User.created_at >= month_start),
        }
    finally:
        db.close()


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: str, admin: User = Depends(require_permission("user", "view"))):
    db = SessionLocal()
    try:
        return customer_out(_customer_or_404(db, customer_id))
    finally:
        db.close()


@router.put("/{customer_id}/preferences", response_model=CustomerPreferencesResponse)
def override_preferences(
    customer_id: str,
    payload: PreferencesUpdate,
    admin: User = Depends(require_permission("user", "update")),
):
    db = SessionLocal()
    try:
        customer = _customer_or_404(db, customer_id)
        if payload.wantsNotifications is not None:
            customer.wants_notifications = payload.wantsNotifications
        if payload.wantsNewsletter is not None:
            customer.wants_newsletter = payload.wantsNewsletter
        customer.preferences_updated_at = datetime.utcnow()
        db.commit()
        db.refresh(customer)
        logger.info(
            f"[customers] preferences override by={admin.id} customer_id={customer.id} "
            f"notifications={customer.wants_notifications} newsletter={customer.wants_newsletter}"
        )
        return {"success": True, "customer": customer_out(customer)}
    finally:
        db.close()
