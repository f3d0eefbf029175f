"""routers/admin.py - Liveness, route listing and the admin config table."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from auth import require_permission
from db import SessionLocal
from models import AdminConfig, User
from schemas.users import AdminConfigResponse, AdminConfigUpdatePayload

logger = logging.getLogger(__name__)

router = APIRouter()


def config_out(row: AdminConfig) -> dict:
    return {
        "key": row.key,
        "value": row.value,
        "description": row.description,
        "updated_at": row.updated_at,
    }


# =====================================================================
# SECTION: HEALTH ROUTES
# =====================================================================

@router.get("/")
def home():
    return {"message": "API is running"}


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/admin/routes")
def list_routes_handler(user: User = Depends(require_permission("system", "logs"))):
    # Imported lazily to avoid circular import
    from main import app
    return sorted({route.path for route in app.routes})


# =====================================================================
# SECTION: ADMIN CONFIG
# =====================================================================

@router.get("/admin/config")
def list_config(user: User = Depends(require_permission("system", "settings"))):
    db = SessionLocal()
    try:
        rows = db.query(AdminConfig).order_by(AdminConfig.key).all()
        return [config_out(r) for r in rows]
    finally:
        db.close()


@router.get("/admin/config/{key}", response_model=AdminConfigResponse)
def get_config(key: str, user: User = Depends(require_permission("system", "settings"))):
    db = SessionLocal()
    try:
        row = db.query(AdminConfig).filter(AdminConfig.key == key).first()
        if not row:
            raise HTTPException(status_code=404, detail="Config key not found")
        return config_out(row)
    finally:
        db.close()


@router.put("/admin/config/{key}", response_model=AdminConfigResponse)
def update_config(
    key: str,
    payload: AdminConfigUpdatePayload,
    user: User = Depends(require_permission("system", "settings")),
):
    db = SessionLocal()
    try:
        row = db.query(AdminConfig).filter(AdminConfig.key == key).first()
        if row is None:
            row = AdminConfig(key=key)
            db.add(row)
        row.value = payload.value
        if payload.description is not None:
            row.description = payload.description
        row.updated_at = datetime.utcnow()
        db.commit()
        db.refresh(row)
        logger.info(f"[admin] config key={key} value={payload.value} by={user.id}")
        return config_out(row)
    finally:
        db.close()
