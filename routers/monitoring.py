"""routers/monitoring.py - System health dashboard for admins."""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.concurrency import run_in_threadpool

from auth import require_permission
from db import SessionLocal
from dependencies import get_amadeus, get_health_monitor, get_registry
from models import User
from providers.amadeus import AmadeusClient
from schemas.monitoring import AmadeusStatusUpdate, LogLevel
from services import system_logs
from services.health_service import HealthMonitor
from services.notification_registry import ConnectionRegistry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/monitoring")

can_view_dashboard = require_permission("system", "dashboard")
can_read_logs = require_permission("system", "logs")


def _component_report(monitor: HealthMonitor, amadeus: AmadeusClient):
    report = monitor.report()
    report["quota"] = amadeus.quota.snapshot()
    return report


@router.get("/health")
async def system_health(
    user: User = Depends(can_view_dashboard),
    monitor: HealthMonitor = Depends(get_health_monitor),
    amadeus: AmadeusClient = Depends(get_amadeus),
    registry: ConnectionRegistry = Depends(get_registry),
):
    # probes block; the registry is only touched on the event loop
    report = await run_in_threadpool(_component_report, monitor, amadeus)
    report["realtime"] = registry.snapshot()
    return report


@router.get("/quota")
def quota_usage(
    user: User = Depends(can_view_dashboard),
    amadeus: AmadeusClient = Depends(get_amadeus),
):
    return amadeus.quota.snapshot()


@router.post("/refresh")
def refresh_health(
    user: User = Depends(can_view_dashboard),
    monitor: HealthMonitor = Depends(get_health_monitor),
):
    monitor.refresh(force=True)
    logger.info(f"[health] manual refresh by={user.id}")
    return {"ok": True, "database": monitor.database, "amadeus": monitor.amadeus}


@router.get("/alerts")
def active_alerts(
    user: User = Depends(can_view_dashboard),
    monitor: HealthMonitor = Depends(get_health_monitor),
    amadeus: AmadeusClient = Depends(get_amadeus),
):
    alerts = monitor.active_alerts(amadeus.quota.snapshot())
    return {"alerts": alerts, "count": len(alerts)}


@router.post("/amadeus/status")
def report_amadeus_status(
    payload: AmadeusStatusUpdate,
    user: User = Depends(require_permission("system", "settings")),
    monitor: HealthMonitor = Depends(get_health_monitor),
):
    monitor.record_amadeus_status(payload.status, payload.error)
    logger.info(f"[health] amadeus status reported by={user.id} status={payload.status}")
    return {"ok": True}


# =====================================================================
# SECTION: SYSTEM LOGS
# =====================================================================

@router.get("/system-logs")
def list_system_logs(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    level: LogLevel = Query("all"),
    service: str = Query("all", max_length=100),
    search: str = Query("", max_length=200),
    user: User = Depends(can_read_logs),
):
    db = SessionLocal()
    try:
        return system_logs.recent_entries(db, limit, offset, level=level, service=service, search=search.strip())
    finally:
        db.close()


@router.get("/system-logs/stats")
def system_log_stats(user: User = Depends(can_read_logs)):
    db = SessionLocal()
    try:
        return system_logs.totals(db)
    finally:
        db.close()
