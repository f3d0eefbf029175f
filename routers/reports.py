"""
routers/reports.py - Admin analytics dashboards.

Every report is recomputed from the event tables on each request against a
single `now`. `format=csv` renders the same rows as a CSV attachment and
additionally requires analytics:export.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from auth import require_permission
from config import TOP_ROUTES_DEFAULT_LIMIT, TOP_ROUTES_MAX_LIMIT
from db import SessionLocal
from dependencies import get_now
from models import User
from permissions import role_has_permission
from schemas.analytics import BreakdownType, EngagementRange, GeoGroup, OutputFormat, ReportRange
from services import aggregation as agg
from services import report_service
from services.csv_export import build_csv, csv_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/reports")

can_view = require_permission("analytics", "view")


def _render(rows: List[Dict[str, Any]], fmt: str, user: User, filename: str, payload: Any = None):
    """JSON `payload` (defaults to rows) or the rows as a CSV attachment."""
    if fmt != "csv":
        return rows if payload is None else payload

    if not role_has_permission(user.role, "analytics", "export"):
        raise HTTPException(status_code=403, detail="Forbidden")
    return csv_response(build_csv(rows), filename)


# =====================================================================
# SECTION: FIXED 24H METRICS
# =====================================================================

@router.get("/metrics")
def get_metrics(
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        report = report_service.metrics(db, now)
    finally:
        db.close()
    return _render(report_service.metrics_rows(report), format, user, "metrics.csv", payload=report)


@router.get("/metrics/timeseries")
def get_timeseries(
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        series = report_service.timeseries(db, now)
    finally:
        db.close()
    return _render(series, format, user, "timeseries-last24h.csv", payload={"series": series})


@router.get("/metrics/breakdown")
def get_breakdown(
    type: BreakdownType = Query("device"),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        rows = report_service.breakdown(db, type, now)
    finally:
        db.close()
    return _render(rows, format, user, f"breakdown-{type}.csv", payload={"breakdown": rows})


@router.get("/clickout-rate")
def get_clickout_rate(
    range: ReportRange = Query("last24h"),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    start, end = agg.report_window(range, now, startDate, endDate)
    db = SessionLocal()
    try:
        result = report_service.clickout_rate(db, start, end)
    finally:
        db.close()
    return _render([result], format, user, f"clickout-rate-{range}.csv", payload=result)


# =====================================================================
# SECTION: ROUTES
# =====================================================================

@router.get("/top-routes")
def get_top_routes(
    range: ReportRange = Query("last24h"),
    limit: int = Query(TOP_ROUTES_DEFAULT_LIMIT, ge=1, le=TOP_ROUTES_MAX_LIMIT),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    start, end = agg.report_window(range, now, startDate, endDate)
    db = SessionLocal()
    try:
        rows = report_service.top_routes(db, start, end, limit)
    finally:
        db.close()
    return _render(rows, format, user, f"top-routes-{range}.csv")


@router.get("/routes/trending")
def get_trending_routes(
    limit: int = Query(10, ge=1, le=50),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        rows = report_service.trending(db, limit, now)
    finally:
        db.close()
    return _render(rows, format, user, "trending-routes.csv")


# =====================================================================
# SECTION: ENGAGEMENT
# =====================================================================

@router.get("/engagement/series")
def get_engagement_series(
    range: EngagementRange = Query("7d"),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        buckets = report_service.engagement_series(db, range, now)
    finally:
        db.close()
    return _render(buckets, format, user, f"engagement-series-{range}.csv", payload={"buckets": buckets})


@router.get("/engagement/summary")
def get_engagement_summary(
    range: EngagementRange = Query("7d"),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        report = report_service.engagement_summary(db, range, now)
    finally:
        db.close()
    return _render(
        report_service.engagement_summary_rows(report),
        format,
        user,
        f"engagement-summary-{range}.csv",
        payload=report,
    )


# =====================================================================
# SECTION: GEO AND MONTHLY TRENDS
# =====================================================================

@router.get("/geo/regions")
def get_geo_regions(
    group: GeoGroup = Query("region"),
    top: int = Query(6, ge=1, le=12),
    startDate: Optional[datetime] = Query(None),
    endDate: Optional[datetime] = Query(None),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    start, end = agg.report_window("last24h", now, startDate, endDate)
    db = SessionLocal()
    try:
        rows = report_service.geo_regions(db, group, top, start, end)
    finally:
        db.close()
    return _render(rows, format, user, f"geo-{group}.csv")


@router.get("/trends/searches")
def get_search_trends(
    months: int = Query(12, ge=1, le=24),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        rows = report_service.search_trends(db, months, now)
    finally:
        db.close()
    return _render(rows, format, user, f"search-trends-{months}m.csv")


@router.get("/trends/prices")
def get_price_trends(
    months: int = Query(12, ge=1, le=24),
    format: OutputFormat = Query("json"),
    user: User = Depends(can_view),
    now: datetime = Depends(get_now),
):
    db = SessionLocal()
    try:
        rows = report_service.price_trends(db, months, now)
    finally:
        db.close()
    return _render(rows, format, user, f"price-trends-{months}m.csv")


@router.post("/refresh")
def refresh_reports(user: User = Depends(can_view)):
    # Reports are computed per request; there is nothing to invalidate
    logger.info(f"[reports] refresh requested by={user.id}")
    return {"ok": True}
