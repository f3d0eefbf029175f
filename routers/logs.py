"""routers/logs.py - Paginated raw event logs, filter dropdown values and CSV export."""

import logging
import math
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Query as OrmQuery

from auth import require_permission
from config import export_max_rows
from db import SessionLocal
from models import ClickOutEvent, SearchEvent, User
from schemas.analytics import (
    ClickOutLogFilters,
    ClickOutLogsResponse,
    FilterOptions,
    LogFilters,
    SearchLogsResponse,
)
from services.aggregation import naive_utc
from services.csv_export import build_quoted_csv, csv_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/logs")

EXPORT_HEADERS = [
    "Timestamp",
    "Origin",
    "Destination",
    "Trip Type",
    "Travel Class",
    "Adults",
    "Children",
    "Browser",
    "OS",
    "Device Type",
    "Country",
    "Region",
    "IP (Masked)",
]


# =====================================================================
# SECTION: FILTERS
# =====================================================================

def _date_range(q: OrmQuery, model, start, end) -> OrmQuery:
    # Both ends inclusive for logs, unlike the half-open report windows
    if start is not None:
        q = q.filter(model.created_at >= naive_utc(start))
    if end is not None:
        q = q.filter(model.created_at <= naive_utc(end))
    return q


def _contains(column, value: str):
    return column.ilike(f"%{value.strip()}%")


def apply_search_filters(q: OrmQuery, f: LogFilters) -> OrmQuery:
    q = _date_range(q, SearchEvent, f.startDate, f.endDate)
    if f.origin:
        q = q.filter(_contains(SearchEvent.origin, f.origin))
    if f.destination:
        q = q.filter(_contains(SearchEvent.destination, f.destination))
    if f.tripType:
        q = q.filter(SearchEvent.trip_type == f.tripType)
    if f.os:
        q = q.filter(SearchEvent.os == f.os)
    if f.browser:
        q = q.filter(SearchEvent.browser == f.browser)
    if f.deviceType:
        q = q.filter(SearchEvent.device_type == f.deviceType)
    if f.country:
        q = q.filter(SearchEvent.country == f.country)
    if f.travelClass:
        q = q.filter(SearchEvent.travel_class == f.travelClass)
    return q


def apply_clickout_filters(q: OrmQuery, f: ClickOutLogFilters) -> OrmQuery:
    q = _date_range(q, ClickOutEvent, f.startDate, f.endDate)
    if f.origin:
        q = q.filter(_contains(ClickOutEvent.origin, f.origin))
    if f.destination:
        q = q.filter(_contains(ClickOutEvent.destination, f.destination))
    if f.tripType:
        q = q.filter(ClickOutEvent.trip_type == f.tripType)
    if f.partner:
        q = q.filter(ClickOutEvent.partner == f.partner)
    return q


def _pagination(page: int, limit: int, total: int) -> dict:
    return {"page": page, "limit": limit, "total": total, "totalPages": math.ceil(total / limit)}


def search_log_out(e: SearchEvent) -> dict:
    return {
        "id": e.id,
        "createdAt": e.created_at,
        "origin": e.origin,
        "destination": e.destination,
        "tripType": e.trip_type,
        "travelClass": e.travel_class,
        "adults": e.adults,
        "children": e.children,
        "browser": e.browser,
        "browserVersion": e.browser_version,
        "os": e.os,
        "osVersion": e.os_version,
        "deviceType": e.device_type,
        "ipMasked": e.ip_masked,
        "country": e.country,
        "region": e.region,
        "sessionId": e.session_id,
    }


def clickout_log_out(e: ClickOutEvent) -> dict:
    return {
        "id": e.id,
        "createdAt": e.created_at,
        "origin": e.origin,
        "destination": e.destination,
        "tripType": e.trip_type,
        "partner": e.partner,
        "price": e.price,
        "currency": e.currency,
        "ipMasked": e.ip_masked,
        "sessionId": e.session_id,
    }


def _with_version(name, version) -> str:
    if not name:
        return ""
    return f"{name} {version or ''}".strip()


# =====================================================================
# SECTION: ROUTES
# =====================================================================

@router.get("/search-logs", response_model=SearchLogsResponse)
def search_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    filters: LogFilters = Depends(),
    user: User = Depends(require_permission("analytics", "view")),
):
    db = SessionLocal()
    try:
        q = apply_search_filters(db.query(SearchEvent), filters)
        total = q.count()
        rows = (
            q.order_by(SearchEvent.created_at.desc(), SearchEvent.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {"logs": [search_log_out(e) for e in rows], "pagination": _pagination(page, limit, total)}
    finally:
        db.close()


@router.get("/clickout-logs", response_model=ClickOutLogsResponse)
def clickout_logs(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    filters: ClickOutLogFilters = Depends(),
    user: User = Depends(require_permission("analytics", "view")),
):
    db = SessionLocal()
    try:
        q = apply_clickout_filters(db.query(ClickOutEvent), filters)
        total = q.count()
        rows = (
            q.order_by(ClickOutEvent.created_at.desc(), ClickOutEvent.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
        return {"logs": [clickout_log_out(e) for e in rows], "pagination": _pagination(page, limit, total)}
    finally:
        db.close()


@router.get("/filter-options", response_model=FilterOptions)
def filter_options(user: User = Depends(require_permission("analytics", "view"))):
    db = SessionLocal()
    try:
        def distinct(column):
            rows = db.query(column).filter(column.isnot(None)).distinct().order_by(column).all()
            return [r[0] for r in rows]

        return {
            "origins": distinct(SearchEvent.origin),
            "destinations": distinct(SearchEvent.destination),
            "tripTypes": distinct(SearchEvent.trip_type),
            "browsers": distinct(SearchEvent.browser),
            "oses": distinct(SearchEvent.os),
            "deviceTypes": distinct(SearchEvent.device_type),
            "countries": distinct(SearchEvent.country),
            "travelClasses": distinct(SearchEvent.travel_class),
        }
    finally:
        db.close()


@router.get("/search-logs/export")
def export_search_logs(
    filters: LogFilters = Depends(),
    user: User = Depends(require_permission("analytics", "export")),
):
    cap = export_max_rows()
    db = SessionLocal()
    try:
        logs = (
            apply_search_filters(db.query(SearchEvent), filters)
            .order_by(SearchEvent.created_at.desc(), SearchEvent.id.desc())
            .limit(cap)
            .all()
        )
        rows = [
            [
                e.created_at.isoformat(),
                e.origin,
                e.destination,
                e.trip_type,
                e.travel_class or "",
                e.adults,
                e.children,
                _with_version(e.browser, e.browser_version),
                _with_version(e.os, e.os_version),
                e.device_type or "",
                e.country or "",
                e.region or "",
                e.ip_masked or "",
            ]
            for e in logs
        ]
    finally:
        db.close()

    logger.info(f"[logs] export by={user.id} rows={len(rows)} cap={cap}")
    filename = f"search-logs-{datetime.utcnow().strftime('%Y-%m-%d')}.csv"
    return csv_response(build_quoted_csv(EXPORT_HEADERS, rows), filename)
