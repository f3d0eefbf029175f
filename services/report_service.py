"""
services/report_service.py

Read-only reporting over the search and click-out event logs.

Each public function computes one report fresh from the DB for a given
`now`: window queries here, bucketing and rate math in services/aggregation.py.
Nothing is cached and no event row is ever modified.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from config import BREAKDOWN_TOP_N, METRICS_TOP_ROUTES
from models import ClickOutEvent, SearchEvent
from services import aggregation as agg

logger = logging.getLogger(__name__)


BREAKDOWN_FIELDS = {
    "device": SearchEvent.device_type,
    "browser": SearchEvent.browser,
    "os": SearchEvent.os,
    "geo": SearchEvent.country,
    "travelClass": SearchEvent.travel_class,
}


# =====================================================================
# SECTION: WINDOW QUERIES
# =====================================================================

def _in_window(model, start: datetime, end: datetime):
    return (model.created_at >= start, model.created_at < end)


def count_events(db: Session, model, start: datetime, end: datetime) -> int:
    return db.query(func.count(model.id)).filter(*_in_window(model, start, end)).scalar() or 0


def event_times(db: Session, model, start: datetime, end: datetime) -> List[datetime]:
    return [row[0] for row in db.query(model.created_at).filter(*_in_window(model, start, end)).all()]


def search_sessions(db: Session, start: datetime, end: datetime) -> List[Tuple[datetime, Optional[str]]]:
    rows = (
        db.query(SearchEvent.created_at, SearchEvent.session_id)
        .filter(*_in_window(SearchEvent, start, end))
        .all()
    )
    return [(r[0], r[1]) for r in rows]


def route_counts(
    db: Session,
    start: datetime,
    end: datetime,
    limit: Optional[int] = None,
) -> List[Tuple[str, str, int]]:
    """(origin, destination, searches) ranked by searches desc."""
    count_col = func.count(SearchEvent.id)
    q = (
        db.query(SearchEvent.origin, SearchEvent.destination, count_col)
        .filter(*_in_window(SearchEvent, start, end))
        .group_by(SearchEvent.origin, SearchEvent.destination)
        .order_by(count_col.desc(), SearchEvent.origin, SearchEvent.destination)
    )
    if limit is not None:
        q = q.limit(limit)
    return [(r[0], r[1], int(r[2])) for r in q.all()]


def click_route_stats(db: Session, start: datetime, end: datetime) -> Dict[agg.RouteKey, Tuple[int, Optional[float]]]:
    rows = (
        db.query(
            ClickOutEvent.origin,
            ClickOutEvent.destination,
            func.count(ClickOutEvent.id),
            func.avg(ClickOutEvent.price),
        )
        .filter(*_in_window(ClickOutEvent, start, end))
        .group_by(ClickOutEvent.origin, ClickOutEvent.destination)
        .all()
    )
    return {
        (r[0], r[1]): (int(r[2]), float(r[3]) if r[3] is not None else None)
        for r in rows
    }


# =====================================================================
# SECTION: FIXED-WINDOW METRICS
# =====================================================================

def _window_totals(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    searches = count_events(db, SearchEvent, start, end)
    clickouts = count_events(db, ClickOutEvent, start, end)
    return {
        "totalSearches": searches,
        "totalClickOuts": clickouts,
        "clickOutRate": agg.safe_rate(clickouts, searches),
    }


def metrics(db: Session, now: datetime) -> Dict[str, Any]:
    (last_start, last_end), (prev_start, prev_end) = agg.last_and_prev_24h(now)

    last = _window_totals(db, last_start, last_end)
    last["topRoutes"] = [
        {"origin": o, "destination": d, "count": n}
        for o, d, n in route_counts(db, last_start, last_end, limit=METRICS_TOP_ROUTES)
    ]
    prev = _window_totals(db, prev_start, prev_end)

    return {"last24h": last, "prev24h": prev}


def metrics_rows(report: Dict[str, Any]) -> List[Dict[str, Any]]:
    """
    Flat rows of metrics() for CSV: one totals row per window, then one row
    per last24h top route. Columns a row does not use are left empty.
    """
    rows = []
    for window in ("last24h", "prev24h"):
        w = report[window]
        rows.append({
            "window": window,
            "totalSearches": w["totalSearches"],
            "totalClickOuts": w["totalClickOuts"],
            "clickOutRate": w["clickOutRate"],
            "origin": None,
            "destination": None,
            "count": None,
        })
    for route in report["last24h"].get("topRoutes", []):
        rows.append({
            "window": "last24h",
            "totalSearches": None,
            "totalClickOuts": None,
            "clickOutRate": None,
            "origin": route["origin"],
            "destination": route["destination"],
            "count": route["count"],
        })
    return rows


def timeseries(db: Session, now: datetime) -> List[Dict[str, Any]]:
    start, end = now - agg.DAY, now
    return agg.hourly_series(
        event_times(db, SearchEvent, start, end),
        event_times(db, ClickOutEvent, start, end),
        now,
    )


def breakdown(db: Session, type_name: str, now: datetime) -> List[Dict[str, Any]]:
    column = BREAKDOWN_FIELDS[type_name]
    start, end = now - agg.DAY, now
    count_col = func.count(SearchEvent.id)
    rows = (
        db.query(column, count_col)
        .filter(*_in_window(SearchEvent, start, end), column.isnot(None))
        .group_by(column)
        .order_by(count_col.desc(), column)
        .limit(BREAKDOWN_TOP_N)
        .all()
    )
    return [{"key": r[0] if r[0] is not None else "Unknown", "count": int(r[1])} for r in rows]


def clickout_rate(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    searches = count_events(db, SearchEvent, start, end)
    clicks = count_events(db, ClickOutEvent, start, end)
    return {"searches": searches, "clicks": clicks, "rate": agg.safe_rate(clicks, searches)}


# =====================================================================
# SECTION: ROUTES
# =====================================================================

def top_routes(db: Session, start: datetime, end: datetime, limit: int) -> List[Dict[str, Any]]:
    rows = agg.merge_top_routes(
        route_counts(db, start, end, limit=limit),
        click_route_stats(db, start, end),
    )
    logger.info(f"[reports] top-routes start={start.isoformat()} end={end.isoformat()} rows={len(rows)}")
    return rows


def trending(db: Session, limit: int, now: datetime) -> List[Dict[str, Any]]:
    week = timedelta(days=7)
    start_this = now - week
    start_prev = start_this - week

    this_week = {(o, d): n for o, d, n in route_counts(db, start_this, now)}
    last_week = {(o, d): n for o, d, n in route_counts(db, start_prev, start_this)}
    return agg.trending_routes(this_week, last_week, limit)


# =====================================================================
# SECTION: ENGAGEMENT
# =====================================================================

def engagement_series(db: Session, range_name: str, now: datetime) -> List[Dict[str, Any]]:
    start, end = agg.engagement_window(range_name, now)
    return agg.engagement_series(
        search_sessions(db, start, end),
        event_times(db, ClickOutEvent, start, end),
        range_name,
        now,
    )


def _engagement_totals(db: Session, start: datetime, end: datetime) -> Dict[str, Any]:
    sessions = [s for _, s in search_sessions(db, start, end)]
    return agg.engagement_totals(
        count_events(db, SearchEvent, start, end),
        count_events(db, ClickOutEvent, start, end),
        sessions,
    )


def engagement_summary(db: Session, range_name: str, now: datetime) -> Dict[str, Any]:
    start, end = agg.engagement_window(range_name, now)
    prev_start, prev_end = agg.previous_window(start, end)

    current = _engagement_totals(db, start, end)
    prev = _engagement_totals(db, prev_start, prev_end)
    return {"current": current, "prev": prev, "deltas": agg.engagement_deltas(current, prev)}


def engagement_summary_rows(report: Dict[str, Any]) -> List[Dict[str, Any]]:
    return [{"period": period, **report[period]} for period in ("current", "prev", "deltas")]


# =====================================================================
# SECTION: GEO AND MONTHLY TRENDS
# =====================================================================

def geo_regions(db: Session, group: str, top: int, start: datetime, end: datetime) -> List[Dict[str, Any]]:
    countries = [
        r[0]
        for r in db.query(SearchEvent.country)
        .filter(*_in_window(SearchEvent, start, end), SearchEvent.country.isnot(None))
        .all()
    ]
    if group == "country":
        return agg.country_rollup(countries, top)
    return agg.region_rollup(countries)


def search_trends(db: Session, months: int, now: datetime) -> List[Dict[str, Any]]:
    start = agg.months_window_start(now, months)
    return agg.monthly_counts(
        event_times(db, SearchEvent, start, now),
        event_times(db, ClickOutEvent, start, now),
        now,
        months,
    )


def price_trends(db: Session, months: int, now: datetime) -> List[Dict[str, Any]]:
    start = agg.months_window_start(now, months)
    rows = (
        db.query(ClickOutEvent.created_at, ClickOutEvent.price)
        .filter(*_in_window(ClickOutEvent, start, now), ClickOutEvent.price.isnot(None))
        .all()
    )
    return agg.monthly_prices([(r[0], r[1]) for r in rows], now, months)
