"""
services/system_logs.py

Activity feed for the admin monitoring page, assembled from rows the
service already stores:
- recent search events as "info" entries (Search Service)
- banned users as "warning" entries (User Management)

No separate log table exists, so "error" entries are always zero.
"""

from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import Session

from models import SearchEvent, User

SEARCH_SOURCE_CAP = 20
BAN_SOURCE_CAP = 10


def _search_entries(db: Session, limit: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(SearchEvent)
        .order_by(SearchEvent.created_at.desc())
        .limit(min(limit, SEARCH_SOURCE_CAP))
        .all()
    )
    return [
        {
            "id": f"search-{e.id}",
            "timestamp": e.created_at,
            "level": "info",
            "service": "Search Service",
            "message": "Flight search completed",
            "details": f"{e.origin} to {e.destination}, {(e.adults or 0) + (e.children or 0)} passengers, {e.trip_type}",
            "user": "anonymous",
        }
        for e in rows
    ]


def _ban_entries(db: Session, limit: int) -> List[Dict[str, Any]]:
    rows = (
        db.query(User)
        .filter(User.banned.is_(True))
        .order_by(User.updated_at.desc())
        .limit(min(limit, BAN_SOURCE_CAP))
        .all()
    )
    return [
        {
            "id": f"ban-{u.id}",
            "timestamp": u.updated_at,
            "level": "warning",
            "service": "User Management",
            "message": "User banned",
            "details": u.ban_reason or "No reason provided",
            "user": u.email or "unknown",
        }
        for u in rows
    ]


def level_stats(entries: List[Dict[str, Any]]) -> Dict[str, int]:
    return {
        "total": len(entries),
        "errors": sum(1 for e in entries if e["level"] == "error"),
        "warnings": sum(1 for e in entries if e["level"] == "warning"),
        "info": sum(1 for e in entries if e["level"] == "info"),
    }


def recent_entries(
    db: Session,
    limit: int,
    offset: int,
    level: str = "all",
    service: str = "all",
    search: str = "",
) -> Dict[str, Any]:
    entries: List[Dict[str, Any]] = []
    if level in ("all", "info"):
        entries.extend(_search_entries(db, limit))
    if level in ("all", "warning"):
        entries.extend(_ban_entries(db, limit))

    entries.sort(key=lambda e: e["timestamp"], reverse=True)

    if service and service != "all":
        needle = service.lower()
        entries = [e for e in entries if needle in e["service"].lower()]
    if search:
        needle = search.lower()
        entries = [
            e for e in entries
            if needle in e["message"].lower() or needle in e["details"].lower() or needle in e["user"].lower()
        ]

    return {
        "logs": entries[offset:offset + limit],
        "stats": level_stats(entries),
        "total": len(entries),
        "limit": limit,
        "offset": offset,
    }


def totals(db: Session) -> Dict[str, int]:
    searches = db.query(func.count(SearchEvent.id)).scalar() or 0
    banned = db.query(func.count(User.id)).filter(User.banned.is_(True)).scalar() or 0
    return {
        "total": searches + banned,
        "errors": 0,
        "warnings": banned,
        "info": searches,
    }
