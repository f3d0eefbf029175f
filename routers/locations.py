"""routers/locations.py - Airport and city lookup for search autocompletion."""

import math

from fastapi import APIRouter, HTTPException, Query
from sqlalchemy import or_

from db import SessionLocal
from models import Airport

router = APIRouter()

EARTH_RADIUS_KM = 6371
AIRPORT_SEARCH_LIMIT = 10


def airport_out(a: Airport) -> dict:
    return {
        "city": a.city,
        "country": a.country,
        "airport": a.name,
        "iataCode": a.iata_code,
        "lat": a.latitude,
        "lng": a.longitude,
    }


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


@router.get("/locations")
def search_locations(
    keyword: str = Query("", max_length=100),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    """Case-insensitive contains match on IATA code, airport name or city."""
    db = SessionLocal()
    try:
        q = db.query(Airport)
        term = keyword.strip()
        if term:
            pattern = f"%{term}%"
            q = q.filter(or_(
                Airport.iata_code.ilike(pattern),
                Airport.name.ilike(pattern),
                Airport.city.ilike(pattern),
            ))

        total = q.count()
        rows = q.order_by(Airport.iata_code).offset((page - 1) * limit).limit(limit).all()
        return {
            "meta": {"total": total, "page": page, "limit": limit},
            "data": [airport_out(a) for a in rows],
        }
    finally:
        db.close()


@router.get("/airports/nearest")
def nearest_airport(
    lat: float = Query(..., ge=-90, le=90),
    lon: float = Query(..., ge=-180, le=180),
):
    db = SessionLocal()
    try:
        airports = (
            db.query(Airport)
            .filter(Airport.latitude.isnot(None), Airport.longitude.isnot(None))
            .all()
        )
    finally:
        db.close()

    if not airports:
        raise HTTPException(status_code=404, detail="No airports found in database")

    best = min(airports, key=lambda a: haversine_km(lat, lon, a.latitude, a.longitude))
    out = airport_out(best)
    out["distanceKm"] = round(haversine_km(lat, lon, best.latitude, best.longitude), 1)
    return out


@router.get("/airports/search")
def search_airports(q: str = Query("", max_length=100)):
    """Airports whose name or IATA code contains `q`; under 2 characters matches nothing."""
    term = q.strip()
    if len(term) < 2:
        return {"airports": []}

    pattern = f"%{term}%"
    db = SessionLocal()
    try:
        rows = (
            db.query(Airport)
            .filter(or_(Airport.name.ilike(pattern), Airport.iata_code.ilike(pattern)))
            .order_by(Airport.iata_code)
            .limit(AIRPORT_SEARCH_LIMIT)
            .all()
        )
    finally:
        db.close()

    return {
        "airports": [
            {
                "iataCode": a.iata_code,
                "name": a.name,
                "city": a.city,
                "country": a.country,
                "countryCode": a.country_code,
            }
            for a in rows
        ]
    }
