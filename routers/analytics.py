"""
routers/analytics.py - Public ingestion of search and click-out events.

The frontend reports each search and each partner click-out here. Rows are
append-only; device fields come from the User-Agent, the IP is masked before
it is stored and geolocation is best-effort.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Request

from db import SessionLocal
from dependencies import get_geo_service
from device_parser import parse_user_agent
from models import ClickOutEvent, SearchEvent
from schemas.analytics import ClickOutEventCreate, IngestResponse, SearchEventCreate
from services.geo_service import GeoCurrencyService, client_ip, mask_ip

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics")


def _upper(code: str) -> str:
    return code.strip().upper()


@router.post("/search", response_model=IngestResponse)
def ingest_search(
    payload: SearchEventCreate,
    request: Request,
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
    geo: GeoCurrencyService = Depends(get_geo_service),
):
    user_agent = request.headers.get("user-agent")
    device = parse_user_agent(user_agent)
    ip = client_ip(request)
    country, region = geo.country_for_ip(ip)

    db = SessionLocal()
    try:
        event = SearchEvent(
            origin=_upper(payload.origin),
            destination=_upper(payload.destination),
            trip_type=payload.tripType,
            travel_class=payload.travelClass,
            adults=payload.adults,
            children=payload.children,
            browser=device["browser"],
            browser_version=device["browserVersion"] or None,
            os=device["os"],
            os_version=device["osVersion"] or None,
            device_type=device["deviceType"],
            user_agent=user_agent,
            ip_masked=mask_ip(ip),
            country=country,
            region=region,
            session_id=payload.sessionId or x_session_id,
            referrer=payload.referrer,
            utm_source=payload.utmSource,
            utm_medium=payload.utmMedium,
            utm_campaign=payload.utmCampaign,
        )
        db.add(event)
        db.commit()
        db.refresh(event)

        logger.info(
            f"[analytics] search id={event.id} route={event.origin}-{event.destination} "
            f"trip={event.trip_type} device={event.device_type}"
        )
        return {"ok": True, "id": event.id}
    finally:
        db.close()


@router.post("/clickout", response_model=IngestResponse)
def ingest_clickout(
    payload: ClickOutEventCreate,
    request: Request,
    x_session_id: Optional[str] = Header(None, alias="X-Session-Id"),
):
    ip = client_ip(request)

    db = SessionLocal()
    try:
        event = ClickOutEvent(
            origin=_upper(payload.origin),
            destination=_upper(payload.destination),
            trip_type=payload.tripType,
            partner=payload.partner,
            user_agent=request.headers.get("user-agent"),
            ip_masked=mask_ip(ip),
            session_id=payload.sessionId or x_session_id,
            referrer=payload.referrer,
            utm_source=payload.utmSource,
            utm_medium=payload.utmMedium,
            utm_campaign=payload.utmCampaign,
            price=payload.price,
            currency=payload.currency.upper() if payload.currency else None,
            deep_link=payload.deepLink,
        )
        db.add(event)
        db.commit()
        db.refresh(event)

        logger.info(
            f"[analytics] clickout id={event.id} route={event.origin}-{event.destination} "
            f"partner={event.partner} price={event.price}"
        )
        return {"ok": True, "id": event.id}
    finally:
        db.close()
