"""routers/flight_offers.py - Flight offer search proxied to Amadeus."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from dependencies import get_amadeus
from providers.amadeus import AmadeusClient
from schemas.flights import FlightOfferQuery, MultiCitySearchRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/flight-offers")


@router.get("")
def search_flight_offers(
    q: Annotated[FlightOfferQuery, Query()],
    amadeus: AmadeusClient = Depends(get_amadeus),
):
    """One-way or round-trip search. The Amadeus response is returned as-is."""
    logger.info(
        f"[flights] search {q.originLocationCode}-{q.destinationLocationCode} "
        f"dep={q.departureDate} ret={q.returnDate} adults={q.adults} cabin={q.travelClass}"
    )
    return amadeus.search_flight_offers(
        origin=q.originLocationCode,
        destination=q.destinationLocationCode,
        departure_date=q.departureDate,
        adults=q.adults,
        travel_class=q.travelClass,
        children=q.children,
        return_date=q.returnDate,
        max_results=q.max,
    )


@router.post("")
def search_multi_city(
    payload: MultiCitySearchRequest,
    amadeus: AmadeusClient = Depends(get_amadeus),
):
    legs = [leg.model_dump() for leg in payload.originDestinations]
    logger.info(f"[flights] multi-city legs={len(legs)} adults={payload.adults} cabin={payload.travelClass}")
    return amadeus.search_multi_city(
        legs,
        adults=payload.adults,
        travel_class=payload.travelClass,
        children=payload.children,
        max_results=payload.max,
    )
