"""routers/geo_currency.py - Visitor geolocation and exchange rates (public)."""

from fastapi import APIRouter, Depends, Query, Request

from dependencies import get_geo_service
from services.geo_service import GeoCurrencyService, client_ip

router = APIRouter(prefix="/geo-currency")


@router.get("")
def geo_lookup(request: Request, geo: GeoCurrencyService = Depends(get_geo_service)):
    return geo.lookup_ip(client_ip(request))


@router.get("/rates")
def exchange_rates(
    base: str = Query("USD", min_length=3, max_length=3),
    geo: GeoCurrencyService = Depends(get_geo_service),
):
    return geo.latest_rates(base)


@router.get("/convert")
def convert_currency(
    amount: float = Query(..., ge=0),
    from_currency: str = Query(..., alias="from", min_length=3, max_length=3),
    to_currency: str = Query(..., alias="to", min_length=3, max_length=3),
    geo: GeoCurrencyService = Depends(get_geo_service),
):
    return geo.convert(amount, from_currency, to_currency)
