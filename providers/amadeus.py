"""
providers/amadeus.py

Amadeus Self-Service API helpers:
- OAuth client-credentials token, cached until shortly before expiry
- Low-level HTTP wrappers (amadeus_get, amadeus_post)
- Flight offer search, one-way / round-trip (GET) and multi-city (POST)

Every outbound call (token included) counts against the daily quota.
Any failure is raised as UpstreamError, nothing is retried.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Optional

import requests

from config import AMADEUS_API_KEY, AMADEUS_API_SECRET, AMADEUS_BASE_URL
from errors import UpstreamError
from services.health_service import QuotaCounter
from services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

TOKEN_PATH = "/v1/security/oauth2/token"
FLIGHT_OFFERS_PATH = "/v2/shopping/flight-offers"

# Refresh the token this many seconds before Amadeus expires it
TOKEN_EXPIRY_MARGIN_SECONDS = 60


class AmadeusClient:
    def __init__(
        self,
        quota: QuotaCounter,
        api_key: str = AMADEUS_API_KEY,
        api_secret: str = AMADEUS_API_SECRET,
        base_url: str = AMADEUS_BASE_URL,
    ):
        self.quota = quota
        self.api_key = api_key
        self.api_secret = api_secret
        self.base_url = base_url.rstrip("/")
        self._token_cache = TTLCache(0)

    # =================================================================
    # SECTION: AUTH
    # =================================================================

    def access_token(self) -> str:
        token = self._token_cache.get("token")
        if token:
            return token

        if not (self.api_key and self.api_secret):
            raise UpstreamError("Amadeus credentials are not configured")

        self.quota.increment()
        try:
            resp = requests.post(
                self.base_url + TOKEN_PATH,
                data={
                    "grant_type": "client_credentials",
                    "client_id": self.api_key,
                    "client_secret": self.api_secret,
                },
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=30,
            )
        except requests.RequestException as e:
            logger.warning(f"[amadeus] token request failed error={e}")
            raise UpstreamError("Failed to obtain Amadeus token")

        if resp.status_code >= 400:
            logger.warning(f"[amadeus] token status={resp.status_code} body={resp.text[:500]}")
            raise UpstreamError("Failed to obtain Amadeus token")

        data = resp.json()
        token = data.get("access_token")
        if not token:
            raise UpstreamError("Failed to obtain Amadeus token")

        expires_in = int(data.get("expires_in") or 0)
        self._token_cache.set("token", token, ttl_seconds=expires_in - TOKEN_EXPIRY_MARGIN_SECONDS)
        logger.info(f"[amadeus] token refreshed expires_in={expires_in}")
        return token

    # =================================================================
    # SECTION: LOW LEVEL HTTP HELPERS
    # =================================================================

    def _handle(self, method: str, path: str, resp: requests.Response) -> Dict[str, Any]:
        if resp.status_code >= 400:
            safe_body = (resp.text or "").replace("\n", "\\n").replace("\r", "\\r")
            logger.warning(f"[amadeus] {method} {path} status={resp.status_code} body={safe_body[:1200]}")
            raise UpstreamError(f"Failed to search flights: {resp.reason or resp.status_code}")

        logger.info(f"[amadeus] {method} {path} status={resp.status_code}")
        try:
            return resp.json()
        except ValueError:
            raise UpstreamError("Amadeus returned an invalid response")

    def amadeus_get(self, path: str, params: Optional[dict] = None) -> Dict[str, Any]:
        token = self.access_token()
        self.quota.increment()
        try:
            resp = requests.get(
                self.base_url + path,
                headers={"Authorization": f"Bearer {token}"},
                params=params or {},
                timeout=45,
            )
        except requests.RequestException as e:
            logger.warning(f"[amadeus] GET {path} failed error={e}")
            raise UpstreamError(f"Amadeus request failed: {e}")
        return self._handle("GET", path, resp)

    def amadeus_post(self, path: str, payload: dict) -> Dict[str, Any]:
        token = self.access_token()
        self.quota.increment()
        try:
            resp = requests.post(
                self.base_url + path,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                },
                json=payload,
                timeout=45,
            )
        except requests.RequestException as e:
            logger.warning(f"[amadeus] POST {path} failed error={e}")
            raise UpstreamError(f"Amadeus request failed: {e}")
        return self._handle("POST", path, resp)

    # =================================================================
    # SECTION: FLIGHT OFFERS
    # =================================================================

    def search_flight_offers(
        self,
        origin: str,
        destination: str,
        departure_date: date,
        adults: int,
        travel_class: str,
        children: int = 0,
        return_date: Optional[date] = None,
        max_results: Optional[int] = None,
    ) -> Dict[str, Any]:
        params = {
            "originLocationCode": origin,
            "destinationLocationCode": destination,
            "departureDate": departure_date.isoformat(),
            "adults": str(adults),
            "travelClass": travel_class,
        }
        if children and children > 0:
            params["children"] = str(children)
        if return_date is not None:
            params["returnDate"] = return_date.isoformat()
        if max_results:
            params["max"] = str(max_results)

        return self.amadeus_get(FLIGHT_OFFERS_PATH, params=params)

    def search_multi_city(
        self,
        legs: List[Dict[str, Any]],
        adults: int,
        travel_class: str,
        children: int = 0,
        max_results: Optional[int] = None,
    ) -> Dict[str, Any]:
        return self.amadeus_post(
            FLIGHT_OFFERS_PATH,
            build_multi_city_body(legs, adults, travel_class, children, max_results),
        )


def build_multi_city_body(
    legs: List[Dict[str, Any]],
    adults: int,
    travel_class: str,
    children: int = 0,
    max_results: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Amadeus POST body for a multi-city search. Leg and traveler ids are
    1-based strings; the cabin restriction covers every leg.
    """
    origin_destinations = []
    for i, leg in enumerate(legs, start=1):
        dep = leg["departureDate"]
        origin_destinations.append({
            "id": str(i),
            "originLocationCode": leg["origin"],
            "destinationLocationCode": leg["destination"],
            "departureDateTimeRange": {"date": dep.isoformat() if isinstance(dep, date) else str(dep)},
        })

    travelers = []
    for _ in range(adults):
        travelers.append({"id": str(len(travelers) + 1), "travelerType": "ADULT"})
    for _ in range(children or 0):
        travelers.append({"id": str(len(travelers) + 1), "travelerType": "CHILD"})

    search_criteria: Dict[str, Any] = {
        "flightFilters": {
            "cabinRestrictions": [
                {
                    "cabin": travel_class,
                    "coverage": "MOST_SEGMENTS",
                    "originDestinationIds": [od["id"] for od in origin_destinations],
                }
            ]
        }
    }
    if max_results:
        search_criteria["maxFlightOffers"] = max_results

    return {
        "currencyCode": "USD",
        "originDestinations": origin_destinations,
        "travelers": travelers,
        "sources": ["GDS"],
        "searchCriteria": search_criteria,
    }
