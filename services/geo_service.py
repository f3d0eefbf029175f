"""
services/geo_service.py

IP geolocation (ipapi.com) and exchange rates (openexchangerates.org),
each behind a TTL cache so repeat lookups within the cache window do not
hit the upstream API. Also the IP helpers used by analytics ingestion.

Upstream failures surface as UpstreamError (502); nothing is retried.
"""

import logging
from typing import Any, Dict, Optional, Tuple

import requests
from fastapi import Request

from config import (
    GEO_LOCATION_API_BASE,
    GEO_LOCATION_API_KEY,
    OPEN_EXCHANGE_RATES_APP_ID,
    OPEN_EXCHANGE_RATES_BASE,
    fx_cache_ttl_seconds,
    geo_cache_ttl_seconds,
)
from errors import AppValidationError, UpstreamError
from services.ttl_cache import TTLCache

logger = logging.getLogger(__name__)


# =====================================================================
# SECTION: IP HELPERS
# =====================================================================

def client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    if request.client:
        return request.client.host
    return None


def mask_ip(ip: Optional[str]) -> Optional[str]:
    """
    Keep only the network part: a.b.0.0 for IPv4, first two groups + '::'
    for IPv6. IPv4-mapped IPv6 addresses are treated as IPv4.
    """
    if not ip:
        return None
    cleaned = ip.strip().replace("::ffff:", "")
    if "." in cleaned:
        parts = cleaned.split(".")
        if len(parts) == 4:
            return f"{parts[0]}.{parts[1]}.0.0"
        return None
    if ":" in cleaned:
        segs = cleaned.split(":")
        return ":".join(segs[:2]) + "::"
    return None


# =====================================================================
# SECTION: SERVICE
# =====================================================================

class GeoCurrencyService:
    def __init__(
        self,
        geo_ttl_seconds: Optional[float] = None,
        fx_ttl_seconds: Optional[float] = None,
        geo_api_key: str = GEO_LOCATION_API_KEY,
        fx_app_id: str = OPEN_EXCHANGE_RATES_APP_ID,
    ):
        self.geo_api_key = geo_api_key
        self.fx_app_id = fx_app_id
        # None: read the TTL from admin config each time an entry is stored
        self._geo_ttl = geo_ttl_seconds
        self._fx_ttl = fx_ttl_seconds
        self.geo_cache = TTLCache(0)
        self.fx_cache = TTLCache(0)

    def geo_ttl(self) -> float:
        return geo_cache_ttl_seconds() if self._geo_ttl is None else self._geo_ttl

    def fx_ttl(self) -> float:
        return fx_cache_ttl_seconds() if self._fx_ttl is None else self._fx_ttl

    # -----------------------------------------------------------------
    # Geolocation
    # -----------------------------------------------------------------

    def lookup_ip(self, ip: str) -> Dict[str, Any]:
        if not ip:
            raise AppValidationError("query", "Could not determine client IP")

        cached = self.geo_cache.get(ip)
        if cached is not None:
            return cached

        if not self.geo_api_key:
            raise UpstreamError("Geolocation API key not configured")

        url = f"{GEO_LOCATION_API_BASE}/{ip}"
        try:
            resp = requests.get(url, params={"access_key": self.geo_api_key}, timeout=30)
        except requests.RequestException as e:
            logger.warning(f"[geo] lookup failed ip={mask_ip(ip)} error={e}")
            raise UpstreamError("Geolocation lookup failed")

        if resp.status_code >= 400:
            logger.warning(f"[geo] lookup http error ip={mask_ip(ip)} status={resp.status_code}")
            raise UpstreamError("Geolocation lookup failed")

        data = resp.json()
        # ipapi reports API errors with a 200 and success=false
        if isinstance(data, dict) and data.get("success") is False:
            logger.warning(f"[geo] lookup rejected ip={mask_ip(ip)} error={data.get('error')}")
            raise UpstreamError("Geolocation lookup failed")

        self.geo_cache.set(ip, data, ttl_seconds=self.geo_ttl())
        return data

    def country_for_ip(self, ip: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
        """(country_code, region_name) for analytics, (None, None) when unavailable."""
        if not ip or not self.geo_api_key:
            return None, None
        try:
            data = self.lookup_ip(ip)
        except (UpstreamError, AppValidationError, ValueError) as e:
            logger.info(f"[geo] country lookup skipped ip={mask_ip(ip)} error={e}")
            return None, None
        return data.get("country_code"), data.get("region_name")

    # -----------------------------------------------------------------
    # Exchange rates
    # -----------------------------------------------------------------

    def latest_rates(self, base: str = "USD") -> Dict[str, Any]:
        base = (base or "USD").strip().upper()

        cached = self.fx_cache.get(base)
        if cached is not None:
            return cached

        if not self.fx_app_id:
            raise UpstreamError("Exchange rate API key not configured")

        url = f"{OPEN_EXCHANGE_RATES_BASE}/latest.json"
        try:
            resp = requests.get(url, params={"app_id": self.fx_app_id, "base": base}, timeout=30)
        except requests.RequestException as e:
            logger.warning(f"[fx] rates fetch failed base={base} error={e}")
            raise UpstreamError("Exchange rate lookup failed")

        if resp.status_code >= 400:
            logger.warning(f"[fx] rates http error base={base} status={resp.status_code} body={resp.text[:200]}")
            raise UpstreamError("Exchange rate lookup failed")

        data = resp.json()
        result = {
            "base": data.get("base", base),
            "timestamp": data.get("timestamp"),
            "rates": data.get("rates") or {},
        }
        self.fx_cache.set(base, result, ttl_seconds=self.fx_ttl())
        return result

    def convert(self, amount: float, from_currency: str, to_currency: str) -> Dict[str, Any]:
        src = (from_currency or "").strip().upper()
        dst = (to_currency or "").strip().upper()

        # Cross rates through USD, the only base on the free plan
        rates = self.latest_rates("USD")["rates"]
        rates = {**rates, "USD": rates.get("USD", 1.0)}

        for code in (src, dst):
            if code not in rates:
                raise AppValidationError("query", f"Unsupported currency: {code or '(empty)'}")

        rate = rates[dst] / rates[src]
        return {
            "amount": amount,
            "from": src,
            "to": dst,
            "rate": rate,
            "result": round(amount * rate, 2),
        }
