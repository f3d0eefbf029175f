"""
config.py

Single source of truth for:
- Environment variable reads
- Admin config DB helpers
- Report and cache defaults

Nothing here should contain route handlers or business logic beyond config resolution.
"""

import os
from typing import Optional

from sqlalchemy.orm import Session


# =====================================================================
# SECTION: ENV VARS
# =====================================================================

APP_ENV = os.getenv("APP_ENV", "development").lower().strip()
IS_PRODUCTION = APP_ENV == "production"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

API_PREFIX = "/api"

APP_CLIENT_URL = os.getenv("APP_CLIENT_URL", "")
CORS_ORIGINS = [o for o in (APP_CLIENT_URL, "http://localhost:5173") if o]

# Amadeus flight search
AMADEUS_API_KEY = os.getenv("AMADEUS_API_KEY", "")
AMADEUS_API_SECRET = os.getenv("AMADEUS_API_SECRET", "")
AMADEUS_BASE_URL = os.getenv("AMADEUS_BASE_URL", "https://test.api.amadeus.com")
AMADEUS_HEALTH_URL = os.getenv("AMADEUS_HEALTH_URL", "https://api.amadeus.com/")

# Geolocation / currency
GEO_LOCATION_API_KEY = os.getenv("GEO_LOCATION_API_KEY", "")
GEO_LOCATION_API_BASE = "https://api.ipapi.com/api"
OPEN_EXCHANGE_RATES_APP_ID = os.getenv("OPEN_EXCHANGE_RATES_APP_ID", "")
OPEN_EXCHANGE_RATES_BASE = "https://openexchangerates.org/api"

# SMTP
SMTP_HOST = os.getenv("SMTP_HOST", "mail-eu.smtp2go.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "2525"))
SMTP_USERNAME = os.getenv("SMTP_USERNAME")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
SMTP_FROM = os.getenv("SMTP_FROM", "")
CONTACT_EMAIL = os.getenv("CONTACT_EMAIL", "")
FALLBACK_CONTACT_EMAIL = "noreply@localhost"

# Real-time channel
WS_HEARTBEAT_SECONDS = int(os.getenv("WS_HEARTBEAT_SECONDS", "30"))

# Reporting (hard limits enforced in code, not overridable by admin config)
BREAKDOWN_TOP_N = 8
METRICS_TOP_ROUTES = 5
TOP_ROUTES_DEFAULT_LIMIT = 10
TOP_ROUTES_MAX_LIMIT = 100
EXPORT_MAX_ROWS_HARD = 10_000

# Monitoring
HEALTH_POLL_SECONDS = 120
HEALTHY_THRESHOLD_MS = 500
HEALTH_PROBE_TIMEOUT_SECONDS = 5


# =====================================================================
# SECTION: ADMIN CONFIG DB HELPERS
# Read runtime configuration values stored in admin_config table.
# =====================================================================

def _get_config_row(db: Session, key: str):
    from models import AdminConfig
    return db.query(AdminConfig).filter(AdminConfig.key == key).first()


def get_config_str(key: str, default_value: Optional[str] = None) -> Optional[str]:
    """Read a config value from admin_config as string."""
    from db import SessionLocal
    db = SessionLocal()
    try:
        row = _get_config_row(db, key)
        if not row or row.value is None:
            return default_value
        return str(row.value)
    finally:
        db.close()


def get_config_int(key: str, default_value: int) -> int:
    """Read a config value from admin_config and cast to int."""
    raw = get_config_str(key, None)
    if raw is None:
        return default_value
    try:
        return int(raw)
    except ValueError:
        return default_value


# =====================================================================
# SECTION: EFFECTIVE LIMITS
# =====================================================================

def export_max_rows() -> int:
    configured = get_config_int("EXPORT_MAX_ROWS", EXPORT_MAX_ROWS_HARD)
    return max(1, min(configured, EXPORT_MAX_ROWS_HARD))


def geo_cache_ttl_seconds() -> int:
    return max(0, get_config_int("GEO_CACHE_TTL_SECONDS", 3600))


def fx_cache_ttl_seconds() -> int:
    return max(0, get_config_int("FX_CACHE_TTL_SECONDS", 3600))


def amadeus_daily_quota() -> int:
    return max(0, get_config_int("AMADEUS_DAILY_QUOTA", 1000))
