"""
dependencies.py - FastAPI dependencies for the app-owned singletons.

The connection registry, geo/currency caches, Amadeus client and health
monitor are created once in main.lifespan and hung off app.state; routes
receive them through these functions instead of importing globals.
"""

from datetime import datetime

from starlette.requests import HTTPConnection

from providers.amadeus import AmadeusClient
from services.geo_service import GeoCurrencyService
from services.health_service import HealthMonitor
from services.notification_registry import ConnectionRegistry


def get_registry(conn: HTTPConnection) -> ConnectionRegistry:
    return conn.app.state.connections


def get_geo_service(conn: HTTPConnection) -> GeoCurrencyService:
    return conn.app.state.geo


def get_amadeus(conn: HTTPConnection) -> AmadeusClient:
    return conn.app.state.amadeus


def get_health_monitor(conn: HTTPConnection) -> HealthMonitor:
    return conn.app.state.health


def get_now() -> datetime:
    """Reference instant for report windows; overridden in tests."""
    return datetime.utcnow()
