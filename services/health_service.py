"""
services/health_service.py

Component health for the admin monitoring dashboard.

- Database: SELECT 1 round trip.
- Amadeus: unauthenticated reachability GET, 5 second timeout. Any HTTP
  response counts as reachable; only network errors and timeouts are "down".

Results are cached on the monitor and re-probed when older than
HEALTH_POLL_SECONDS (or on an explicit refresh). Latency under
HEALTHY_THRESHOLD_MS is "healthy", anything slower "degraded".

QuotaCounter tracks outbound Amadeus calls per UTC day, in memory only.
"""

import logging
import time
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

import requests
from sqlalchemy import text

from config import (
    AMADEUS_HEALTH_URL,
    HEALTH_POLL_SECONDS,
    HEALTH_PROBE_TIMEOUT_SECONDS,
    HEALTHY_THRESHOLD_MS,
    amadeus_daily_quota,
)

logger = logging.getLogger(__name__)


# =====================================================================
# SECTION: QUOTA
# =====================================================================

class QuotaCounter:
    def __init__(self, daily_limit: Optional[int] = None, today: Callable[[], str] = None):
        # None: read AMADEUS_DAILY_QUOTA from admin config on every check
        self._fixed_limit = daily_limit
        self._today = today or (lambda: datetime.utcnow().strftime("%Y-%m-%d"))
        self.daily = 0
        self.last_reset = self._today()

    @property
    def daily_limit(self) -> int:
        if self._fixed_limit is not None:
            return self._fixed_limit
        return amadeus_daily_quota()

    def _roll(self) -> None:
        today = self._today()
        if today != self.last_reset:
            self.daily = 0
            self.last_reset = today

    def increment(self) -> int:
        self._roll()
        self.daily += 1
        percent = self._percent(self.daily_limit)
        if percent >= 80:
            logger.warning(f"[quota] amadeus daily usage percent={round(percent)} calls={self.daily}")
        return self.daily

    def _percent(self, limit: int) -> float:
        if limit <= 0:
            return 0.0
        return self.daily / limit * 100

    def snapshot(self) -> Dict[str, Any]:
        self._roll()
        limit = self.daily_limit
        percent = self._percent(limit)
        alert = None
        if percent >= 100:
            alert = {"level": "critical", "message": "API quota limit reached (100%)"}
        elif percent >= 80:
            alert = {"level": "warning", "message": "API quota at 80% or above"}
        return {
            "daily": self.daily,
            "limit": limit,
            "percent": round(percent),
            "alert": alert,
            "lastReset": self.last_reset,
        }


# =====================================================================
# SECTION: PROBES
# =====================================================================

def _status_for(latency_ms: int) -> str:
    return "healthy" if latency_ms < HEALTHY_THRESHOLD_MS else "degraded"


def _empty_check() -> Dict[str, Any]:
    return {"status": "unknown", "latencyMs": None, "lastChecked": None, "lastError": None}


class HealthMonitor:
    def __init__(
        self,
        session_factory,
        probe_url: str = AMADEUS_HEALTH_URL,
        max_age_seconds: float = HEALTH_POLL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.session_factory = session_factory
        self.probe_url = probe_url
        self.max_age_seconds = max_age_seconds
        self._clock = clock
        self.started_at = clock()
        self.database = _empty_check()
        self.amadeus = _empty_check()
        self._probed_at: Optional[float] = None

    def probe_database(self) -> Dict[str, Any]:
        start = time.perf_counter()
        db = self.session_factory()
        try:
            db.execute(text("SELECT 1"))
            ms = round((time.perf_counter() - start) * 1000)
            self.database = {
                "status": _status_for(ms),
                "latencyMs": ms,
                "lastChecked": datetime.utcnow().isoformat(),
                "lastError": None,
            }
        except Exception as e:
            logger.warning(f"[health] database probe failed error={e}")
            self.database = {
                **self.database,
                "status": "down",
                "lastChecked": datetime.utcnow().isoformat(),
                "lastError": str(e),
            }
        finally:
            db.close()
        return self.database

    def probe_amadeus(self) -> Dict[str, Any]:
        start = time.perf_counter()
        try:
            requests.get(self.probe_url, timeout=HEALTH_PROBE_TIMEOUT_SECONDS)
            ms = round((time.perf_counter() - start) * 1000)
            self.amadeus = {
                "status": _status_for(ms),
                "latencyMs": ms,
                "lastChecked": datetime.utcnow().isoformat(),
                "lastError": None,
            }
        except requests.Timeout:
            logger.warning("[health] amadeus probe timed out")
            self.amadeus = {
                **self.amadeus,
                "status": "down",
                "lastChecked": datetime.utcnow().isoformat(),
                "lastError": "timeout",
            }
        except requests.RequestException as e:
            logger.warning(f"[health] amadeus probe failed error={e}")
            self.amadeus = {
                **self.amadeus,
                "status": "down",
                "lastChecked": datetime.utcnow().isoformat(),
                "lastError": str(e),
            }
        return self.amadeus

    def record_amadeus_status(self, status: str, error: Optional[str] = None) -> Dict[str, Any]:
        """Status reported from outside the probe, e.g. after a live flight search."""
        self.amadeus = {
            **self.amadeus,
            "status": status,
            "lastChecked": datetime.utcnow().isoformat(),
            "lastError": error,
        }
        if status == "down":
            logger.error(f"[health] amadeus reported down error={error}")
        return self.amadeus

    def active_alerts(self, quota: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Quota alert from a QuotaCounter snapshot plus any Amadeus outage or slowdown."""
        now = datetime.utcnow().isoformat()
        alerts = []
        if quota.get("alert"):
            alerts.append({"type": "quota", **quota["alert"], "timestamp": now})

        status = self.amadeus["status"]
        if status == "down":
            alerts.append({
                "type": "api_outage",
                "level": "critical",
                "message": "Amadeus API is down",
                "error": self.amadeus["lastError"],
                "timestamp": self.amadeus["lastChecked"],
            })
        elif status == "degraded":
            alerts.append({
                "type": "api_degraded",
                "level": "warning",
                "message": "Amadeus API performance degraded",
                "timestamp": self.amadeus["lastChecked"],
            })
        return alerts

    def refresh(self, force: bool = False) -> None:
        now = self._clock()
        if not force and self._probed_at is not None and now - self._probed_at < self.max_age_seconds:
            return
        self.probe_database()
        self.probe_amadeus()
        self._probed_at = now
        logger.info(f"[health] probed database={self.database['status']} amadeus={self.amadeus['status']}")

    def uptime_seconds(self) -> int:
        return int(self._clock() - self.started_at)

    def overall_status(self) -> str:
        statuses = (self.database["status"], self.amadeus["status"])
        if "down" in statuses:
            return "red"
        if "degraded" in statuses or "unknown" in statuses:
            return "yellow"
        return "green"

    def report(self) -> Dict[str, Any]:
        self.refresh()
        return {
            "status": self.overall_status(),
            "checks": {
                "database": self.database["status"],
                "amadeus": self.amadeus["status"],
                "uptime": self.uptime_seconds(),
                "latencies": {
                    "databaseMs": self.database["latencyMs"],
                    "amadeusMs": self.amadeus["latencyMs"],
                },
                "lastChecked": {
                    "database": self.database["lastChecked"],
                    "amadeus": self.amadeus["lastChecked"],
                },
                "lastError": {
                    "database": self.database["lastError"],
                    "amadeus": self.amadeus["lastError"],
                },
            },
            "timestamp": datetime.utcnow().isoformat(),
        }
