# =====================================================================
# SECTION START: IMPORTS
# =====================================================================

import logging
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

import models  # noqa: F401
from config import API_PREFIX, CORS_ORIGINS, LOG_LEVEL
from db import Base, SessionLocal, engine
from errors import register_error_handlers
from providers.amadeus import AmadeusClient
from services.geo_service import GeoCurrencyService
from services.health_service import HealthMonitor, QuotaCounter
from services.notification_registry import ConnectionRegistry

from routers import (
    admin,
    analytics,
    cms,
    contact,
    customers,
    email,
    flight_offers,
    geo_currency,
    locations,
    logs,
    monitoring,
    notifications,
    realtime,
    reports,
    roles,
    users,
)

# =====================================================================
# SECTION END: IMPORTS
# =====================================================================


logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)
logger = logging.getLogger(__name__)


# =====================================================================
# SECTION START: FastAPI APP AND CORS
# =====================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)

    app.state.connections = ConnectionRegistry()
    # cache TTLs and the daily quota are read from admin config at use time
    app.state.geo = GeoCurrencyService()
    app.state.amadeus = AmadeusClient(quota=QuotaCounter())
    app.state.health = HealthMonitor(SessionLocal)

    logger.info(f"[startup] tables ready prefix={API_PREFIX} cors={CORS_ORIGINS}")
    yield
    logger.info(f"[shutdown] open connections={app.state.connections.total_connection_count()}")


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["Content-Type", "Authorization", "X-Session-Id", "X-User-Id"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("x-request-id") or str(uuid4())
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


register_error_handlers(app)

# =====================================================================
# SECTION END: FastAPI APP AND CORS
# =====================================================================


# =====================================================================
# SECTION START: ROUTERS
# =====================================================================

app.include_router(admin.router, prefix=API_PREFIX)
app.include_router(realtime.router, prefix=API_PREFIX)
app.include_router(notifications.router, prefix=API_PREFIX)
app.include_router(analytics.router, prefix=API_PREFIX)
app.include_router(reports.router, prefix=API_PREFIX)
app.include_router(logs.router, prefix=API_PREFIX)
app.include_router(geo_currency.router, prefix=API_PREFIX)
app.include_router(flight_offers.router, prefix=API_PREFIX)
app.include_router(locations.router, prefix=API_PREFIX)
app.include_router(cms.public_router, prefix=API_PREFIX)
app.include_router(cms.admin_router, prefix=API_PREFIX)
app.include_router(users.router, prefix=API_PREFIX)
app.include_router(users.admin_router, prefix=API_PREFIX)
app.include_router(customers.router, prefix=API_PREFIX)
app.include_router(roles.router, prefix=API_PREFIX)
app.include_router(contact.router, prefix=API_PREFIX)
app.include_router(email.router, prefix=API_PREFIX)
app.include_router(monitoring.router, prefix=API_PREFIX)

# =====================================================================
# SECTION END: ROUTERS
# =====================================================================
