"""schemas/analytics.py - Pydantic models for event ingestion, reports and logs."""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


TripType = Literal["one-way", "round-trip", "multi-city"]
ReportRange = Literal["last24h", "prev24h"]
EngagementRange = Literal["24h", "7d", "30d"]
OutputFormat = Literal["json", "csv"]
BreakdownType = Literal["device", "browser", "os", "geo", "travelClass"]
GeoGroup = Literal["region", "country"]


class _Attribution(BaseModel):
    sessionId: Optional[str] = Field(None, max_length=100)
    referrer: Optional[str] = None
    utmSource: Optional[str] = Field(None, max_length=100)
    utmMedium: Optional[str] = Field(None, max_length=100)
    utmCampaign: Optional[str] = Field(None, max_length=100)


class SearchEventCreate(_Attribution):
    model_config = ConfigDict(str_strip_whitespace=True)

    origin: str = Field(..., min_length=1, max_length=10)
    destination: str = Field(..., min_length=1, max_length=10)
    tripType: TripType
    travelClass: Optional[str] = Field(None, max_length=30)
    adults: int = Field(1, ge=1, le=9)
    children: int = Field(0, ge=0, le=9)


class ClickOutEventCreate(_Attribution):
    model_config = ConfigDict(str_strip_whitespace=True)

    origin: str = Field(..., min_length=1, max_length=10)
    destination: str = Field(..., min_length=1, max_length=10)
    tripType: TripType
    partner: Optional[str] = Field(None, max_length=100)
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    deepLink: Optional[str] = None


class IngestResponse(BaseModel):
    ok: bool = True
    id: int


# =====================================================================
# SECTION: LOG FILTERS
# Every filter the log endpoints understand, nothing dynamic.
# =====================================================================

class LogFilters(BaseModel):
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    tripType: Optional[TripType] = None
    os: Optional[str] = None
    browser: Optional[str] = None
    deviceType: Optional[str] = None
    country: Optional[str] = None
    travelClass: Optional[str] = None


class ClickOutLogFilters(BaseModel):
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    origin: Optional[str] = None
    destination: Optional[str] = None
    tripType: Optional[TripType] = None
    partner: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class SearchLogOut(BaseModel):
    id: int
    createdAt: datetime
    origin: str
    destination: str
    tripType: str
    travelClass: Optional[str] = None
    adults: int
    children: int
    browser: Optional[str] = None
    browserVersion: Optional[str] = None
    os: Optional[str] = None
    osVersion: Optional[str] = None
    deviceType: Optional[str] = None
    ipMasked: Optional[str] = None
    country: Optional[str] = None
    region: Optional[str] = None
    sessionId: Optional[str] = None


class ClickOutLogOut(BaseModel):
    id: int
    createdAt: datetime
    origin: str
    destination: str
    tripType: str
    partner: Optional[str] = None
    price: Optional[float] = None
    currency: Optional[str] = None
    ipMasked: Optional[str] = None
    sessionId: Optional[str] = None


class SearchLogsResponse(BaseModel):
    logs: List[SearchLogOut]
    pagination: Pagination


class ClickOutLogsResponse(BaseModel):
    logs: List[ClickOutLogOut]
    pagination: Pagination


class FilterOptions(BaseModel):
    origins: List[str]
    destinations: List[str]
    tripTypes: List[str]
    browsers: List[str]
    oses: List[str]
    deviceTypes: List[str]
    countries: List[str]
    travelClasses: List[str]
