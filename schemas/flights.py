"""schemas/flights.py - Query and body models for flight offer search."""

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


TravelClass = Literal["ECONOMY", "PREMIUM_ECONOMY", "BUSINESS", "FIRST"]


def _iata(value: str) -> str:
    value = (value or "").strip().upper()
    if len(value) != 3 or not value.isalpha():
        raise ValueError("must be a 3-letter IATA code")
    return value


class FlightOfferQuery(BaseModel):
    originLocationCode: str
    destinationLocationCode: str
    departureDate: date
    returnDate: Optional[date] = None
    adults: int = Field(1, ge=1, le=9)
    children: int = Field(0, ge=0, le=9)
    travelClass: TravelClass = "ECONOMY"
    max: Optional[int] = Field(None, ge=1, le=250)

    @field_validator("originLocationCode", "destinationLocationCode")
    @classmethod
    def _check_iata(cls, v: str) -> str:
        return _iata(v)

    @field_validator("departureDate")
    @classmethod
    def _not_in_past(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("departureDate cannot be in the past")
        return v

    @model_validator(mode="after")
    def _return_after_departure(self):
        if self.returnDate is not None and self.returnDate < self.departureDate:
            raise ValueError("returnDate must be on or after departureDate")
        return self


class MultiCityLeg(BaseModel):
    origin: str
    destination: str
    departureDate: date

    @field_validator("origin", "destination")
    @classmethod
    def _check_iata(cls, v: str) -> str:
        return _iata(v)

    @field_validator("departureDate")
    @classmethod
    def _not_in_past(cls, v: date) -> date:
        if v < date.today():
            raise ValueError("departureDate cannot be in the past")
        return v


class MultiCitySearchRequest(BaseModel):
    originDestinations: List[MultiCityLeg] = Field(..., min_length=1, max_length=6)
    adults: int = Field(1, ge=1, le=9)
    children: int = Field(0, ge=0, le=9)
    travelClass: TravelClass = "ECONOMY"
    max: Optional[int] = Field(None, ge=1, le=250)

    @model_validator(mode="after")
    def _legs_in_order(self):
        dates = [leg.departureDate for leg in self.originDestinations]
        if dates != sorted(dates):
            raise ValueError("legs must be in chronological order")
        return self
