from datetime import date, timedelta

import pytest

from models import Airport


class FakeAmadeus:
    def __init__(self):
        self.calls = []

    def search_flight_offers(self, **kwargs):
        self.calls.append(("get", kwargs))
        return {"data": [], "meta": {"count": 0}}

    def search_multi_city(self, legs, **kwargs):
        self.calls.append(("post", legs, kwargs))
        return {"data": []}


@pytest.fixture
def fake_amadeus(client):
    fake = FakeAmadeus()
    client.app.state.amadeus = fake
    return fake


def _future(days):
    return (date.today() + timedelta(days=days)).isoformat()


def test_flight_search_normalises_codes(client, fake_amadeus):
    res = client.get(
        "/api/flight-offers",
        params={"originLocationCode": "lax", "destinationLocationCode": "jfk", "departureDate": _future(10)},
    )

    assert res.status_code == 200
    _, kwargs = fake_amadeus.calls[0]
    assert kwargs["origin"] == "LAX"
    assert kwargs["destination"] == "JFK"
    assert kwargs["adults"] == 1
    assert kwargs["travel_class"] == "ECONOMY"


@pytest.mark.parametrize(
    "params",
    [
        {"originLocationCode": "LA", "destinationLocationCode": "JFK", "departureDate": _future(10)},
        {"originLocationCode": "LAX", "destinationLocationCode": "JFK", "departureDate": "2000-01-01"},
        {"originLocationCode": "LAX", "destinationLocationCode": "JFK", "departureDate": _future(10),
         "returnDate": _future(5)},
        {"originLocationCode": "LAX", "destinationLocationCode": "JFK", "departureDate": _future(10),
         "adults": 0},
    ],
)
def test_flight_search_validation(client, fake_amadeus, params):
    res = client.get("/api/flight-offers", params=params)
    assert res.status_code == 400
    assert res.json()["validationError"]["type"] == "query"
    assert fake_amadeus.calls == []


def test_multi_city_search(client, fake_amadeus):
    res = client.post(
        "/api/flight-offers",
        json={
            "originDestinations": [
                {"origin": "lax", "destination": "jfk", "departureDate": _future(10)},
                {"origin": "jfk", "destination": "lhr", "departureDate": _future(14)},
            ],
            "adults": 2,
            "travelClass": "BUSINESS",
        },
    )

    assert res.status_code == 200
    _, legs, kwargs = fake_amadeus.calls[0]
    assert [leg["origin"] for leg in legs] == ["LAX", "JFK"]
    assert kwargs["adults"] == 2


def test_multi_city_rejects_unordered_legs(client, fake_amadeus):
    res = client.post(
        "/api/flight-offers",
        json={
            "originDestinations": [
                {"origin": "LAX", "destination": "JFK", "departureDate": _future(14)},
                {"origin": "JFK", "destination": "LHR", "departureDate": _future(10)},
            ],
        },
    )
    assert res.status_code == 400
    assert res.json()["validationError"]["type"] == "form"


def test_flight_search_without_credentials_is_bad_gateway(client):
    res = client.get(
        "/api/flight-offers",
        params={"originLocationCode": "LAX", "destinationLocationCode": "JFK", "departureDate": _future(10)},
    )
    assert res.status_code == 502


# =====================================================================
# SECTION: LOCATIONS
# =====================================================================

@pytest.fixture
def airports(db):
    db.add_all([
        Airport(iata_code="JFK", name="John F Kennedy Intl", city="New York", country="United States",
                latitude=40.6413, longitude=-73.7781),
        Airport(iata_code="LGA", name="LaGuardia", city="New York", country="United States",
                latitude=40.7769, longitude=-73.8740),
        Airport(iata_code="LHR", name="Heathrow", city="London", country="United Kingdom",
                latitude=51.4700, longitude=-0.4543),
    ])
    db.commit()


def test_locations_keyword(client, airports):
    body = client.get("/api/locations?keyword=new york").json()
    assert body["meta"] == {"total": 2, "page": 1, "limit": 10}
    assert [a["iataCode"] for a in body["data"]] == ["JFK", "LGA"]

    body = client.get("/api/locations?keyword=lhr").json()
    assert body["data"][0]["airport"] == "Heathrow"


def test_locations_pagination(client, airports):
    body = client.get("/api/locations?limit=2&page=2").json()
    assert body["meta"]["total"] == 3
    assert [a["iataCode"] for a in body["data"]] == ["LHR"]


def test_nearest_airport(client, airports):
    body = client.get("/api/airports/nearest?lat=51.5&lon=-0.12").json()
    assert body["iataCode"] == "LHR"
    assert 20 < body["distanceKm"] < 30


def test_nearest_airport_empty(client):
    res = client.get("/api/airports/nearest?lat=0&lon=0")
    assert res.status_code == 404


def test_airport_search_by_name_or_code(client, airports):
    body = client.get("/api/airports/search?q=guard").json()
    assert body == {"airports": [{
        "iataCode": "LGA",
        "name": "LaGuardia",
        "city": "New York",
        "country": "United States",
        "countryCode": None,
    }]}

    codes = [a["iataCode"] for a in client.get("/api/airports/search?q=jf").json()["airports"]]
    assert codes == ["JFK"]


@pytest.mark.parametrize("q", ["", "j", " l "])
def test_airport_search_needs_two_characters(client, airports, q):
    assert client.get("/api/airports/search", params={"q": q}).json() == {"airports": []}
