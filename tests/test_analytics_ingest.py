from models import ClickOutEvent, SearchEvent
from services.geo_service import mask_ip

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.6099.109 Safari/537.36"
)


def test_ingest_search_records_device_and_masked_ip(client, db):
    res = client.post(
        "/api/analytics/search",
        json={"origin": "lax", "destination": "jfk", "tripType": "round-trip", "adults": 2},
        headers={
            "User-Agent": CHROME_MAC,
            "X-Forwarded-For": "203.0.113.42, 10.0.0.1",
            "X-Session-Id": "sess-1",
        },
    )

    assert res.status_code == 200
    body = res.json()
    assert body["ok"] is True

    event = db.query(SearchEvent).filter(SearchEvent.id == body["id"]).one()
    assert (event.origin, event.destination) == ("LAX", "JFK")
    assert event.adults == 2
    assert event.children == 0
    assert event.browser == "Chrome"
    assert event.os == "Mac OS X"
    assert event.device_type == "desktop"
    assert event.ip_masked == "203.0.0.0"
    assert event.session_id == "sess-1"
    # geolocation is not configured in tests
    assert event.country is None


def test_body_session_id_wins_over_header(client, db):
    res = client.post(
        "/api/analytics/search",
        json={"origin": "LAX", "destination": "JFK", "tripType": "one-way", "sessionId": "body"},
        headers={"X-Session-Id": "header"},
    )
    event = db.query(SearchEvent).filter(SearchEvent.id == res.json()["id"]).one()
    assert event.session_id == "body"


def test_ingest_search_validates_passengers(client):
    res = client.post(
        "/api/analytics/search",
        json={"origin": "LAX", "destination": "JFK", "tripType": "one-way", "adults": 0},
    )
    assert res.status_code == 400
    err = res.json()["validationError"]
    assert err["type"] == "form"
    assert err["path"] == "adults"


def test_ingest_search_rejects_unknown_trip_type(client):
    res = client.post(
        "/api/analytics/search",
        json={"origin": "LAX", "destination": "JFK", "tripType": "teleport"},
    )
    assert res.status_code == 400


def test_ingest_clickout(client, db):
    res = client.post(
        "/api/analytics/clickout",
        json={
            "origin": "LAX",
            "destination": "JFK",
            "tripType": "round-trip",
            "partner": "Skyscanner",
            "price": 249.99,
            "currency": "usd",
            "utmSource": "newsletter",
        },
        headers={"X-Forwarded-For": "::ffff:198.51.100.7"},
    )

    assert res.status_code == 200
    event = db.query(ClickOutEvent).filter(ClickOutEvent.id == res.json()["id"]).one()
    assert event.partner == "Skyscanner"
    assert event.price == 249.99
    assert event.currency == "USD"
    assert event.utm_source == "newsletter"
    assert event.ip_masked == "198.51.0.0"


def test_mask_ip():
    assert mask_ip("192.168.10.20") == "192.168.0.0"
    assert mask_ip("::ffff:10.1.2.3") == "10.1.0.0"
    assert mask_ip("2001:db8:85a3::8a2e:370:7334") == "2001:db8::"
    assert mask_ip(None) is None
    assert mask_ip("garbage") is None
