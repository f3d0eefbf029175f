import csv
import io
from datetime import timedelta

import pytest

from conftest import NOW, add_clickout, add_search, auth


def _seed_lax_jfk(db):
    # 10 searches and 3 click-outs within the last 24h
    for i in range(10):
        add_search(db, NOW - timedelta(hours=1, minutes=i), session_id=f"s{i % 4}", country="US")
    for price in (200.0, 250.0, 300.0):
        add_clickout(db, NOW - timedelta(minutes=30), price=price, currency="USD")
    # 3 searches in the previous 24h window
    for i in range(3):
        add_search(db, NOW - timedelta(hours=30, minutes=i), origin="SFO", destination="SEA")
    db.commit()


def test_reports_require_authentication(client):
    res = client.get("/api/admin/reports/metrics")
    assert res.status_code == 401
    assert res.json() == {"message": "Unauthorized"}


def test_customers_cannot_view_reports(client, customer_id):
    res = client.get("/api/admin/reports/metrics", headers=auth(customer_id))
    assert res.status_code == 403


def test_top_routes_lax_jfk(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    res = client.get("/api/admin/reports/top-routes", headers=auth(admin_id))

    assert res.status_code == 200
    assert res.json() == [{
        "origin": "LAX",
        "destination": "JFK",
        "searches": 10,
        "clickouts": 3,
        "conversion": 30.0,
        "avgPrice": 250.0,
    }]


def test_top_routes_prev24h(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    res = client.get("/api/admin/reports/top-routes?range=prev24h", headers=auth(admin_id))

    rows = res.json()
    assert [(r["origin"], r["destination"], r["searches"]) for r in rows] == [("SFO", "SEA", 3)]
    assert rows[0]["conversion"] == 0


def test_top_routes_csv_matches_json(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    json_rows = client.get("/api/admin/reports/top-routes", headers=auth(admin_id)).json()
    res = client.get("/api/admin/reports/top-routes?format=csv", headers=auth(admin_id))

    assert res.status_code == 200
    assert res.headers["content-type"] == "text/csv; charset=utf-8"
    assert res.headers["content-disposition"] == "attachment; filename=top-routes-last24h.csv"

    parsed = list(csv.DictReader(io.StringIO(res.text)))
    assert len(parsed) == len(json_rows)
    row = parsed[0]
    assert row["origin"] == "LAX"
    assert row["destination"] == "JFK"
    assert int(row["searches"]) == json_rows[0]["searches"]
    assert int(row["clickouts"]) == json_rows[0]["clickouts"]
    assert float(row["conversion"]) == json_rows[0]["conversion"]
    assert float(row["avgPrice"]) == json_rows[0]["avgPrice"]


def test_csv_requires_export_permission(client, db, moderator_id, fixed_now):
    _seed_lax_jfk(db)

    assert client.get("/api/admin/reports/top-routes", headers=auth(moderator_id)).status_code == 200
    res = client.get("/api/admin/reports/top-routes?format=csv", headers=auth(moderator_id))
    assert res.status_code == 403


def test_empty_csv_has_empty_body(client, admin_id, fixed_now):
    res = client.get("/api/admin/reports/top-routes?format=csv", headers=auth(admin_id))
    assert res.status_code == 200
    assert res.text == ""


def test_metrics(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    body = client.get("/api/admin/reports/metrics", headers=auth(admin_id)).json()

    assert body["last24h"]["totalSearches"] == 10
    assert body["last24h"]["totalClickOuts"] == 3
    assert body["last24h"]["clickOutRate"] == 0.3
    assert body["last24h"]["topRoutes"] == [{"origin": "LAX", "destination": "JFK", "count": 10}]
    assert body["prev24h"] == {"totalSearches": 3, "totalClickOuts": 0, "clickOutRate": 0}


def test_metrics_csv_matches_json(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    report = client.get("/api/admin/reports/metrics", headers=auth(admin_id)).json()
    res = client.get("/api/admin/reports/metrics?format=csv", headers=auth(admin_id))

    assert res.status_code == 200
    assert res.headers["content-disposition"] == "attachment; filename=metrics.csv"
    parsed = list(csv.DictReader(io.StringIO(res.text)))

    totals = {r["window"]: r for r in parsed if r["totalSearches"]}
    for window in ("last24h", "prev24h"):
        assert int(totals[window]["totalSearches"]) == report[window]["totalSearches"]
        assert int(totals[window]["totalClickOuts"]) == report[window]["totalClickOuts"]
        assert float(totals[window]["clickOutRate"]) == report[window]["clickOutRate"]

    routes = [
        {"origin": r["origin"], "destination": r["destination"], "count": int(r["count"])}
        for r in parsed if r["origin"]
    ]
    assert routes == report["last24h"]["topRoutes"]
    assert all(r["window"] == "last24h" for r in parsed if r["origin"])


def test_metrics_with_no_events_is_all_zero(client, admin_id, fixed_now):
    body = client.get("/api/admin/reports/metrics", headers=auth(admin_id)).json()
    assert body["last24h"]["clickOutRate"] == 0
    assert body["last24h"]["topRoutes"] == []


def test_timeseries(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    series = client.get("/api/admin/reports/metrics/timeseries", headers=auth(admin_id)).json()["series"]

    assert len(series) == 24
    assert sum(b["searches"] for b in series) == 10
    assert sum(b["clickouts"] for b in series) == 3


def test_breakdown_excludes_nulls(client, db, admin_id, fixed_now):
    add_search(db, NOW - timedelta(hours=2), device_type="mobile")
    add_search(db, NOW - timedelta(hours=2), device_type="mobile")
    add_search(db, NOW - timedelta(hours=2), device_type="desktop")
    add_search(db, NOW - timedelta(hours=2), device_type=None)
    db.commit()

    res = client.get("/api/admin/reports/metrics/breakdown?type=device", headers=auth(admin_id))

    assert res.json() == {"breakdown": [{"key": "mobile", "count": 2}, {"key": "desktop", "count": 1}]}


def test_breakdown_rejects_unknown_type(client, admin_id):
    res = client.get("/api/admin/reports/metrics/breakdown?type=planet", headers=auth(admin_id))
    assert res.status_code == 400
    assert res.json()["validationError"]["type"] == "query"


def test_clickout_rate(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)
    body = client.get("/api/admin/reports/clickout-rate", headers=auth(admin_id)).json()
    assert body == {"searches": 10, "clicks": 3, "rate": 0.3}


def test_trending_routes(client, db, admin_id, fixed_now):
    for _ in range(4):
        add_search(db, NOW - timedelta(days=1))
    for _ in range(2):
        add_search(db, NOW - timedelta(days=8))
    db.commit()

    rows = client.get("/api/admin/reports/routes/trending", headers=auth(admin_id)).json()
    assert rows == [{"route": "LAX → JFK", "growth": 100.0, "searches": 4}]


def test_engagement_summary(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    body = client.get("/api/admin/reports/engagement/summary?range=24h", headers=auth(admin_id)).json()

    assert body["current"]["searches"] == 10
    assert body["current"]["sessions"] == 4
    assert body["prev"]["searches"] == 3
    assert body["deltas"]["searches"] == pytest.approx(700 / 3)
    assert body["deltas"]["clickouts"] == 100


def test_engagement_series_buckets(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)
    buckets = client.get("/api/admin/reports/engagement/series?range=30d", headers=auth(admin_id)).json()["buckets"]
    assert len(buckets) == 30
    assert buckets[-1]["searches"] == 10
    assert buckets[-1]["ctr"] == 30.0


def test_geo_regions(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)
    add_search(db, NOW - timedelta(hours=1), country="GB")
    db.commit()

    rows = client.get("/api/admin/reports/geo/regions", headers=auth(admin_id)).json()
    assert rows == [{"region": "North America", "searches": 10}, {"region": "Europe", "searches": 1}]

    rows = client.get("/api/admin/reports/geo/regions?group=country&top=1", headers=auth(admin_id)).json()
    assert rows == [{"country": "US", "searches": 10}, {"country": "Other", "searches": 1}]


def test_monthly_trends(client, db, admin_id, fixed_now):
    _seed_lax_jfk(db)

    rows = client.get("/api/admin/reports/trends/searches?months=2", headers=auth(admin_id)).json()
    assert [r["month"] for r in rows] == ["May", "Jun"]
    assert rows[-1]["searches"] == 13
    assert rows[-1]["clickouts"] == 3

    prices = client.get("/api/admin/reports/trends/prices?months=1", headers=auth(admin_id)).json()
    assert prices == [{"month": "Jun", "year": 2025, "avgPrice": 250.0, "minPrice": 200.0, "maxPrice": 300.0}]


def test_months_out_of_range_rejected(client, admin_id):
    res = client.get("/api/admin/reports/trends/searches?months=25", headers=auth(admin_id))
    assert res.status_code == 400


def test_refresh(client, admin_id):
    assert client.post("/api/admin/reports/refresh", headers=auth(admin_id)).json() == {"ok": True}
