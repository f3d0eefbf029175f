import pytest
import requests

from errors import AppValidationError, UpstreamError
from models import AdminConfig
from services import geo_service
from services.geo_service import GeoCurrencyService


class FakeResponse:
    def __init__(self, data, status_code=200):
        self._data = data
        self.status_code = status_code
        self.text = str(data)

    def json(self):
        return self._data


@pytest.fixture
def upstream(monkeypatch):
    calls = []
    responses = {}

    def fake_get(url, params=None, timeout=None):
        calls.append((url, params))
        result = responses[url.rsplit("/", 1)[-1]]
        if isinstance(result, Exception):
            raise result
        return result

    monkeypatch.setattr(geo_service.requests, "get", fake_get)
    return calls, responses


RATES = {"base": "USD", "timestamp": 1718000000, "rates": {"EUR": 0.9, "GBP": 0.8, "JPY": 150.0}}


def test_rates_are_cached(upstream):
    calls, responses = upstream
    responses["latest.json"] = FakeResponse(RATES)
    svc = GeoCurrencyService(fx_app_id="app")

    first = svc.latest_rates("usd")
    second = svc.latest_rates("USD")

    assert first == second == {"base": "USD", "timestamp": 1718000000, "rates": RATES["rates"]}
    assert len(calls) == 1
    assert calls[0][1] == {"app_id": "app", "base": "USD"}


def test_convert_uses_usd_cross_rates(upstream):
    _, responses = upstream
    responses["latest.json"] = FakeResponse(RATES)
    svc = GeoCurrencyService(fx_app_id="app")

    out = svc.convert(100, "eur", "gbp")

    assert out["from"] == "EUR"
    assert out["to"] == "GBP"
    assert out["rate"] == pytest.approx(0.8 / 0.9)
    assert out["result"] == 88.89

    assert svc.convert(10, "USD", "JPY")["result"] == 1500.0


def test_convert_unknown_currency(upstream):
    _, responses = upstream
    responses["latest.json"] = FakeResponse(RATES)
    svc = GeoCurrencyService(fx_app_id="app")

    with pytest.raises(AppValidationError) as exc:
        svc.convert(1, "USD", "XXX")
    assert exc.value.type == "query"
    assert "XXX" in exc.value.message


def test_rates_upstream_failure(upstream):
    _, responses = upstream
    responses["latest.json"] = requests.ConnectionError("down")
    with pytest.raises(UpstreamError):
        GeoCurrencyService(fx_app_id="app").latest_rates()


def test_rates_without_key():
    with pytest.raises(UpstreamError):
        GeoCurrencyService(fx_app_id="").latest_rates()


def test_lookup_ip_rejects_ipapi_error_body(upstream):
    _, responses = upstream
    responses["203.0.113.9"] = FakeResponse({"success": False, "error": {"code": 101}})
    with pytest.raises(UpstreamError):
        GeoCurrencyService(geo_api_key="key").lookup_ip("203.0.113.9")


def test_country_for_ip_is_best_effort(upstream):
    calls, responses = upstream
    responses["203.0.113.9"] = FakeResponse({"country_code": "GB", "region_name": "England"})
    svc = GeoCurrencyService(geo_api_key="key")

    assert svc.country_for_ip("203.0.113.9") == ("GB", "England")
    assert svc.country_for_ip("203.0.113.9") == ("GB", "England")
    assert len(calls) == 1

    responses["198.51.100.1"] = requests.Timeout("slow")
    assert svc.country_for_ip("198.51.100.1") == (None, None)
    assert GeoCurrencyService(geo_api_key="").country_for_ip("203.0.113.9") == (None, None)


def test_convert_route(client, upstream):
    _, responses = upstream
    responses["latest.json"] = FakeResponse(RATES)
    client.app.state.geo = GeoCurrencyService(fx_app_id="app")

    res = client.get("/api/geo-currency/convert?amount=20&from=USD&to=EUR")

    assert res.status_code == 200
    assert res.json()["result"] == 18.0


def test_convert_route_validation(client):
    res = client.get("/api/geo-currency/convert?amount=-1&from=USD&to=EUR")
    assert res.status_code == 400
    assert res.json()["validationError"]["type"] == "query"


def test_geo_route_without_key_is_bad_gateway(client):
    client.app.state.geo = GeoCurrencyService(geo_api_key="")
    res = client.get("/api/geo-currency", headers={"X-Forwarded-For": "203.0.113.9"})
    assert res.status_code == 502
    assert res.json() == {"message": "Geolocation API key not configured"}


def test_rates_ttl_follows_admin_config(upstream, db):
    calls, responses = upstream
    responses["latest.json"] = FakeResponse(RATES)
    db.add(AdminConfig(key="FX_CACHE_TTL_SECONDS", value="0"))
    db.commit()
    svc = GeoCurrencyService(fx_app_id="app")

    svc.latest_rates("USD")
    svc.latest_rates("USD")

    assert len(calls) == 2
