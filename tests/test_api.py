from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from info_hub.api.endpoints import get_aggregator
from info_hub.api.schemas import (
    CityLocation, CurrencyConversion, MarketIndices, NewsArticle, NewsHeadlines, StockQuote
)
from info_hub.main import app
from info_hub.providers.base import CredentialError, DataNotFoundError, UpstreamFetchError
from info_hub.services.data_aggregator import UnsupportedValueError
from info_hub.services.fan_out import AggregateError, TaskFailure


class FakeAggregator:
    """Stand-in service whose behaviour each test sets per method."""

    def __init__(self, **behaviour):
        self.behaviour = behaviour

    def _resolve(self, name):
        outcome = self.behaviour.get(name)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def get_supported_cities(self):
        return ["Beijing", "Shanghai"]

    def get_news_categories(self):
        return ["technology", "general"]

    async def get_weather(self, city):
        return self._resolve("get_weather")

    async def lookup_city(self, location, number=1, lang=None):
        return self._resolve("lookup_city")

    async def convert_currency(self, from_currency, to_currency, amount):
        return self._resolve("convert_currency")

    async def get_major_indices(self):
        return self._resolve("get_major_indices")

    async def get_stock_quote(self, symbol):
        return self._resolve("get_stock_quote")

    async def get_headlines(self, category):
        return self._resolve("get_headlines")

    async def get_random_quote(self):
        return self._resolve("get_random_quote")


@pytest.fixture
def client():
    with_overrides = TestClient(app, raise_server_exceptions=False)
    yield with_overrides
    app.dependency_overrides.clear()


def use_service(**behaviour):
    service = FakeAggregator(**behaviour)
    app.dependency_overrides[get_aggregator] = lambda: service
    return service


def test_health_and_ping(client):
    health = client.get("/health")
    assert health.status_code == 200
    body = health.json()
    assert body["success"] is True
    assert body["data"]["status"] == "ok"
    assert body["data"]["uptime"] >= 0
    assert isinstance(body["timestamp"], int)

    ping = client.get("/ping")
    assert ping.json()["data"] == "pong"


def test_unknown_route_is_not_found_envelope(client):
    response = client.get("/api/nowhere")

    assert response.status_code == 404
    body = response.json()
    assert body["success"] is False
    assert body["error"]["code"] == "NOT_FOUND"
    assert body["error"]["details"] == {"path": "/api/nowhere", "method": "GET"}


def test_missing_parameter_is_validation_error(client):
    use_service()

    response = client.get("/api/weather")

    assert response.status_code == 400
    body = response.json()
    assert body["error"]["code"] == "VALIDATION_ERROR"
    assert body["error"]["details"][0]["loc"] == ["query", "city"]


def test_out_of_range_number_is_validation_error(client):
    use_service()

    response = client.get("/api/weather/city", params={"location": "beijing", "number": 50})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_supported_cities(client):
    use_service()

    response = client.get("/api/weather/cities")

    assert response.json()["data"] == {"cities": ["Beijing", "Shanghai"]}


def test_unsupported_city_is_bad_request(client):
    use_service(get_weather=UnsupportedValueError('City "Atlantis" is not supported', "city"))

    response = client.get("/api/weather", params={"city": "Atlantis"})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_CITY"


def test_city_lookup_success(client):
    use_service(lookup_city=[
        CityLocation(id="101010100", name="Beijing", latitude=39.9, longitude=116.4, country="China")
    ])

    response = client.get("/api/weather/city", params={"location": "beijing"})

    assert response.status_code == 200
    locations = response.json()["data"]["locations"]
    assert locations[0]["id"] == "101010100"
    assert locations[0]["country"] == "China"


def test_credential_failure_is_upstream_auth_error(client):
    use_service(lookup_city=CredentialError("Unable to read signing key", "qweather"))

    response = client.get("/api/weather/city", params={"location": "beijing"})

    assert response.status_code == 502
    assert response.json()["error"]["code"] == "UPSTREAM_AUTH_ERROR"


def test_city_not_found_is_404(client):
    use_service(lookup_city=DataNotFoundError("No location matches 'atlantis'", "qweather", "atlantis"))

    response = client.get("/api/weather/city", params={"location": "atlantis"})

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "CITY_LOOKUP_ERROR"


def test_upstream_failure_is_bad_gateway(client):
    use_service(get_random_quote=UpstreamFetchError("zenquotes responded with HTTP 503", "zenquotes"))

    response = client.get("/api/quote")

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "QUOTE_ERROR"
    assert error["details"] == {"provider": "zenquotes"}


def test_conversion_uses_from_and_to_keys(client):
    use_service(convert_currency=CurrencyConversion(
        from_currency="USD", to_currency="CNY", amount=10, result=71.23, rate=7.1234, date="2026-10-18"
    ))

    response = client.get("/api/exchange/convert", params={"from": "USD", "to": "CNY", "amount": 10})

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["from"] == "USD"
    assert data["to"] == "CNY"
    assert data["result"] == 71.23


def test_indices_success(client):
    quote = StockQuote(
        symbol="^GSPC", name="S&P 500", current_price=4545.46, previous_close=4500.0,
        change=45.46, change_percent=1.01, timestamp=1760716800
    )
    use_service(get_major_indices=MarketIndices(indices=[quote]))

    response = client.get("/api/stock/indices")

    assert response.status_code == 200
    assert response.json()["data"]["indices"][0]["symbol"] == "^GSPC"


def test_indices_total_failure_lists_failed_symbols(client):
    failures = [TaskFailure("^GSPC", "timeout"), TaskFailure("^DJI", "HTTP 500")]
    use_service(get_major_indices=AggregateError(failures, "market index"))

    response = client.get("/api/stock/indices")

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "INDICES_ERROR"
    assert error["details"] == [
        {"identifier": "^GSPC", "reason": "timeout"},
        {"identifier": "^DJI", "reason": "HTTP 500"}
    ]


def test_headlines_success(client):
    article = NewsArticle(
        title="Hello", description="World", source="BBC News", url="https://bbc.example/1",
        published_at=datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc), category="general"
    )
    use_service(get_headlines=NewsHeadlines(articles=[article], total_results=7, category="general"))

    response = client.get("/api/news/headlines")

    data = response.json()["data"]
    assert data["total_results"] == 7
    assert data["articles"][0]["source"] == "BBC News"


def test_headlines_all_feeds_failed_is_news_error(client):
    failures = [TaskFailure("BBC News", "timeout"), TaskFailure("CNN Top Stories", "malformed")]
    use_service(get_headlines=AggregateError(failures, "news feed"))

    response = client.get("/api/news/headlines", params={"category": "general"})

    assert response.status_code == 502
    error = response.json()["error"]
    assert error["code"] == "NEWS_ERROR"
    assert [item["identifier"] for item in error["details"]] == ["BBC News", "CNN Top Stories"]


def test_headlines_unknown_category(client):
    use_service(get_headlines=UnsupportedValueError('Category "sports" is not supported', "category"))

    response = client.get("/api/news/headlines", params={"category": "sports"})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_CATEGORY"
    assert error["details"] == {"supported": ["technology", "general"]}


def test_unexpected_error_is_internal_server_error(client):
    use_service(get_stock_quote=RuntimeError("secret internals"))

    response = client.get("/api/stock/quote", params={"symbol": "AAPL"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_SERVER_ERROR"
    assert "secret" not in error["message"]


def test_bad_currency_maps_to_invalid_currency(client):
    use_service(convert_currency=UnsupportedValueError("Target currency 'XYZ' is not supported", "to"))

    response = client.get("/api/exchange/convert", params={"from": "USD", "to": "XYZ", "amount": 1})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_CURRENCY"
    assert error["details"] == {"field": "to"}


def test_unexpected_error_message_is_shown_in_debug_mode(client, monkeypatch):
    from info_hub.core.config import settings

    monkeypatch.setattr(settings, "debug", True)
    use_service(get_stock_quote=RuntimeError("quote cache exploded"))

    response = client.get("/api/stock/quote", params={"symbol": "AAPL"})

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "INTERNAL_SERVER_ERROR"
    assert error["message"] == "quote cache exploded"
