"""
Inventory client tests using httpx.MockTransport
"""

from decimal import Decimal

import httpx
import pytest

from vendor_sales.services.inventory_service import InventoryClient, InventoryLookupError

IMEI = "490154203237518"

FOUND = {
    "success": True,
    "result": {
        "id": 77,
        "imei": IMEI,
        "marca": "Samsung",
        "modelo": "Galaxy S23",
        "color": "Negro",
        "capacidad": "256GB",
        "precio": 3999.0,
        "estatus": True,
        "fechaCreacion": "2024-01-15T10:00:00",
    },
}


def _client(handler, **kwargs) -> InventoryClient:
    options = {
        "base_url": "https://inventory.test/",
        "api_key": "secret-key",
        "max_retries": 3,
        "backoff_seconds": 0,
        "transport": httpx.MockTransport(handler),
    }
    options.update(kwargs)
    return InventoryClient(**options)


class TestInventoryLookup:
    def test_found(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=FOUND)

        record = _client(handler).lookup(IMEI)

        assert record.model == "Galaxy S23"
        assert record.brand == "Samsung"
        assert record.price == Decimal("3999.0")
        assert record.is_available is True
        assert record.id == "77"

        request = requests[0]
        assert request.url.path == "/api/Producto/Imei"
        assert request.url.params["imei"] == IMEI
        assert request.headers["Authorization"] == "Bearer secret-key"

    def test_unsuccessful_answer_is_not_found(self):
        record = _client(lambda request: httpx.Response(200, json={"success": False, "result": None})).lookup(IMEI)
        assert record is None

    def test_unavailable_status(self):
        payload = {"success": True, "result": dict(FOUND["result"], estatus=False)}
        record = _client(lambda request: httpx.Response(200, json=payload)).lookup(IMEI)
        assert record.is_available is False

    def test_client_error_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        assert _client(handler).lookup(IMEI) is None
        assert len(calls) == 1

    def test_server_errors_are_retried(self):
        responses = iter([httpx.Response(503), httpx.Response(500), httpx.Response(200, json=FOUND)])

        record = _client(lambda request: next(responses)).lookup(IMEI)

        assert record.model == "Galaxy S23"

    def test_exhausted_retries_raise(self):
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(InventoryLookupError):
            _client(handler, max_retries=2).lookup(IMEI)

        assert len(calls) == 2

    def test_backoff_is_exponential(self, monkeypatch):
        sleeps = []
        monkeypatch.setattr("vendor_sales.services.inventory_service.time.sleep", sleeps.append)

        with pytest.raises(InventoryLookupError):
            _client(lambda request: httpx.Response(500), backoff_seconds=1.0).lookup(IMEI)

        assert sleeps == [1.0, 2.0]

    def test_unconfigured_client_skips_lookup(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json=FOUND)

        assert _client(handler, api_key=None).lookup(IMEI) is None
        assert _client(handler, base_url="  ").lookup(IMEI) is None
        assert calls == []

    @pytest.mark.parametrize("response", [
        httpx.Response(200, text="<html>gateway</html>"),
        httpx.Response(200, json={"success": True, "result": {"modelo": 90}}),
        httpx.Response(200, json={"success": True, "result": dict(FOUND["result"], precio="n/a")}),
        httpx.Response(200, json=["unexpected"]),
    ])
    def test_unreadable_answer_raises_lookup_error(self, response):
        calls = []

        def handler(request):
            calls.append(request)
            return response

        with pytest.raises(InventoryLookupError):
            _client(handler).lookup(IMEI)

        assert len(calls) == 1
