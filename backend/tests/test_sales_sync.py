"""
Tests for the HQ sales sync client and its circuit breaker.
"""

import json

import httpx
import pytest

from pos_api.services.integrations.sales_sync import SalesSyncClient, build_transaction
from shared.infrastructure.events import CircuitBreaker, CircuitState
from shared.utils.exceptions import ExternalServiceError

SUMMARY = {
    "order_id": "o-1",
    "total_cents": 2000,
    "tax_cents": 333,
    "tip_cents": 150,
    "payment_method": "split",
    "completed_at": "2026-10-19T20:15:00+00:00",
    "items": [{"name": "Lager", "quantity": 2, "unit_price_cents": 400}],
}


def _client(handler, breaker=None) -> SalesSyncClient:
    return SalesSyncClient(
        base_url="https://hq.example.test/api",
        api_key="key",
        api_secret="secret",
        breaker=breaker,
        transport=httpx.MockTransport(handler),
    )


class TestBuildTransaction:
    def test_amounts_in_currency_units(self):
        body = build_transaction(SUMMARY)

        assert body["ExternalReference"] == "o-1"
        assert body["TotalAmount"] == 20.0
        assert body["TaxAmount"] == 3.33
        assert body["Gratuity"] == 1.5
        assert body["Items"] == [{"Name": "Lager", "Quantity": 2, "UnitPrice": 4.0}]


class TestSalesSyncClient:
    """Posting completed orders to the back office."""

    async def test_without_credentials_is_simulated(self):
        client = SalesSyncClient(api_key="", api_secret="")

        result = await client.sync_transaction(SUMMARY)

        assert result.success is True
        assert result.simulated is True

    async def test_posts_transaction(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"Id": 1})

        client = _client(handler)
        result = await client.sync_transaction(SUMMARY)
        await client.close()

        assert result.success is True
        assert result.simulated is False
        assert seen[0].url.path == "/api/Transaction"
        assert seen[0].headers["authorization"].startswith("Basic ")
        assert json.loads(seen[0].content)["ExternalReference"] == "o-1"

    async def test_error_response_raises(self):
        client = _client(lambda request: httpx.Response(500))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.sync_transaction(SUMMARY)

        assert exc_info.value.status_code == 502

    async def test_open_circuit_fails_fast(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        breaker = CircuitBreaker("test", failure_threshold=2, recovery_timeout=60.0)
        client = _client(handler, breaker)
        for _ in range(2):
            with pytest.raises(ExternalServiceError):
                await client.sync_transaction(SUMMARY)

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.sync_transaction(SUMMARY)

        assert exc_info.value.status_code == 503
        assert len(calls) == 2
        assert breaker.state == CircuitState.OPEN


class TestCircuitBreaker:
    def test_half_open_after_timeout_then_recovers(self):
        breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=0.0)
        breaker.record_failure()
        assert breaker.state == CircuitState.OPEN

        assert breaker.can_execute() is True
        assert breaker.state == CircuitState.HALF_OPEN

        breaker.record_success()
        assert breaker.state == CircuitState.CLOSED

    def test_half_open_failure_reopens(self):
        breaker = CircuitBreaker("test", failure_threshold=1, recovery_timeout=0.0)
        breaker.record_failure()
        breaker.can_execute()

        breaker.record_failure()

        assert breaker.state == CircuitState.OPEN
