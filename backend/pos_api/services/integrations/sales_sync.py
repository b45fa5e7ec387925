"""
HQ sales sync client (EPOS-style back office).

Completed orders are reported to the head-office system as a minimal
transaction summary. The call is best effort: it runs from the outbox
processor after the order is committed, never inside the completion
transaction, and a failure only leaves the outbox event for retry.

Without credentials the client logs the summary and reports a simulated
success, so a store can run without a back office configured.
"""

from __future__ import annotations

import asyncio
import threading
from dataclasses import dataclass
from typing import Any, Optional

import httpx

from shared.config.logging import sync_logger as logger
from shared.config.settings import settings
from shared.infrastructure.events import CircuitBreaker
from shared.utils.exceptions import ExternalServiceError

SERVICE_NAME = "sales_sync"


@dataclass
class SalesSyncResult:
    success: bool
    message: str
    simulated: bool = False


def build_transaction(summary: dict[str, Any]) -> dict[str, Any]:
    """Map an order summary to the back-office transaction body."""
    return {
        "ExternalReference": summary["order_id"],
        "DateTime": summary.get("completed_at"),
        "TotalAmount": round(summary.get("total_cents", 0) / 100, 2),
        "TaxAmount": round(summary.get("tax_cents", 0) / 100, 2),
        "Gratuity": round(summary.get("tip_cents", 0) / 100, 2),
        "PaymentMethod": summary.get("payment_method") or "unknown",
        "Items": [
            {
                "Name": item["name"],
                "Quantity": item["quantity"],
                "UnitPrice": round(item["unit_price_cents"] / 100, 2),
            }
            for item in summary.get("items", [])
        ],
    }


class SalesSyncClient:
    """
    Async client for the HQ transactions endpoint.

    One pooled httpx.AsyncClient per instance, created lazily inside the
    running event loop and closed on shutdown.
    """

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        api_secret: str | None = None,
        timeout: float | None = None,
        breaker: CircuitBreaker | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.sales_sync_url).rstrip("/")
        self._api_key = settings.sales_sync_api_key if api_key is None else api_key
        self._api_secret = settings.sales_sync_api_secret if api_secret is None else api_secret
        self.timeout = timeout or settings.sales_sync_timeout_seconds
        self._breaker = breaker or CircuitBreaker(SERVICE_NAME, failure_threshold=5, recovery_timeout=60.0)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None
        self._client_lock: Optional[asyncio.Lock] = None
        self._init_lock = threading.Lock()

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key and self._api_secret)

    def _get_lock(self) -> asyncio.Lock:
        if self._client_lock is None:
            with self._init_lock:
                if self._client_lock is None:
                    self._client_lock = asyncio.Lock()
        return self._client_lock

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is not None and not self._client.is_closed:
            return self._client

        async with self._get_lock():
            if self._client is None or self._client.is_closed:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url,
                    auth=httpx.BasicAuth(self._api_key, self._api_secret),
                    timeout=self.timeout,
                    limits=httpx.Limits(max_connections=5, max_keepalive_connections=2),
                    transport=self._transport,
                )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def sync_transaction(self, summary: dict[str, Any]) -> SalesSyncResult:
        """
        Post one completed order.

        Raises:
            ExternalServiceError: circuit open, transport failure or non-2xx
                response
        """
        order_id = summary.get("order_id")

        if not self.is_configured:
            logger.warning("Sales sync credentials missing, transaction not sent", order_id=order_id)
            logger.info("Simulated sales sync", order_id=order_id, total_cents=summary.get("total_cents"))
            return SalesSyncResult(
                success=True,
                message="Simulated sync (no credentials configured)",
                simulated=True,
            )

        if not self._breaker.can_execute():
            raise ExternalServiceError(SERVICE_NAME, is_unavailable=True, retry_after=60, order_id=order_id)

        try:
            client = await self._get_client()
            response = await client.post("/Transaction", json=build_transaction(summary))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            self._breaker.record_failure()
            raise ExternalServiceError(
                SERVICE_NAME,
                order_id=order_id,
                http_status=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            self._breaker.record_failure()
            raise ExternalServiceError(SERVICE_NAME, order_id=order_id, error=str(e)) from e

        self._breaker.record_success()
        logger.info("Transaction synced to HQ", order_id=order_id)
        return SalesSyncResult(success=True, message="Transaction synced")


_client: SalesSyncClient | None = None


def get_sales_sync_client() -> SalesSyncClient:
    global _client
    if _client is None:
        _client = SalesSyncClient()
    return _client
