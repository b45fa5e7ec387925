"""
Circuit breaker for calls to best-effort collaborators.

Used by Redis event publishing and by the third-party sales sync so an
unavailable dependency fails fast instead of stalling every caller.
"""

from __future__ import annotations

import random
import threading
import time
from enum import Enum

from shared.config.settings import settings
from shared.config.logging import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """States of the circuit breaker."""
    CLOSED = "closed"  # Normal operation
    OPEN = "open"  # Failure mode - requests rejected
    HALF_OPEN = "half_open"  # Recovery testing


class CircuitBreaker:
    """
    Lightweight thread-safe circuit breaker.

    After `failure_threshold` consecutive failures the circuit opens and
    `can_execute()` returns False until `recovery_timeout` seconds pass;
    then a limited number of trial calls decide whether it closes again.
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        half_open_max_calls: int = 3,
    ):
        self.name = name
        self._failure_threshold = failure_threshold
        self._recovery_timeout = recovery_timeout
        self._half_open_max_calls = half_open_max_calls

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._last_failure_time: float = 0
        self._half_open_calls = 0
        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        return self._state

    def can_execute(self) -> bool:
        """
        Check if a call can proceed.

        Returns True if allowed, False if circuit is open.
        """
        with self._lock:
            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if time.time() - self._last_failure_time >= self._recovery_timeout:
                    self._state = CircuitState.HALF_OPEN
                    self._half_open_calls = 0
                    logger.info("Circuit breaker transitioning to HALF_OPEN", breaker=self.name)
                    return True
                return False

            if self._half_open_calls >= self._half_open_max_calls:
                return False
            self._half_open_calls += 1
            return True

    def record_failure(self) -> None:
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = time.time()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.error("Circuit breaker OPEN (half-open test failed)", breaker=self.name)
            elif self._state == CircuitState.CLOSED:
                if self._failure_count >= self._failure_threshold:
                    self._state = CircuitState.OPEN
                    logger.error(
                        "Circuit breaker OPEN",
                        breaker=self.name,
                        failure_count=self._failure_count,
                        threshold=self._failure_threshold,
                    )

    def record_success(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                logger.info("Circuit breaker recovered to CLOSED", breaker=self.name)
            elif self._state == CircuitState.CLOSED:
                self._failure_count = 0


# =============================================================================
# Singleton instance for event publishing
# =============================================================================

_event_circuit_breaker: CircuitBreaker | None = None
_circuit_breaker_lock = threading.Lock()


def get_event_circuit_breaker() -> CircuitBreaker:
    """Get or create the event publishing circuit breaker singleton."""
    global _event_circuit_breaker
    if _event_circuit_breaker is None:
        with _circuit_breaker_lock:
            if _event_circuit_breaker is None:
                _event_circuit_breaker = CircuitBreaker(
                    "redis_events",
                    failure_threshold=settings.redis_publish_max_retries + 2,
                    recovery_timeout=30.0,
                    half_open_max_calls=3,
                )
    return _event_circuit_breaker


def calculate_retry_delay_with_jitter(attempt: int, base_delay: float = 0.5) -> float:
    """
    Exponential backoff with decorrelated jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base_delay: Base delay in seconds

    Returns:
        Delay in seconds, capped at 10s.
    """
    exp_delay = min(base_delay * (2 ** attempt), 10.0)
    return random.uniform(base_delay, exp_delay)
