from __future__ import annotations
import logging
import threading
import time
from collections import deque
from enum import Enum
from typing import Callable
from ai_classifier.application.ports import ProviderClient
from ai_classifier.config import ResilienceConfig
from ai_classifier.domain.errors import ErrorCode, is_transient_error
from ai_classifier.domain.models import ProviderRequest, ProviderResponse


logger = logging.getLogger(__name__)

class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

class CircuitBreaker:
    """Count-based circuit breaker.

        CLOSED: outcomes go into a sliding window; once at least minimum_calls
        are recorded and the failure rate reaches the threshold, the circuit
        opens.
        OPEN: calls are rejected until open_duration_seconds have passed, then
        the circuit goes HALF_OPEN.
        HALF_OPEN: up to half_open_max_calls probes are admitted. All of them
        succeeding closes the circuit; any failure opens it again.
        """

    def __init__(
        self,
        name: str,
        window_size: int = 10,
        minimum_calls: int = 5,
        failure_rate_threshold: float = 50.0,
        open_duration_seconds: float = 30.0,
        half_open_max_calls: int = 3,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._window: deque[bool] = deque(maxlen=max(1, window_size))
        self._minimum_calls = max(1, minimum_calls)
        self._failure_rate_threshold = failure_rate_threshold
        self._open_duration = open_duration_seconds
        self._half_open_max_calls = max(1, half_open_max_calls)
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._opened_at = 0.0
        self._half_open_admitted = 0
        self._half_open_successes = 0

    @classmethod
    def from_config(
        cls,
        name: str,
        config: ResilienceConfig,
        clock: Callable[[], float] = time.monotonic,
    ) -> CircuitBreaker:
        return cls(
            name=name,
            window_size=config.window_size,
            minimum_calls=config.minimum_calls,
            failure_rate_threshold=config.failure_rate_threshold,
            open_duration_seconds=config.open_duration_seconds,
            half_open_max_calls=config.half_open_max_calls,
            clock=clock,
        )

    @property
    def state(self) -> CircuitState:
        with self._lock:
            self._maybe_half_open()
            return self._state

    def try_acquire(self) -> bool:
        """Ask permission for one call. Every admitted call must be followed by record()."""

        with self._lock:
            self._maybe_half_open()

            if self._state is CircuitState.CLOSED:
                return True

            if self._state is CircuitState.OPEN:
                return False

            if self._half_open_admitted < self._half_open_max_calls:
                self._half_open_admitted += 1
                return True
            return False

    def record(self, success: bool) -> None:
        with self._lock:
            if self._state is CircuitState.HALF_OPEN:
                if not success:
                    self._open("probe call failed")
                    return
                self._half_open_successes += 1
                if self._half_open_successes >= self._half_open_max_calls:
                    self._close()
                return

            if self._state is CircuitState.OPEN:
                # late result of a call admitted before the circuit opened
                return

            self._window.append(success)
            if len(self._window) < self._minimum_calls:
                return

            failures = sum(1 for outcome in self._window if not outcome)
            failure_rate = failures * 100.0 / len(self._window)
            if failure_rate >= self._failure_rate_threshold:
                self._open(f"failure rate {failure_rate:.0f}% over {len(self._window)} calls")

    def release(self) -> None:
        """Give back an admitted call without recording an outcome."""

        with self._lock:
            if self._state is CircuitState.HALF_OPEN and self._half_open_admitted > 0:
                self._half_open_admitted -= 1

    def _maybe_half_open(self) -> None:
        if self._state is CircuitState.OPEN and self._clock() - self._opened_at >= self._open_duration:
            self._state = CircuitState.HALF_OPEN
            self._half_open_admitted = 0
            self._half_open_successes = 0
            logger.info("Circuit %s half-open; admitting up to %d probe calls", self.name, self._half_open_max_calls)

    def _open(self, reason: str) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self._clock()
        self._window.clear()
        logger.warning("Circuit %s opened (%s) for %.0f seconds", self.name, reason, self._open_duration)

    def _close(self) -> None:
        self._state = CircuitState.CLOSED
        self._window.clear()
        logger.info("Circuit %s closed", self.name)

class CircuitBreakingClient:
    """Wraps a ProviderClient with a CircuitBreaker.

        Only transport-class failures (network errors, HTTP 5xx/429) count
        against the circuit; configuration errors pass through untouched.
        """

    def __init__(self, client: ProviderClient, breaker: CircuitBreaker) -> None:
        self._client = client
        self._breaker = breaker

    @property
    def provider_name(self) -> str:
        return self._client.provider_name

    @property
    def circuit_state(self) -> str:
        return self._breaker.state.value

    @property
    def wrapped(self) -> ProviderClient:
        return self._client

    def is_available(self) -> bool:
        return self._client.is_available()

    def rotate_api_key(self, api_key: str) -> None:
        rotate = getattr(self._client, "rotate_api_key", None)
        if not callable(rotate):
            raise AttributeError(f"{type(self._client).__name__} does not support key rotation")
        rotate(api_key)

    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        return self._guarded(request.model, lambda: self._client.send_chat_completion(request))

    def test_connection(self, model: str) -> ProviderResponse:
        return self._guarded(model, lambda: self._client.test_connection(model))

    def _guarded(self, model: str | None, call: Callable[[], ProviderResponse]) -> ProviderResponse:
        if not self._breaker.try_acquire():
            logger.warning("Circuit %s is open; rejecting call for model %s", self._breaker.name, model)
            return ProviderResponse.failure(
                ErrorCode.CIRCUIT_OPEN,
                f"{self.provider_name} temporariamente indisponivel (circuit breaker aberto)",
                model=model,
            )

        try:
            response = call()
        except Exception:
            self._breaker.record(False)
            raise

        if response.success:
            self._breaker.record(True)
        elif is_transient_error(response.error_code):
            self._breaker.record(False)
        else:
            # configuration or payload problem says nothing about endpoint health
            self._breaker.release()

        return response
