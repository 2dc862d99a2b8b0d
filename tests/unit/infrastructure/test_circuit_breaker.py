from typing import List
import pytest
from ai_classifier.config import ResilienceConfig
from ai_classifier.domain.errors import ErrorCode
from ai_classifier.domain.models import ProviderRequest, ProviderResponse
from ai_classifier.infrastructure.circuit_breaker import CircuitBreaker, CircuitBreakingClient, CircuitState


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

class ScriptedClient:
    def __init__(self, responses: List[ProviderResponse]) -> None:
        self.responses = list(responses)
        self.calls = 0

    @property
    def provider_name(self) -> str:
        return "azure-openai"

    def is_available(self) -> bool:
        return True

    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        self.calls += 1
        return self.responses.pop(0)

    def test_connection(self, model: str) -> ProviderResponse:
        self.calls += 1
        return self.responses.pop(0)

class ExplodingClient(ScriptedClient):
    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        self.calls += 1
        raise RuntimeError("socket closed")

def _breaker(clock: FakeClock) -> CircuitBreaker:
    return CircuitBreaker.from_config(
        "azure-openai",
        ResilienceConfig(
            window_size=10,
            minimum_calls=5,
            failure_rate_threshold=50.0,
            open_duration_seconds=30.0,
            half_open_max_calls=3,
        ),
        clock=clock,
    )

def _request() -> ProviderRequest:
    return ProviderRequest(system_prompt="s", user_prompt="u", model="gpt-4o-mini")

def test_stays_closed_below_minimum_calls() -> None:
    breaker = _breaker(FakeClock())

    for _ in range(4):
        assert breaker.try_acquire() is True
        breaker.record(False)

    assert breaker.state is CircuitState.CLOSED

def test_opens_when_failure_rate_reaches_threshold() -> None:
    breaker = _breaker(FakeClock())

    for outcome in (True, True, False, False, False):
        breaker.try_acquire()
        breaker.record(outcome)

    assert breaker.state is CircuitState.OPEN
    assert breaker.try_acquire() is False

def test_half_open_after_wait_then_closes_on_successful_probes() -> None:
    clock = FakeClock()
    breaker = _breaker(clock)
    for _ in range(5):
        breaker.try_acquire()
        breaker.record(False)

    clock.now = 30.0
    assert breaker.state is CircuitState.HALF_OPEN

    admitted = [breaker.try_acquire() for _ in range(4)]
    assert admitted == [True, True, True, False]

    for _ in range(3):
        breaker.record(True)

    assert breaker.state is CircuitState.CLOSED

def test_half_open_failure_reopens() -> None:
    clock = FakeClock()
    breaker = _breaker(clock)
    for _ in range(5):
        breaker.try_acquire()
        breaker.record(False)

    clock.now = 31.0
    assert breaker.try_acquire() is True
    breaker.record(False)

    assert breaker.state is CircuitState.OPEN

def test_release_returns_half_open_slot() -> None:
    clock = FakeClock()
    breaker = _breaker(clock)
    for _ in range(5):
        breaker.try_acquire()
        breaker.record(False)
    clock.now = 30.0

    for _ in range(3):
        assert breaker.try_acquire() is True
    assert breaker.try_acquire() is False

    breaker.release()
    assert breaker.try_acquire() is True

def test_wrapper_counts_transient_failures_and_rejects_when_open() -> None:
    responses = [ProviderResponse.failure("HTTP_503", "unavailable") for _ in range(5)]
    client = ScriptedClient(responses)
    wrapped = CircuitBreakingClient(client, _breaker(FakeClock()))

    for _ in range(5):
        assert wrapped.send_chat_completion(_request()).error_code == "HTTP_503"

    rejected = wrapped.send_chat_completion(_request())

    assert rejected.error_code == ErrorCode.CIRCUIT_OPEN
    assert client.calls == 5
    assert wrapped.circuit_state == "open"

def test_wrapper_ignores_configuration_failures() -> None:
    responses = [ProviderResponse.failure(ErrorCode.INVALID_MODEL, "no such model") for _ in range(8)]
    client = ScriptedClient(responses)
    wrapped = CircuitBreakingClient(client, _breaker(FakeClock()))

    for _ in range(8):
        wrapped.send_chat_completion(_request())

    assert wrapped.circuit_state == "closed"
    assert client.calls == 8

def test_wrapper_records_and_reraises_exceptions() -> None:
    client = ExplodingClient([])
    breaker = _breaker(FakeClock())
    wrapped = CircuitBreakingClient(client, breaker)

    for _ in range(5):
        with pytest.raises(RuntimeError):
            wrapped.send_chat_completion(_request())

    assert breaker.state is CircuitState.OPEN

def test_wrapper_exposes_wrapped_client_and_rotation() -> None:
    client = ScriptedClient([ProviderResponse.ok(content="{}", model="gpt-4o-mini")])
    wrapped = CircuitBreakingClient(client, _breaker(FakeClock()))

    assert wrapped.wrapped is client
    assert wrapped.provider_name == "azure-openai"
    assert wrapped.test_connection("gpt-4o-mini").success is True

    with pytest.raises(AttributeError):
        wrapped.rotate_api_key("new")
