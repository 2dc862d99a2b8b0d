from __future__ import annotations
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Mapping


class ClassificationStatus(str, Enum):
    APPLIED = "applied"
    PARTIAL = "partial"
    MANUAL = "manual"
    NOT_APPLIED = "not_applied"

@dataclass(frozen=True)
class Deployment:
    model_id: str
    deployment_name: str
    display_name: str
    enabled: bool = True
    description: str | None = None
    default_temperature: float | None = None
    default_max_tokens: int | None = None

@dataclass(frozen=True)
class RegistryState:
    """Immutable snapshot of configured deployments and process-wide defaults."""

    deployments: Mapping[str, tuple[Deployment, ...]] = field(default_factory=dict)
    default_provider: str = ""
    default_model: str = ""

@dataclass(frozen=True)
class ClassificationRequest:
    subject: str | None
    body: str | None = None
    sender_email: str | None = None
    ticket_id: str | None = None
    provider: str | None = None
    model: str | None = None
    correlation_id: str | None = None
    context: str | None = None

@dataclass(frozen=True)
class SanitizedTicket:
    subject: str
    body: str
    masked_sender: str

@dataclass(frozen=True)
class SentimentSignal:
    score: float = 0.0
    label: str = "neutral"
    urgency_detected: bool = False
    criticality_score: int = 0
    should_increase_severity: bool = False

@dataclass(frozen=True)
class PromptResult:
    system_prompt: str
    user_prompt: str

@dataclass(frozen=True)
class ProviderRequest:
    system_prompt: str
    user_prompt: str
    provider: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None

    @classmethod
    def connection_test(cls, model: str | None) -> ProviderRequest:
        """Minimal synthetic request used by health checks."""

        return cls(
            system_prompt='Responda apenas com JSON: {"status": "ok"}',
            user_prompt="Teste de conexao",
            model=model,
            temperature=0.0,
            max_tokens=20,
        )

@dataclass(frozen=True)
class ProviderResponse:
    """Outcome of one outbound LLM call. Failures are values, never exceptions."""

    success: bool
    content: str | None = None
    model: str | None = None
    prompt_tokens: int | None = None
    completion_tokens: int | None = None
    total_tokens: int | None = None
    latency_ms: int | None = None
    error_code: str | None = None
    error_message: str | None = None

    @classmethod
    def ok(
        cls,
        content: str,
        model: str | None,
        latency_ms: int | None = None,
        prompt_tokens: int | None = None,
        completion_tokens: int | None = None,
        total_tokens: int | None = None,
    ) -> ProviderResponse:
        return cls(
            success=True,
            content=content,
            model=model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            latency_ms=latency_ms,
        )

    @classmethod
    def failure(
        cls,
        error_code: str,
        error_message: str,
        model: str | None = None,
        latency_ms: int | None = None,
    ) -> ProviderResponse:
        return cls(
            success=False,
            model=model,
            latency_ms=latency_ms,
            error_code=error_code,
            error_message=error_message,
        )

@dataclass(frozen=True)
class ClassificationResult:
    success: bool
    status: ClassificationStatus
    correlation_id: str | None = None
    type: str | None = None
    service_id: str | None = None
    service_name: str | None = None
    queue: str | None = None
    confidence_score: float | None = None
    threshold_met: bool = False
    sentiment_score: float | None = None
    sentiment_label: str | None = None
    urgency_detected: bool = False
    criticality_score: int | None = None
    should_increase_severity: bool = False
    processing_time_ms: int | None = None
    message: str | None = None
    error_code: str | None = None
    error_message: str | None = None
    provider: str | None = None
    model: str | None = None
    sanitized_subject: str | None = None
    sanitized_body_summary: str | None = None
    masked_sender: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return {key: value for key, value in data.items() if value is not None}
