from __future__ import annotations
from typing import Protocol
from ai_classifier.domain.models import (
    ProviderRequest,
    ProviderResponse,
    PromptResult,
    SanitizedTicket,
    SentimentSignal,
)
from ai_classifier.domain.service_catalog import CatalogEntry


class ProviderClient(Protocol):
    """Outbound chat-completion client for one provider.

        Implementations never raise: every outcome is a ProviderResponse.
        """

    @property
    def provider_name(self) -> str:
        ...

    def is_available(self) -> bool:
        ...

    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        ...

    def test_connection(self, model: str) -> ProviderResponse:
        ...

class Sanitizer(Protocol):
    def sanitize(self, subject: str | None, body: str | None, sender: str | None) -> SanitizedTicket:
        ...

class SentimentAnalyzer(Protocol):
    def analyze(self, text: str | None) -> SentimentSignal:
        ...

class PromptBuilder(Protocol):
    def build(
        self,
        subject: str,
        body: str,
        sentiment_label: str | None = None,
        urgency_detected: bool = False,
        context: str | None = None,
    ) -> PromptResult:
        ...

class CatalogLookup(Protocol):
    def is_valid_service_id(self, service_id: str | None) -> bool:
        ...

    def lookup(self, service_id: str | None) -> CatalogEntry | None:
        ...
