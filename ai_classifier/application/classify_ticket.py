from __future__ import annotations
import json
import logging
import time
import uuid
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Sequence
from ai_classifier.application.ports import CatalogLookup, PromptBuilder, Sanitizer, SentimentAnalyzer
from ai_classifier.application.provider_router import ProviderRouter
from ai_classifier.application.result_cache import ResultCache
from ai_classifier.config import ClassificationConfig
from ai_classifier.domain.errors import ErrorCode
from ai_classifier.domain.models import (
    ClassificationRequest,
    ClassificationResult,
    ClassificationStatus,
    ProviderRequest,
    ProviderResponse,
    SanitizedTicket,
    SentimentSignal,
)
from ai_classifier.shared.normalization import normalize_float_or_none, normalize_str_or_none


logger = logging.getLogger(__name__)

MESSAGE_APPLIED = "Classificacao aplicada automaticamente"
MESSAGE_REVIEW = "Classificacao requer revisao manual"
MESSAGE_AI_UNAVAILABLE = "IA indisponivel - encaminhado para classificacao manual"

class ModelOutputError(ValueError):
    """Raised when the model content is not a JSON object."""

class TicketClassifier:
    """End-to-end classification pipeline.

        cache -> sanitize -> sentiment -> prompt -> router -> decision -> cache.

        classify() always returns a ClassificationResult; failures are reported
        through status/error_code instead of exceptions.
        """

    def __init__(
        self,
        router: ProviderRouter,
        cache: ResultCache,
        catalog: CatalogLookup,
        sanitizer: Sanitizer,
        sentiment_analyzer: SentimentAnalyzer,
        prompt_builder: PromptBuilder,
        config: ClassificationConfig,
    ) -> None:
        self._router = router
        self._cache = cache
        self._catalog = catalog
        self._sanitizer = sanitizer
        self._sentiment = sentiment_analyzer
        self._prompt_builder = prompt_builder
        self._threshold = config.confidence_threshold
        self._fallback_queue = config.fallback_queue

    def classify(self, request: ClassificationRequest) -> ClassificationResult:
        started = time.monotonic()
        correlation_id = request.correlation_id or str(uuid.uuid4())

        logger.info(
            "[%s] Starting classification - subject: %r",
            correlation_id,
            (request.subject or "")[:50],
        )

        try:
            return self._classify(request, correlation_id, started)
        except Exception as exc:
            logger.exception("[%s] Unexpected error during classification", correlation_id)
            return ClassificationResult(
                success=False,
                status=ClassificationStatus.NOT_APPLIED,
                correlation_id=correlation_id,
                error_code=ErrorCode.INTERNAL_ERROR,
                error_message=str(exc),
                processing_time_ms=_elapsed_ms(started),
            )

    def classify_many(
        self,
        requests: Sequence[ClassificationRequest],
        max_workers: int = 8,
    ) -> list[ClassificationResult]:
        """Classify requests concurrently, one worker per request, preserving input order."""

        if not requests:
            return []

        workers = max(1, min(max_workers, len(requests)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="classify") as pool:
            return list(pool.map(self.classify, requests))

    def _classify(
        self,
        request: ClassificationRequest,
        correlation_id: str,
        started: float,
    ) -> ClassificationResult:
        key = self._cache.generate_key(request.ticket_id, request.subject, request.body)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info("[%s] Cache hit for ticket %s", correlation_id, request.ticket_id or "N/A")
            return cached

        sanitized = self._sanitizer.sanitize(request.subject, request.body, request.sender_email)
        logger.debug(
            "[%s] Sanitized - subject: %r, body length: %d",
            correlation_id,
            sanitized.subject,
            len(sanitized.body),
        )

        sentiment = self._sentiment.analyze(sanitized.body)
        logger.debug(
            "[%s] Sentiment: %s, urgency: %s, criticality: %d",
            correlation_id,
            sentiment.label,
            sentiment.urgency_detected,
            sentiment.criticality_score,
        )

        prompt = self._prompt_builder.build(
            sanitized.subject,
            sanitized.body,
            sentiment_label=sentiment.label,
            urgency_detected=sentiment.urgency_detected,
            context=request.context,
        )

        provider_request = ProviderRequest(
            system_prompt=prompt.system_prompt,
            user_prompt=prompt.user_prompt,
            provider=request.provider,
            model=request.model,
        )
        response = self._router.route(provider_request)
        provider = self._router_provider(request)

        if not response.success:
            if response.error_code == ErrorCode.AI_UNAVAILABLE:
                logger.warning(
                    "[%s] AI unavailable (%s); routing to %r",
                    correlation_id,
                    response.error_message,
                    self._fallback_queue,
                )
                result = self._manual_fallback_result(correlation_id, response, sanitized, sentiment, provider, started)
                self._cache.put(key, result)
                return result

            logger.error(
                "[%s] AI classification failed: %s - %s",
                correlation_id,
                response.error_code,
                response.error_message,
            )
            return self._error_result(
                correlation_id,
                response.error_code or ErrorCode.INTERNAL_ERROR,
                response.error_message,
                sanitized,
                sentiment,
                provider,
                started,
            )

        try:
            payload = _parse_model_output(response.content)
        except ModelOutputError as exc:
            logger.error("[%s] Could not parse AI response: %s", correlation_id, exc)
            return self._error_result(
                correlation_id,
                ErrorCode.PARSE_ERROR,
                f"Erro ao processar resposta da IA: {exc}",
                sanitized,
                sentiment,
                provider,
                started,
            )

        result = self._decide(correlation_id, payload, response, sanitized, sentiment, provider, started)

        logger.info(
            "[%s] Classification done - type: %s, service: %s, confidence: %s, status: %s",
            correlation_id,
            result.type,
            result.service_id,
            result.confidence_score,
            result.status.value,
        )

        self._cache.put(key, result)
        return result

    def _decide(
        self,
        correlation_id: str,
        payload: dict[str, Any],
        response: ProviderResponse,
        sanitized: SanitizedTicket,
        sentiment: SentimentSignal,
        provider: str,
        started: float,
    ) -> ClassificationResult:
        ticket_type = normalize_str_or_none(payload.get("tipo")) or ""
        service_id = normalize_str_or_none(payload.get("servico_id")) or ""
        service_name = normalize_str_or_none(payload.get("servico_nome")) or ""
        confidence = normalize_float_or_none(payload.get("confidence_score"))
        if confidence is None:
            confidence = 0.0

        valid_service = self._catalog.is_valid_service_id(service_id)
        threshold_met = confidence >= self._threshold and valid_service

        queue = self._fallback_queue
        if valid_service:
            # catalog wins over the model's free-text name and queue
            entry = self._catalog.lookup(service_id)
            if entry is not None:
                service_name = entry.name
                queue = entry.queue
        elif service_id or service_name:
            logger.warning(
                "[%s] Service id %r not in catalog (model name %r); routing to %r",
                correlation_id,
                service_id,
                service_name,
                self._fallback_queue,
            )

        if threshold_met:
            status = ClassificationStatus.APPLIED
        elif valid_service:
            status = ClassificationStatus.PARTIAL
        else:
            status = ClassificationStatus.MANUAL
            queue = self._fallback_queue

        return ClassificationResult(
            success=True,
            status=status,
            correlation_id=correlation_id,
            type=ticket_type,
            service_id=service_id,
            service_name=service_name,
            queue=queue,
            confidence_score=confidence,
            threshold_met=threshold_met,
            sentiment_score=sentiment.score,
            sentiment_label=sentiment.label,
            urgency_detected=sentiment.urgency_detected,
            criticality_score=sentiment.criticality_score,
            should_increase_severity=sentiment.should_increase_severity,
            processing_time_ms=_elapsed_ms(started),
            message=MESSAGE_APPLIED if threshold_met else MESSAGE_REVIEW,
            provider=provider,
            model=response.model,
            sanitized_subject=sanitized.subject,
            sanitized_body_summary=sanitized.body,
            masked_sender=sanitized.masked_sender,
        )

    def _manual_fallback_result(
        self,
        correlation_id: str,
        response: ProviderResponse,
        sanitized: SanitizedTicket,
        sentiment: SentimentSignal,
        provider: str,
        started: float,
    ) -> ClassificationResult:
        # the request was handled; only the AI step was skipped
        return ClassificationResult(
            success=True,
            status=ClassificationStatus.MANUAL,
            correlation_id=correlation_id,
            queue=self._fallback_queue,
            threshold_met=False,
            sentiment_score=sentiment.score,
            sentiment_label=sentiment.label,
            urgency_detected=sentiment.urgency_detected,
            criticality_score=sentiment.criticality_score,
            should_increase_severity=sentiment.should_increase_severity,
            processing_time_ms=_elapsed_ms(started),
            message=MESSAGE_AI_UNAVAILABLE,
            error_code=ErrorCode.AI_UNAVAILABLE,
            error_message=response.error_message,
            provider=provider,
            sanitized_subject=sanitized.subject,
            sanitized_body_summary=sanitized.body,
            masked_sender=sanitized.masked_sender,
        )

    def _error_result(
        self,
        correlation_id: str,
        error_code: str,
        error_message: str | None,
        sanitized: SanitizedTicket,
        sentiment: SentimentSignal,
        provider: str,
        started: float,
    ) -> ClassificationResult:
        return ClassificationResult(
            success=False,
            status=ClassificationStatus.NOT_APPLIED,
            correlation_id=correlation_id,
            queue=self._fallback_queue,
            sentiment_score=sentiment.score,
            sentiment_label=sentiment.label,
            urgency_detected=sentiment.urgency_detected,
            criticality_score=sentiment.criticality_score,
            should_increase_severity=sentiment.should_increase_severity,
            processing_time_ms=_elapsed_ms(started),
            error_code=error_code,
            error_message=error_message,
            provider=provider,
            sanitized_subject=sanitized.subject,
            sanitized_body_summary=sanitized.body,
            masked_sender=sanitized.masked_sender,
        )

    def _router_provider(self, request: ClassificationRequest) -> str:
        return self._router.resolve_provider(request.provider)

def _parse_model_output(content: str | None) -> dict[str, Any]:
    if content is None or not content.strip():
        raise ModelOutputError("empty content")

    try:
        data = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ModelOutputError(f"content is not valid JSON: {content[:300]!r}") from exc

    if not isinstance(data, dict):
        raise ModelOutputError(f"expected a JSON object, got {type(data).__name__}")

    return data

def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
