from __future__ import annotations
import logging
import threading
import time
from dataclasses import replace
from typing import Any
from google import genai
from google.genai import errors, types
from ai_classifier.config import GeminiConfig
from ai_classifier.domain.errors import ErrorCode
from ai_classifier.domain.models import ProviderRequest, ProviderResponse
from ai_classifier.shared.normalization import normalize_int_or_none


logger = logging.getLogger(__name__)

PROVIDER_NAME = "gemini"

class GeminiClient:
    """Wrapper around the Google GenAI client exposing the chat-completion contract.

        The system prompt goes in as system_instruction, the user prompt as the
        content, and the model is asked for JSON output. SDK exceptions are
        mapped to ProviderResponse failures.
        """

    def __init__(self, config: GeminiConfig) -> None:
        self._config = config
        self._lock = threading.Lock()
        self._client: Any = genai.Client(api_key=config.api_key) if config.is_configured() else None

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_available(self) -> bool:
        return self._config.is_configured() and self._client is not None

    def rotate_api_key(self, api_key: str) -> None:
        with self._lock:
            config = replace(self._config, api_key=api_key)
            self._client = genai.Client(api_key=api_key) if config.is_configured() else None
            self._config = config
        logger.info("Gemini API key updated")

    def test_connection(self, model: str) -> ProviderResponse:
        return self.send_chat_completion(ProviderRequest.connection_test(model))

    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        started = time.monotonic()
        with self._lock:
            config = self._config
            client = self._client

        if not config.is_configured() or client is None:
            return ProviderResponse.failure(
                ErrorCode.NOT_CONFIGURED,
                "Gemini nao esta configurado ou habilitado",
                model=request.model,
            )

        model_id = request.model
        if not model_id or not model_id.strip():
            return ProviderResponse.failure(ErrorCode.NO_MODEL, "Model ID nao especificado para Gemini")

        # enabled state is owned by the deployment registry and checked by the router
        deployment = config.deployments.get(model_id)
        if deployment is None:
            return ProviderResponse.failure(
                ErrorCode.INVALID_MODEL,
                f"Modelo '{model_id}' nao encontrado",
                model=model_id,
            )

        temperature = request.temperature
        if temperature is None:
            temperature = deployment.temperature if deployment.temperature is not None else config.default_temperature
        max_tokens = request.max_tokens
        if max_tokens is None:
            max_tokens = deployment.max_tokens if deployment.max_tokens is not None else config.default_max_tokens

        try:
            response = client.models.generate_content(
                model=deployment.deployment_name,
                contents=request.user_prompt,
                config=types.GenerateContentConfig(
                    system_instruction=request.system_prompt,
                    response_mime_type="application/json",
                    temperature=temperature,
                    max_output_tokens=max_tokens,
                ),
            )
        except errors.APIError as exc:
            logger.error("Gemini API call failed for model %s: %s", model_id, exc)
            code = normalize_int_or_none(getattr(exc, "code", None))
            return ProviderResponse.failure(
                ErrorCode.http(code) if code else ErrorCode.TRANSPORT_ERROR,
                str(exc),
                model=model_id,
                latency_ms=_elapsed_ms(started),
            )
        except Exception as exc:
            logger.error("Gemini call failed for model %s: %s", model_id, exc)
            return ProviderResponse.failure(
                ErrorCode.TRANSPORT_ERROR,
                str(exc),
                model=model_id,
                latency_ms=_elapsed_ms(started),
            )

        latency_ms = _elapsed_ms(started)
        text = getattr(response, "text", None)
        if not isinstance(text, str) or not text.strip():
            return ProviderResponse.failure(
                ErrorCode.PARSE_ERROR,
                "Gemini response contained no text",
                model=model_id,
                latency_ms=latency_ms,
            )

        usage = getattr(response, "usage_metadata", None)
        prompt_tokens = normalize_int_or_none(getattr(usage, "prompt_token_count", None), allow_zero=True) or 0
        completion_tokens = normalize_int_or_none(getattr(usage, "candidates_token_count", None), allow_zero=True) or 0
        total_tokens = normalize_int_or_none(getattr(usage, "total_token_count", None), allow_zero=True) or 0

        logger.debug(
            "Gemini response - model: %s, tokens: prompt=%d, completion=%d, total=%d, latency=%dms",
            model_id,
            prompt_tokens,
            completion_tokens,
            total_tokens,
            latency_ms,
        )

        return ProviderResponse.ok(
            content=text,
            model=model_id,
            latency_ms=latency_ms,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
        )

def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
