from __future__ import annotations
import logging
import threading
import time
from dataclasses import replace
from typing import Any
import requests
from requests import RequestException
from ai_classifier.config import AzureOpenAIConfig
from ai_classifier.domain.errors import ErrorCode
from ai_classifier.domain.models import ProviderRequest, ProviderResponse
from ai_classifier.shared.normalization import normalize_int_or_none


logger = logging.getLogger(__name__)

PROVIDER_NAME = "azure-openai"
RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

class AzureOpenAIClient:
    """Chat-completions client for Azure OpenAI deployments.

        Each model id maps to an Azure deployment. Transient failures (network
        errors, HTTP 429/5xx) are retried with exponential backoff up to
        max_retries attempts; every request carries (connect, read) timeouts.
        Nothing is raised to the caller: failures come back as ProviderResponse
        with an error code.
        """

    def __init__(
        self,
        config: AzureOpenAIConfig,
        max_retries: int = 3,
        backoff_factor: float = 1.0,
    ) -> None:
        self._config = config
        self._config_lock = threading.Lock()
        self._session = requests.Session()
        self._max_retries = max(1, max_retries)
        self._backoff_factor = backoff_factor

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    def is_available(self) -> bool:
        return self._config.is_configured()

    def rotate_api_key(self, api_key: str) -> None:
        with self._config_lock:
            self._config = replace(self._config, api_key=api_key)
        logger.info("Azure OpenAI API key updated")

    def test_connection(self, model: str) -> ProviderResponse:
        return self.send_chat_completion(ProviderRequest.connection_test(model))

    def send_chat_completion(self, request: ProviderRequest) -> ProviderResponse:
        started = time.monotonic()
        # one consistent view of the config for the whole call
        config = self._config

        if not config.is_configured():
            return ProviderResponse.failure(
                ErrorCode.NOT_CONFIGURED,
                "Azure OpenAI nao esta configurado ou habilitado",
                model=request.model,
            )

        model_id = request.model
        if not model_id or not model_id.strip():
            return ProviderResponse.failure(ErrorCode.NO_MODEL, "Model ID nao especificado para Azure OpenAI")

        # enabled state is owned by the deployment registry and checked by the router
        deployment = config.deployments.get(model_id)
        if deployment is None:
            return ProviderResponse.failure(
                ErrorCode.INVALID_MODEL,
                f"Modelo '{model_id}' nao encontrado",
                model=model_id,
            )

        # precedence: request > deployment > provider default
        temperature = request.temperature
        if temperature is None:
            temperature = deployment.temperature if deployment.temperature is not None else config.default_temperature
        max_tokens = request.max_tokens
        if max_tokens is None:
            max_tokens = deployment.max_tokens if deployment.max_tokens is not None else config.default_max_tokens

        body = {
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "response_format": {"type": "json_object"},
        }
        headers = {"Content-Type": "application/json", "api-key": config.api_key or ""}
        url = config.build_endpoint_url(deployment.deployment_name)

        logger.debug(
            "Sending request to Azure OpenAI - deployment: %s, model: %s",
            deployment.deployment_name,
            model_id,
        )

        response: requests.Response | None = None
        for attempt in range(1, self._max_retries + 1):
            try:
                response = self._session.post(
                    url,
                    json=body,
                    headers=headers,
                    timeout=(config.connect_timeout_seconds, config.read_timeout_seconds),
                )
            except RequestException as exc:
                if attempt == self._max_retries:
                    msg = f"Error calling Azure OpenAI after {self._max_retries} attempts: {exc}"
                    logger.error(msg)
                    return ProviderResponse.failure(
                        ErrorCode.TRANSPORT_ERROR,
                        msg,
                        model=model_id,
                        latency_ms=_elapsed_ms(started),
                    )
                self._backoff(attempt, str(exc))
                continue

            if response.status_code in RETRYABLE_STATUS_CODES and attempt < self._max_retries:
                self._backoff(attempt, f"HTTP {response.status_code}")
                continue
            break

        latency_ms = _elapsed_ms(started)
        if response is None:
            return ProviderResponse.failure(
                ErrorCode.TRANSPORT_ERROR,
                "Azure OpenAI call failed without a response object",
                model=model_id,
                latency_ms=latency_ms,
            )

        if not 200 <= response.status_code < 300:
            logger.error("Azure OpenAI returned HTTP %d for model %s", response.status_code, model_id)
            return ProviderResponse.failure(
                ErrorCode.http(response.status_code),
                "Resposta invalida do Azure OpenAI",
                model=model_id,
                latency_ms=latency_ms,
            )

        return _parse_completion(response, model_id, latency_ms)

    def _backoff(self, attempt: int, reason: str) -> None:
        sleep_seconds = self._backoff_factor * (2 ** (attempt - 1))
        logger.warning(
            "Azure OpenAI call failed on attempt %d/%d: %s; retrying in %.1f seconds",
            attempt,
            self._max_retries,
            reason,
            sleep_seconds,
        )
        if sleep_seconds > 0:
            time.sleep(sleep_seconds)

def _parse_completion(response: requests.Response, model: str, latency_ms: int) -> ProviderResponse:
    """Extract content and token usage from a chat-completions body."""

    try:
        data: Any = response.json()
        content = data["choices"][0]["message"]["content"]
    except (ValueError, KeyError, IndexError, TypeError) as exc:
        logger.error("Failed to parse Azure OpenAI response: %s", exc)
        return ProviderResponse.failure(
            ErrorCode.PARSE_ERROR,
            f"Erro ao processar resposta do Azure OpenAI: {exc}",
            model=model,
            latency_ms=latency_ms,
        )

    if not isinstance(content, str):
        return ProviderResponse.failure(
            ErrorCode.PARSE_ERROR,
            "Resposta do Azure OpenAI sem conteudo textual",
            model=model,
            latency_ms=latency_ms,
        )

    usage = data.get("usage") if isinstance(data, dict) else None
    if not isinstance(usage, dict):
        usage = {}

    prompt_tokens = normalize_int_or_none(usage.get("prompt_tokens"), allow_zero=True) or 0
    completion_tokens = normalize_int_or_none(usage.get("completion_tokens"), allow_zero=True) or 0
    total_tokens = normalize_int_or_none(usage.get("total_tokens"), allow_zero=True) or 0

    logger.debug(
        "Azure OpenAI response - model: %s, tokens: prompt=%d, completion=%d, total=%d, latency=%dms",
        model,
        prompt_tokens,
        completion_tokens,
        total_tokens,
        latency_ms,
    )

    return ProviderResponse.ok(
        content=content,
        model=model,
        latency_ms=latency_ms,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=total_tokens,
    )

def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
