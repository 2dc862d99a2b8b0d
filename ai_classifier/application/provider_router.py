from __future__ import annotations
import logging
from dataclasses import replace
from typing import Iterable
from ai_classifier.application.deployment_registry import DeploymentRegistry
from ai_classifier.application.ports import ProviderClient
from ai_classifier.config import DEFAULT_MODEL
from ai_classifier.domain.errors import ErrorCode
from ai_classifier.domain.models import ProviderRequest, ProviderResponse


logger = logging.getLogger(__name__)

class ProviderRouter:
    """Routes a chat-completion request to the right provider client.

        Resolution: provider and model come from the request or the registry
        defaults. Routing: the primary model is tried once and, on failure,
        the configured fallback model is tried once. When nothing succeeds the
        result is an AI_UNAVAILABLE response; route() never raises.
        """

    def __init__(
        self,
        registry: DeploymentRegistry,
        clients: Iterable[ProviderClient] = (),
        fallback_model: str = DEFAULT_MODEL,
    ) -> None:
        self._registry = registry
        self._fallback_model = fallback_model
        self._clients: dict[str, ProviderClient] = {}
        for client in clients:
            self.register_client(client)

    @property
    def fallback_model(self) -> str:
        return self._fallback_model

    def register_client(self, client: ProviderClient) -> None:
        name = client.provider_name.strip().lower()
        self._clients[name] = client
        logger.debug("Registered provider client %s for %s", type(client).__name__, name)

    def get_client(self, provider: str) -> ProviderClient | None:
        return self._clients.get(provider)

    def registered_providers(self) -> list[str]:
        return list(self._clients.keys())

    def resolve_provider(self, explicit: str | None = None) -> str:
        return self._registry.resolve_provider(explicit)

    def route(self, request: ProviderRequest) -> ProviderResponse:
        provider = self._registry.resolve_provider(request.provider)
        model = self._registry.resolve_model(provider, request.model)

        logger.debug("Routing request to provider=%s model=%s", provider, model)

        if not self._registry.is_provider_available(provider):
            logger.error("Provider %s not available; routing to manual classification", provider)
            return _unavailable(f"Provider '{provider}' nao disponivel")

        if not self._registry.is_model_available(provider, model):
            if self._registry.is_model_available(provider, self._fallback_model):
                logger.warning(
                    "Model %s not available on %s; using fallback %s",
                    model,
                    provider,
                    self._fallback_model,
                )
                model = self._fallback_model
            else:
                logger.error("Model %s not available on %s and no fallback available", model, provider)
                return _unavailable(f"Modelo '{model}' nao disponivel")

        response = self._invoke(provider, replace(request, provider=provider, model=model))
        if response.success:
            return response

        last_failure = response
        if model != self._fallback_model and self._registry.is_model_available(provider, self._fallback_model):
            logger.warning(
                "Model %s failed (%s); retrying once with fallback %s",
                model,
                response.error_code,
                self._fallback_model,
            )
            fallback_response = self._invoke(
                provider,
                replace(request, provider=provider, model=self._fallback_model),
            )
            if fallback_response.success:
                logger.info("Fallback to %s succeeded", self._fallback_model)
                return fallback_response

            logger.error("Fallback %s also failed: %s", self._fallback_model, fallback_response.error_code)
            last_failure = fallback_response

        logger.error("All models failed for provider %s; routing to manual classification", provider)
        return _unavailable(
            f"IA temporariamente indisponivel (ultimo erro: {last_failure.error_code}: "
            f"{last_failure.error_message})"
        )

    def test_connection(self, provider: str | None = None, model: str | None = None) -> ProviderResponse:
        """Health check against one provider/model; no fallback is attempted."""

        resolved_provider = self._registry.resolve_provider(provider)
        resolved_model = self._registry.resolve_model(resolved_provider, model)

        logger.info("Testing connection to %s/%s", resolved_provider, resolved_model)

        if not self._registry.is_provider_available(resolved_provider):
            return ProviderResponse.failure(
                ErrorCode.PROVIDER_UNAVAILABLE,
                f"Provider '{resolved_provider}' nao esta disponivel",
                model=resolved_model,
            )

        client = self._clients.get(resolved_provider)
        if client is None:
            return _unknown_provider(resolved_provider, resolved_model)

        try:
            return client.test_connection(resolved_model)
        except Exception as exc:
            logger.exception("Provider client %s raised during test_connection", resolved_provider)
            return ProviderResponse.failure(ErrorCode.INTERNAL_ERROR, str(exc), model=resolved_model)

    def _invoke(self, provider: str, request: ProviderRequest) -> ProviderResponse:
        client = self._clients.get(provider)
        if client is None:
            return _unknown_provider(provider, request.model)

        # a misbehaving client must not break the routing contract
        try:
            return client.send_chat_completion(request)
        except Exception as exc:
            logger.exception("Provider client %s raised instead of returning a response", provider)
            return ProviderResponse.failure(ErrorCode.INTERNAL_ERROR, str(exc), model=request.model)

def _unavailable(reason: str) -> ProviderResponse:
    return ProviderResponse.failure(ErrorCode.AI_UNAVAILABLE, reason)

def _unknown_provider(provider: str, model: str | None) -> ProviderResponse:
    return ProviderResponse.failure(
        ErrorCode.UNKNOWN_PROVIDER,
        f"Provider desconhecido: {provider}",
        model=model,
    )
