from __future__ import annotations
import logging
from typing import Any, Sequence
from ai_classifier.application.deployment_registry import DeploymentRegistry
from ai_classifier.application.provider_router import ProviderRouter
from ai_classifier.application.result_cache import ResultCache
from ai_classifier.domain.errors import ErrorCode


logger = logging.getLogger(__name__)

class AdminOperationError(RuntimeError):
    """Raised when an administrative change is rejected."""

    def __init__(self, error_code: str, message: str, available_models: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.available_models = list(available_models)

class AdminService:
    """Runtime administration: default model, deployment toggles, credential rotation and status.

        All writes are applied as atomic swaps in the registry or provider
        client, so they take effect for the next request without a restart.
        """

    def __init__(self, registry: DeploymentRegistry, router: ProviderRouter, cache: ResultCache) -> None:
        self._registry = registry
        self._router = router
        self._cache = cache

    def set_default_model(self, model: str | None) -> dict[str, str]:
        if model is None or not model.strip():
            raise AdminOperationError(ErrorCode.VALIDATION_ERROR, "Campo 'model' e obrigatorio")

        model = model.strip()
        provider = self._registry.default_provider
        if not self._registry.is_model_available(provider, model):
            available = self._enabled_models(provider)
            raise AdminOperationError(
                ErrorCode.MODEL_NOT_AVAILABLE,
                f"Modelo '{model}' nao encontrado ou desabilitado no provider '{provider}'",
                available_models=available,
            )

        previous = self._registry.set_default_model(model)
        return {"previous_model": previous, "current_model": model}

    def set_deployment_enabled(self, model: str | None, enabled: bool, provider: str | None = None) -> dict[str, Any]:
        """Enable or disable a deployment at runtime.

            The current default model cannot be disabled; switch the default first.
            """

        if model is None or not model.strip():
            raise AdminOperationError(ErrorCode.VALIDATION_ERROR, "Campo 'model' e obrigatorio")

        model = model.strip()
        resolved = self._registry.resolve_provider(provider)
        is_default = resolved == self._registry.default_provider and model == self._registry.default_model
        if not enabled and is_default:
            raise AdminOperationError(
                ErrorCode.VALIDATION_ERROR,
                f"Modelo '{model}' e o padrao atual e nao pode ser desabilitado",
            )

        if not self._registry.set_deployment_enabled(resolved, model, enabled):
            raise AdminOperationError(
                ErrorCode.MODEL_NOT_AVAILABLE,
                f"Modelo '{model}' nao encontrado no provider '{resolved}'",
                available_models=self._enabled_models(resolved),
            )

        return {"provider": resolved, "model": model, "enabled": enabled}

    def rotate_api_key(self, api_key: str | None, provider: str | None = None) -> None:
        if api_key is None or not api_key.strip():
            raise AdminOperationError(ErrorCode.VALIDATION_ERROR, "Campo 'apiKey' e obrigatorio")

        resolved = self._registry.resolve_provider(provider)
        client = self._router.get_client(resolved)
        rotate = getattr(client, "rotate_api_key", None)
        if client is None or not callable(rotate):
            raise AdminOperationError(
                ErrorCode.UNKNOWN_PROVIDER,
                f"Provider '{resolved}' nao suporta rotacao de chave",
            )

        rotate(api_key.strip())
        logger.info("API key rotated for provider %s", resolved)

    def config_status(self) -> dict[str, Any]:
        """Configuration overview without secret values."""

        providers: dict[str, Any] = {}
        for name in sorted(set(self._registry.available_providers()) | set(self._router.registered_providers())):
            client = self._router.get_client(name)
            info: dict[str, Any] = {
                "available": self._registry.is_provider_available(name),
                "client_registered": client is not None,
                "client_configured": bool(client is not None and client.is_available()),
                "models": self._enabled_models(name),
            }
            circuit_state = getattr(client, "circuit_state", None)
            if circuit_state is not None:
                info["circuit_state"] = circuit_state
            providers[name] = info

        return {
            "default_provider": self._registry.default_provider,
            "default_model": self._registry.default_model,
            "fallback_model": self._router.fallback_model,
            "providers": providers,
            "cache": self._cache.stats(),
        }

    def list_providers(self) -> dict[str, Any]:
        default_provider = self._registry.default_provider
        default_model = self._registry.default_model

        providers: list[dict[str, Any]] = []
        for name in self._registry.available_providers():
            models = [
                {
                    "id": d.model_id,
                    "name": d.display_name,
                    "description": d.description,
                    "enabled": d.enabled,
                    "default": name == default_provider and d.model_id == default_model,
                }
                for d in self._registry.models_for_provider(name)
            ]
            providers.append(
                {
                    "id": name,
                    "available": self._registry.is_provider_available(name),
                    "default": name == default_provider,
                    "models": models,
                }
            )

        return {
            "providers": providers,
            "default_provider": default_provider,
            "default_model": default_model,
            "total_models": self._registry.total_models_count(),
        }

    def _enabled_models(self, provider: str) -> list[str]:
        return [d.model_id for d in self._registry.models_for_provider(provider) if d.enabled]
