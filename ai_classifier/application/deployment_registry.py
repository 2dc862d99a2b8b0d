from __future__ import annotations
import logging
import threading
from dataclasses import replace
from typing import Iterable, Mapping
from ai_classifier.config import DEFAULT_MODEL, DEFAULT_PROVIDER, ProviderSettings
from ai_classifier.domain.models import Deployment, RegistryState


logger = logging.getLogger(__name__)

class DeploymentRegistry:
    """Catalog of model deployments per provider plus the process-wide defaults.

        Reads go through the current RegistryState snapshot without locking.
        Administrative writes build a new snapshot and swap the reference under
        a lock, so readers never observe a half-applied change.
        """

    def __init__(self, state: RegistryState) -> None:
        self._state = state
        self._write_lock = threading.Lock()

    @classmethod
    def from_configs(
        cls,
        settings: ProviderSettings,
        deployments: Mapping[str, Iterable[Deployment]],
    ) -> DeploymentRegistry:
        default_provider = (settings.default_provider or "").strip().lower() or DEFAULT_PROVIDER
        default_model = (settings.default_model or "").strip() or DEFAULT_MODEL

        registered: dict[str, tuple[Deployment, ...]] = {}
        for provider, items in deployments.items():
            # disabled deployments stay registered so they can be re-enabled later
            all_items = tuple(items)
            if not all_items:
                logger.warning("Provider %s has no deployments; not registered", provider)
                continue
            registered[provider.strip().lower()] = all_items
            logger.info(
                "Provider %s registered with %d model(s), enabled: %s",
                provider,
                len(all_items),
                [d.model_id for d in all_items if d.enabled],
            )

        state = RegistryState(
            deployments=registered,
            default_provider=default_provider,
            default_model=default_model,
        )
        logger.info(
            "Deployment registry initialized - providers: %s, default: %s/%s",
            list(registered.keys()),
            default_provider,
            default_model,
        )
        return cls(state)

    def snapshot(self) -> RegistryState:
        return self._state

    @property
    def default_provider(self) -> str:
        return self._state.default_provider

    @property
    def default_model(self) -> str:
        return self._state.default_model

    def available_providers(self) -> list[str]:
        return list(self._state.deployments.keys())

    def models_for_provider(self, provider: str) -> tuple[Deployment, ...]:
        return self._state.deployments.get(provider, ())

    def is_provider_available(self, provider: str) -> bool:
        return any(d.enabled for d in self.models_for_provider(provider))

    def is_model_available(self, provider: str, model_id: str | None) -> bool:
        if not model_id:
            return False
        return any(d.model_id == model_id and d.enabled for d in self.models_for_provider(provider))

    def get_deployment(self, provider: str, model_id: str) -> Deployment | None:
        for deployment in self.models_for_provider(provider):
            if deployment.model_id == model_id:
                return deployment
        return None

    def total_models_count(self) -> int:
        return sum(len(items) for items in self._state.deployments.values())

    def resolve_provider(self, explicit: str | None = None) -> str:
        if explicit is not None and explicit.strip():
            return explicit.strip().lower()
        return self._state.default_provider

    def resolve_model(self, provider: str, explicit: str | None = None) -> str:
        if explicit is not None and explicit.strip():
            return explicit.strip()

        # one snapshot for the whole decision
        state = self._state
        if provider == state.default_provider:
            return state.default_model

        for deployment in state.deployments.get(provider, ()):
            if deployment.enabled:
                return deployment.model_id

        return state.default_model

    def set_default_model(self, model_id: str) -> str:
        """Replace the default model and return the previous one."""

        with self._write_lock:
            previous = self._state.default_model
            self._state = replace(self._state, default_model=model_id)

        logger.info("Default model changed: %s -> %s", previous, model_id)
        return previous

    def set_deployment_enabled(self, provider: str, model_id: str, enabled: bool) -> bool:
        """Toggle a deployment. Returns False when the deployment is unknown."""

        with self._write_lock:
            state = self._state
            current = state.deployments.get(provider)
            if current is None or not any(d.model_id == model_id for d in current):
                return False

            updated = tuple(
                replace(d, enabled=enabled) if d.model_id == model_id else d
                for d in current
            )
            deployments = dict(state.deployments)
            deployments[provider] = updated
            self._state = replace(state, deployments=deployments)

        logger.info("Deployment %s/%s enabled=%s", provider, model_id, enabled)
        return True
