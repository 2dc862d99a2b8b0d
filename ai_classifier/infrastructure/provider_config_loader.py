from __future__ import annotations
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple
import yaml
from ai_classifier.config import DEFAULT_MODEL, DEFAULT_PROVIDER, DeploymentConfig
from ai_classifier.domain.models import Deployment
from ai_classifier.shared.normalization import (
    normalize_bool,
    normalize_float_or_none,
    normalize_int_or_none,
    normalize_str_or_none,
)


logger = logging.getLogger(__name__)

ProviderDeployments = Dict[str, Dict[str, DeploymentConfig]]

# used when AI_PROVIDERS_FILE is not set
DEFAULT_PROVIDER_DEPLOYMENTS: Mapping[str, Mapping[str, DeploymentConfig]] = {
    DEFAULT_PROVIDER: {
        DEFAULT_MODEL: DeploymentConfig(deployment_name=DEFAULT_MODEL, display_name="GPT-4o Mini"),
    },
}

class ProviderConfigError(RuntimeError):
    """Raised when the providers file cannot be read or has an unexpected shape."""

def load_provider_deployments(path: str | Path | None) -> ProviderDeployments:
    """Read per-provider deployment definitions.

        Expected shape::

            providers:
              azure-openai:
                deployments:
                  gpt-4o-mini:
                    deployment_name: gpt-4o-mini-prod
                    display_name: GPT-4o Mini
                    enabled: true
                    temperature: 0.3
                    max_tokens: 500
        """

    if not path:
        logger.info("AI_PROVIDERS_FILE not set; using built-in default deployment")
        return {provider: dict(models) for provider, models in DEFAULT_PROVIDER_DEPLOYMENTS.items()}

    file_path = Path(path)
    try:
        text = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Failed to read providers file {file_path}: {exc}"
        logger.error(msg)
        raise ProviderConfigError(msg) from exc

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        msg = f"Failed to parse providers file {file_path}"
        logger.error(msg)
        raise ProviderConfigError(msg) from exc

    return parse_provider_deployments(data)

def parse_provider_deployments(data: Any) -> ProviderDeployments:
    providers_raw = data.get("providers") if isinstance(data, dict) else None
    if not isinstance(providers_raw, dict):
        msg = "Unexpected providers file shape; expected a 'providers' mapping"
        logger.error(msg)
        raise ProviderConfigError(msg)

    result: ProviderDeployments = {}
    for provider_raw, provider_cfg in providers_raw.items():
        provider = str(provider_raw).strip().lower()
        deployments_raw = provider_cfg.get("deployments") if isinstance(provider_cfg, dict) else None
        if not isinstance(deployments_raw, dict):
            msg = f"Provider '{provider}' must define a 'deployments' mapping"
            logger.error(msg)
            raise ProviderConfigError(msg)

        models: Dict[str, DeploymentConfig] = {}
        for model_raw, item in deployments_raw.items():
            model_id = str(model_raw).strip()
            item = item or {}
            if not isinstance(item, dict):
                msg = f"Deployment '{provider}/{model_id}' must be a mapping"
                logger.error(msg)
                raise ProviderConfigError(msg)

            models[model_id] = DeploymentConfig(
                deployment_name=normalize_str_or_none(item.get("deployment_name")) or model_id,
                display_name=normalize_str_or_none(item.get("display_name")),
                description=normalize_str_or_none(item.get("description")),
                enabled=normalize_bool(item.get("enabled"), True),
                temperature=normalize_float_or_none(item.get("temperature")),
                max_tokens=normalize_int_or_none(item.get("max_tokens")),
            )

        result[provider] = models

    logger.info(
        "Loaded providers file: %s",
        {provider: list(models) for provider, models in result.items()},
    )
    return result

def to_deployments(models: Mapping[str, DeploymentConfig]) -> Tuple[Deployment, ...]:
    """Map one provider's deployment configs to registry entries, in file order."""

    items: List[Deployment] = []
    for model_id, cfg in models.items():
        items.append(
            Deployment(
                model_id=model_id,
                deployment_name=cfg.deployment_name,
                display_name=cfg.display_name or model_id,
                enabled=cfg.enabled,
                description=cfg.description,
                default_temperature=cfg.temperature,
                default_max_tokens=cfg.max_tokens,
            )
        )
    return tuple(items)
