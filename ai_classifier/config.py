from dataclasses import dataclass, field
import os
from typing import Mapping
from dotenv import load_dotenv


load_dotenv()

DEFAULT_PROVIDER = "azure-openai"
DEFAULT_MODEL = "gpt-4o-mini"

@dataclass(frozen=True)
class ClassificationConfig:
    confidence_threshold: float = 0.75
    fallback_queue: str = "Service Desk (1º Nivel)"

@dataclass(frozen=True)
class CacheConfig:
    ttl_minutes: int = 5
    max_size: int = 1000

@dataclass(frozen=True)
class ProviderSettings:
    default_provider: str = DEFAULT_PROVIDER
    default_model: str = DEFAULT_MODEL
    fallback_model: str = DEFAULT_MODEL
    providers_file: str | None = None

@dataclass(frozen=True)
class DeploymentConfig:
    deployment_name: str
    display_name: str | None = None
    description: str | None = None
    enabled: bool = True
    temperature: float | None = None
    max_tokens: int | None = None

@dataclass(frozen=True)
class AzureOpenAIConfig:
    enabled: bool = False
    resource_name: str | None = None
    api_key: str | None = None
    api_version: str = "2024-02-01"
    connect_timeout_seconds: float = 5.0
    read_timeout_seconds: float = 30.0
    default_temperature: float = 0.3
    default_max_tokens: int = 500
    deployments: Mapping[str, DeploymentConfig] = field(default_factory=dict)

    def build_endpoint_url(self, deployment_name: str) -> str:
        return (
            f"https://{self.resource_name}.openai.azure.com/openai/deployments/"
            f"{deployment_name}/chat/completions?api-version={self.api_version}"
        )

    def is_configured(self) -> bool:
        return bool(
            self.enabled
            and self.resource_name and self.resource_name.strip()
            and self.api_key and self.api_key.strip()
            and self.deployments
        )

@dataclass(frozen=True)
class GeminiConfig:
    enabled: bool = False
    api_key: str | None = None
    default_temperature: float = 0.0
    default_max_tokens: int = 500
    deployments: Mapping[str, DeploymentConfig] = field(default_factory=dict)

    def is_configured(self) -> bool:
        return bool(self.enabled and self.api_key and self.api_key.strip() and self.deployments)

@dataclass(frozen=True)
class SanitizerConfig:
    body_max_length: int = 300
    body_min_length: int = 200
    sanitize_pii: bool = True

@dataclass(frozen=True)
class ResilienceConfig:
    window_size: int = 10
    minimum_calls: int = 5
    failure_rate_threshold: float = 50.0
    open_duration_seconds: float = 30.0
    half_open_max_calls: int = 3
    max_retries: int = 3
    backoff_factor: float = 1.0

@dataclass(frozen=True)
class ServiceCatalogConfig:
    path: str | None = None
    url: str | None = None
    timeout_seconds: float = 10.0

def _get_required_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise RuntimeError(f"Environment variable {name} is required but not set")
    return value

def _get_str_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip()

def _get_float_env(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be a number, got {value!r}") from exc

def _get_int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {value!r}") from exc

def _get_bool_env(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}

def load_classification_config() -> ClassificationConfig:
    return ClassificationConfig(
        confidence_threshold=_get_float_env("AI_CONFIDENCE_THRESHOLD", 0.75),
        fallback_queue=_get_str_env("AI_FALLBACK_QUEUE", "Service Desk (1º Nivel)") or "",
    )

def load_cache_config() -> CacheConfig:
    return CacheConfig(
        ttl_minutes=_get_int_env("AI_CACHE_TTL_MINUTES", 5),
        max_size=_get_int_env("AI_CACHE_MAX_SIZE", 1000),
    )

def load_provider_settings() -> ProviderSettings:
    return ProviderSettings(
        default_provider=_get_str_env("AI_DEFAULT_PROVIDER", DEFAULT_PROVIDER) or DEFAULT_PROVIDER,
        default_model=_get_str_env("AI_DEFAULT_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL,
        fallback_model=_get_str_env("AI_FALLBACK_MODEL", DEFAULT_MODEL) or DEFAULT_MODEL,
        providers_file=_get_str_env("AI_PROVIDERS_FILE"),
    )

def load_azure_openai_config(deployments: Mapping[str, DeploymentConfig]) -> AzureOpenAIConfig:
    """Azure settings come from the environment, deployments from the providers file."""

    enabled = _get_bool_env("AZURE_OPENAI_ENABLED", False)
    if not enabled:
        return AzureOpenAIConfig(enabled=False, deployments=deployments)

    return AzureOpenAIConfig(
        enabled=True,
        resource_name=_get_required_env("AZURE_OPENAI_RESOURCE_NAME"),
        api_key=_get_required_env("AZURE_OPENAI_API_KEY"),
        api_version=_get_str_env("AZURE_OPENAI_API_VERSION", "2024-02-01") or "2024-02-01",
        connect_timeout_seconds=_get_float_env("AZURE_OPENAI_CONNECT_TIMEOUT", 5.0),
        read_timeout_seconds=_get_float_env("AZURE_OPENAI_READ_TIMEOUT", 30.0),
        default_temperature=_get_float_env("AZURE_OPENAI_TEMPERATURE", 0.3),
        default_max_tokens=_get_int_env("AZURE_OPENAI_MAX_TOKENS", 500),
        deployments=deployments,
    )

def load_gemini_config(deployments: Mapping[str, DeploymentConfig]) -> GeminiConfig:
    enabled = _get_bool_env("GEMINI_ENABLED", False)
    if not enabled:
        return GeminiConfig(enabled=False, deployments=deployments)

    return GeminiConfig(
        enabled=True,
        api_key=_get_required_env("GEMINI_API_KEY"),
        default_temperature=_get_float_env("GEMINI_TEMPERATURE", 0.0),
        default_max_tokens=_get_int_env("GEMINI_MAX_TOKENS", 500),
        deployments=deployments,
    )

def load_sanitizer_config() -> SanitizerConfig:
    return SanitizerConfig(
        body_max_length=_get_int_env("AI_SANITIZER_BODY_MAX_LENGTH", 300),
        body_min_length=_get_int_env("AI_SANITIZER_BODY_MIN_LENGTH", 200),
        sanitize_pii=_get_bool_env("AI_SANITIZER_SANITIZE_PII", True),
    )

def load_resilience_config() -> ResilienceConfig:
    return ResilienceConfig(
        window_size=_get_int_env("AI_CB_WINDOW_SIZE", 10),
        minimum_calls=_get_int_env("AI_CB_MINIMUM_CALLS", 5),
        failure_rate_threshold=_get_float_env("AI_CB_FAILURE_RATE_THRESHOLD", 50.0),
        open_duration_seconds=_get_float_env("AI_CB_OPEN_SECONDS", 30.0),
        half_open_max_calls=_get_int_env("AI_CB_HALF_OPEN_CALLS", 3),
        max_retries=_get_int_env("AI_RETRY_MAX_ATTEMPTS", 3),
        backoff_factor=_get_float_env("AI_RETRY_BACKOFF_SECONDS", 1.0),
    )

def load_service_catalog_config() -> ServiceCatalogConfig:
    return ServiceCatalogConfig(
        path=_get_str_env("SERVICE_CATALOG_PATH"),
        url=_get_str_env("SERVICE_CATALOG_URL"),
        timeout_seconds=_get_float_env("SERVICE_CATALOG_TIMEOUT", 10.0),
    )
