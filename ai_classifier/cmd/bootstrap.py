from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple
from ai_classifier.application.admin import AdminService
from ai_classifier.application.classify_ticket import TicketClassifier
from ai_classifier.application.deployment_registry import DeploymentRegistry
from ai_classifier.application.ports import ProviderClient
from ai_classifier.application.provider_router import ProviderRouter
from ai_classifier.application.result_cache import ResultCache
from ai_classifier.config import (
    load_azure_openai_config,
    load_cache_config,
    load_classification_config,
    load_gemini_config,
    load_provider_settings,
    load_resilience_config,
    load_sanitizer_config,
    load_service_catalog_config,
)
from ai_classifier.domain.models import Deployment
from ai_classifier.domain.service_catalog import ServiceCatalog
from ai_classifier.infrastructure.azure_openai_client import AzureOpenAIClient
from ai_classifier.infrastructure.circuit_breaker import CircuitBreaker, CircuitBreakingClient
from ai_classifier.infrastructure.gemini_client import GeminiClient
from ai_classifier.infrastructure.prompt_builder import CatalogPromptBuilder
from ai_classifier.infrastructure.provider_config_loader import ProviderConfigError, load_provider_deployments, to_deployments
from ai_classifier.infrastructure.sanitizer import TicketSanitizer
from ai_classifier.infrastructure.sentiment import LexiconSentimentAnalyzer
from ai_classifier.infrastructure.service_catalog_loader import ServiceCatalogError, ServiceCatalogLoader


logger = logging.getLogger(__name__)

@dataclass(frozen=True)
class Engine:
    classifier: TicketClassifier
    router: ProviderRouter
    registry: DeploymentRegistry
    cache: ResultCache
    admin: AdminService
    catalog: ServiceCatalog

def logging_conf(level: int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
    )

def build_engine() -> Engine:
    """Wire configuration, provider clients and collaborators into a ready classifier.

        Only providers whose client is configured contribute deployments to the
        registry. Catalog or providers-file problems terminate the process with
        SystemExit(1).
        """

    settings = load_provider_settings()
    try:
        provider_deployments = load_provider_deployments(settings.providers_file)
    except ProviderConfigError as exc:
        logger.error("Failed to load providers file: %s", exc)
        raise SystemExit(1) from exc

    resilience = load_resilience_config()
    raw_clients: List[ProviderClient] = [
        AzureOpenAIClient(
            load_azure_openai_config(provider_deployments.get("azure-openai", {})),
            max_retries=resilience.max_retries,
            backoff_factor=resilience.backoff_factor,
        ),
        GeminiClient(load_gemini_config(provider_deployments.get("gemini", {}))),
    ]

    clients: List[ProviderClient] = []
    registry_deployments: Dict[str, Tuple[Deployment, ...]] = {}
    for client in raw_clients:
        name = client.provider_name
        if not client.is_available():
            logger.warning("Provider %s is not configured; skipping", name)
            continue
        breaker = CircuitBreaker.from_config(name, resilience)
        clients.append(CircuitBreakingClient(client, breaker))
        registry_deployments[name] = to_deployments(provider_deployments.get(name, {}))

    unknown = sorted(set(provider_deployments) - {c.provider_name for c in raw_clients})
    if unknown:
        logger.warning("Providers file lists providers without a client: %s", ", ".join(unknown))

    registry = DeploymentRegistry.from_configs(settings, registry_deployments)
    router = ProviderRouter(registry, clients, fallback_model=settings.fallback_model)

    catalog = _load_service_catalog(ServiceCatalogLoader(load_service_catalog_config()))
    classification_config = load_classification_config()
    cache = ResultCache(load_cache_config())

    classifier = TicketClassifier(
        router=router,
        cache=cache,
        catalog=catalog,
        sanitizer=TicketSanitizer(load_sanitizer_config()),
        sentiment_analyzer=LexiconSentimentAnalyzer(),
        prompt_builder=CatalogPromptBuilder(catalog, classification_config.confidence_threshold),
        config=classification_config,
    )

    return Engine(
        classifier=classifier,
        router=router,
        registry=registry,
        cache=cache,
        admin=AdminService(registry, router, cache),
        catalog=catalog,
    )

def _load_service_catalog(loader: ServiceCatalogLoader) -> ServiceCatalog:
    try:
        catalog = loader.load()
    except ServiceCatalogError as exc:
        logger.error("Failed to load Service Catalog: %s", exc)
        raise SystemExit(1) from exc

    return catalog
