from __future__ import annotations
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict
import requests
import yaml
from requests import HTTPError, RequestException
from ai_classifier.config import ServiceCatalogConfig
from ai_classifier.domain.service_catalog import Queue, Service, ServiceCatalog


logger = logging.getLogger(__name__)

BUNDLED_CATALOG_PATH = Path(__file__).resolve().parent.parent / "resources" / "service_catalog.yaml"

class ServiceCatalogError(RuntimeError):
    """Raised when the Service Catalog cannot be retrieved, parsed, or validated."""

class ServiceCatalogLoader:
    """Loads the service/queue catalog from a URL, a local file, or the bundled YAML.

        Resolution order: config.url, then config.path, then the catalog
        shipped in ai_classifier/resources.
        """

    def __init__(self, config: ServiceCatalogConfig | None = None) -> None:
        self._config = config or ServiceCatalogConfig()
        self._session = requests.Session()

    def load(self) -> ServiceCatalog:
        if self._config.url:
            text = self._download_text(self._config.url)
        else:
            text = self._read_file(Path(self._config.path) if self._config.path else BUNDLED_CATALOG_PATH)

        data = self._parse_yaml(text)
        catalog = parse_catalog(data)
        logger.info(
            "Loaded Service Catalog: %d queues, %d services",
            len(catalog.queues),
            len(catalog.services),
        )
        return catalog

    def _download_text(self, url: str) -> str:
        try:
            response = self._session.get(url, timeout=self._config.timeout_seconds)
            response.raise_for_status()
        except (HTTPError, RequestException) as exc:
            msg = f"Error calling Service Catalog endpoint: {exc}"
            logger.error(msg)
            raise ServiceCatalogError(msg) from exc

        text = response.text
        logger.debug("Raw Service Catalog response length=%d", len(text))
        return text

    def _read_file(self, path: Path) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except OSError as exc:
            msg = f"Failed to read Service Catalog file {path}: {exc}"
            logger.error(msg)
            raise ServiceCatalogError(msg) from exc

    def _parse_yaml(self, text: str) -> Any:
        try:
            return yaml.safe_load(text)
        except yaml.YAMLError as exc:
            msg = "Failed to parse Service Catalog YAML"
            logger.error(msg)
            raise ServiceCatalogError(msg) from exc

def parse_catalog(data: Any) -> ServiceCatalog:
    try:
        root = data["service_catalog"]
        queues_raw = root["queues"]
        services_raw = root["services"]
    except (TypeError, KeyError) as exc:
        msg = (
            "Unexpected Service Catalog shape; "
            "expected 'service_catalog.queues' and 'service_catalog.services'"
        )
        logger.error("%s: %s", msg, exc)
        raise ServiceCatalogError(msg) from exc

    try:
        queues: Dict[str, Queue] = {}
        for item in queues_raw:
            queue = Queue(
                id=str(item["id"]),
                name=str(item["name"]),
                description=str(item.get("description") or ""),
            )
            queues[queue.id] = queue

        services: Dict[str, Service] = {}
        for item in services_raw:
            service = Service(
                id=str(item["id"]),
                type=str(item["type"]),
                name=str(item["name"]),
                queue_id=str(item["queue_id"]),
                description=str(item.get("description") or ""),
                domain=str(item.get("domain") or ""),
            )
            services[service.id] = service
    except (KeyError, TypeError, AttributeError) as exc:
        msg = "Failed to map Service Catalog to domain models"
        logger.error("%s: %s", msg, exc)
        raise ServiceCatalogError(msg) from exc

    unknown = sorted(svc.id for svc in services.values() if svc.queue_id not in queues)
    if unknown:
        logger.warning("Services reference unknown queues: %s", ", ".join(unknown))

    # read-only views; the catalog is shared by every worker
    return ServiceCatalog(services=MappingProxyType(services), queues=MappingProxyType(queues))
