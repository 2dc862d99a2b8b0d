from __future__ import annotations
from dataclasses import dataclass, field
from typing import Mapping


@dataclass(frozen=True)
class Queue:
    id: str
    name: str
    description: str = ""

@dataclass(frozen=True)
class Service:
    id: str
    type: str
    name: str
    queue_id: str
    description: str = ""
    domain: str = ""

@dataclass(frozen=True)
class CatalogEntry:
    name: str
    queue: str


@dataclass(frozen=True)
class ServiceCatalog:
    """Read-only service/queue taxonomy, built once at startup and shared by reference."""

    services: Mapping[str, Service] = field(default_factory=dict)
    queues: Mapping[str, Queue] = field(default_factory=dict)

    def is_valid_service_id(self, service_id: str | None) -> bool:
        if not service_id:
            return False
        return service_id in self.services

    def get_service(self, service_id: str | None) -> Service | None:
        if not service_id:
            return None
        return self.services.get(service_id)

    def get_queue(self, queue_id: str | None) -> Queue | None:
        if not queue_id:
            return None
        return self.queues.get(queue_id)

    def queue_for_service(self, service_id: str | None) -> Queue | None:
        service = self.get_service(service_id)
        if service is None:
            return None
        return self.get_queue(service.queue_id)

    def lookup(self, service_id: str | None) -> CatalogEntry | None:
        """Return the authoritative service name and queue name for a service id."""

        service = self.get_service(service_id)
        if service is None:
            return None

        queue = self.get_queue(service.queue_id)
        queue_name = queue.name if queue is not None else service.domain
        return CatalogEntry(name=service.name, queue=queue_name)
