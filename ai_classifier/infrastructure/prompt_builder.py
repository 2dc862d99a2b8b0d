from __future__ import annotations
import logging
from typing import List
from ai_classifier.domain.models import PromptResult
from ai_classifier.domain.service_catalog import ServiceCatalog
from ai_classifier.infrastructure.classification_prompt import CLASSIFICATION_SYSTEM_PROMPT_TEMPLATE


logger = logging.getLogger(__name__)

class CatalogPromptBuilder:
    """Builds classification prompts with the service catalog embedded in the system prompt.

        The system prompt depends only on the catalog and the threshold, so it is
        rendered once; the user prompt carries the sanitized ticket, the sentiment
        hints and optional similar-ticket context.
        """

    def __init__(self, catalog: ServiceCatalog, confidence_threshold: float = 0.75) -> None:
        self._catalog = catalog
        self._system_prompt = render_system_prompt(catalog, confidence_threshold)
        logger.debug("Classification system prompt rendered (%d chars)", len(self._system_prompt))

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    def build(
        self,
        subject: str,
        body: str,
        sentiment_label: str | None = None,
        urgency_detected: bool = False,
        context: str | None = None,
    ) -> PromptResult:
        summary = body or ""
        if sentiment_label and sentiment_label.strip():
            summary += f" [Sentimento: {sentiment_label}]"
        if urgency_detected:
            summary += " [Urgencia detectada]"

        lines = [
            "### Ticket a Classificar",
            f'Assunto: "{subject or ""}"',
            f'Resumo: "{summary}"',
        ]
        user_prompt = "\n".join(lines) + "\n"

        if context and context.strip():
            user_prompt += f"\n### Contexto de tickets similares:\n{context}\n"

        return PromptResult(system_prompt=self._system_prompt, user_prompt=user_prompt)

def render_system_prompt(catalog: ServiceCatalog, confidence_threshold: float = 0.75) -> str:
    queues_block = "\n".join(
        f"{queue.id} | {queue.name} | {queue.description}" for queue in catalog.queues.values()
    )

    sections: List[str] = []
    for queue in catalog.queues.values():
        services = [svc for svc in catalog.services.values() if svc.queue_id == queue.id]
        if not services:
            continue

        sections.append(f"--- {queue.name.upper()} ({queue.id}) ---")
        for svc in services:
            sections.append(f"{svc.id} | {svc.type} | {svc.name} | {svc.description} | {svc.domain or queue.name}")
        sections.append("")

    return CLASSIFICATION_SYSTEM_PROMPT_TEMPLATE.format(
        threshold=confidence_threshold,
        queues_block=queues_block,
        services_block="\n".join(sections).rstrip(),
    ).strip()
