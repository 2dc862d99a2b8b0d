from __future__ import annotations
import argparse
import logging
from collections import Counter
from pathlib import Path
from typing import Any, List, Sequence
import yaml
from ai_classifier.cmd.bootstrap import build_engine, logging_conf
from ai_classifier.domain.models import ClassificationRequest, ClassificationResult
from ai_classifier.infrastructure.excel import ExcelReportError, save_excel
from ai_classifier.shared.normalization import normalize_str_or_none


logger = logging.getLogger(__name__)

class TicketFileError(RuntimeError):
    """Raised when the tickets input file cannot be read or has an unexpected shape."""

def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="ai-classifier-batch",
        description="Classify a batch of tickets and write an Excel report.",
    )
    parser.add_argument("input", help="YAML or JSON file with a list of tickets")
    parser.add_argument("--output-dir", default="output", help="directory for the Excel report")
    parser.add_argument("--workers", type=int, default=8, help="concurrent classifications")
    parser.add_argument("--provider", default=None, help="provider override for every ticket")
    parser.add_argument("--model", default=None, help="model override for every ticket")
    parser.add_argument("--no-report", action="store_true", help="skip writing the Excel report")
    return parser.parse_args(argv)

def load_tickets(path: Path, provider: str | None = None, model: str | None = None) -> List[ClassificationRequest]:
    """Read tickets from YAML or JSON (JSON is valid YAML).

        Accepts either a top-level list or a mapping with a 'tickets' list.
        Each item needs at least a subject; per-ticket provider/model win over
        the command-line overrides.
        """

    try:
        data: Any = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise TicketFileError(f"Failed to read tickets file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise TicketFileError(f"Failed to parse tickets file {path}") from exc

    items = data.get("tickets") if isinstance(data, dict) else data
    if not isinstance(items, list):
        raise TicketFileError("Tickets file must contain a list of tickets")

    tickets: List[ClassificationRequest] = []
    for idx, item in enumerate(items):
        if not isinstance(item, dict):
            raise TicketFileError(f"Ticket #{idx} is not a mapping")

        subject = normalize_str_or_none(item.get("subject"))
        if subject is None:
            raise TicketFileError(f"Ticket #{idx} has no subject")

        tickets.append(
            ClassificationRequest(
                subject=subject,
                body=normalize_str_or_none(item.get("body")),
                sender_email=normalize_str_or_none(item.get("sender_email") or item.get("sender")),
                ticket_id=normalize_str_or_none(item.get("ticket_id") or item.get("id")),
                provider=normalize_str_or_none(item.get("provider")) or provider,
                model=normalize_str_or_none(item.get("model")) or model,
                correlation_id=normalize_str_or_none(item.get("correlation_id")),
                context=normalize_str_or_none(item.get("context")),
            )
        )

    return tickets

def summarize(results: Sequence[ClassificationResult]) -> Counter[str]:
    return Counter(result.status.value for result in results)

def main(argv: Sequence[str] | None = None) -> None:
    logging_conf()
    args = parse_args(argv)

    try:
        tickets = load_tickets(Path(args.input), provider=args.provider, model=args.model)
    except TicketFileError as exc:
        logger.error("%s", exc)
        raise SystemExit(1) from exc
    logger.info("Loaded %d tickets from %s", len(tickets), args.input)

    engine = build_engine()
    results = engine.classifier.classify_many(tickets, max_workers=args.workers)

    counts = summarize(results)
    logger.info(
        "Classification finished: %d tickets, status counts: %s",
        len(results),
        dict(sorted(counts.items())),
    )
    for ticket, result in list(zip(tickets, results))[:3]:
        logger.info(
            "Ticket %s -> status=%s service=%s queue=%r confidence=%s",
            ticket.ticket_id,
            result.status.value,
            result.service_id,
            result.queue,
            result.confidence_score,
        )

    if args.no_report:
        return

    try:
        save_excel(
            [(ticket.ticket_id, result) for ticket, result in zip(tickets, results)],
            output_dir=args.output_dir,
        )
    except ExcelReportError as exc:
        logger.error("Failed to write Excel report: %s", exc)
        raise SystemExit(1) from exc

if __name__ == "__main__":
    main()
