from __future__ import annotations
import logging
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, List, Tuple
from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.worksheet import Worksheet
from ai_classifier.domain.models import ClassificationResult


logger = logging.getLogger(__name__)

ReportRow = Tuple[str | None, ClassificationResult]

STATUS_ORDER = {"applied": 0, "partial": 1, "manual": 2, "not_applied": 3}

HEADERS = [
    "ticket_id",
    "status",
    "type",
    "service_id",
    "service_name",
    "queue",
    "confidence_score",
    "threshold_met",
    "sentiment_label",
    "urgency_detected",
    "should_increase_severity",
    "provider",
    "model",
    "error_code",
    "processing_time_ms",
    "sanitized_subject",
]

class ExcelReportError(RuntimeError):
    """Raised when the Excel report cannot be generated or written."""

def build_excel(rows: Iterable[ReportRow]) -> bytes:

    # sorts by status, service_id, ticket_id (ascending)
    sorted_rows: List[ReportRow] = sorted(
        rows,
        key=lambda r: (
            STATUS_ORDER.get(r[1].status.value, len(STATUS_ORDER)),
            (r[1].service_id or "").lower(),
            (r[0] or "").lower(),
        ),
    )

    try:
        wb = Workbook()

        ws_raw = wb.active
        if ws_raw is None or not isinstance(ws_raw, Worksheet):
            logger.error("Active sheet is not a Worksheet or is None: %r", ws_raw)
            raise ExcelReportError("Failed to get active worksheet")
        ws: Worksheet = ws_raw

        ws.title = "Classifications"
        ws.append(HEADERS)

        header_font = Font(bold=True)
        for col_idx in range(1, len(HEADERS) + 1):
            ws.cell(row=1, column=col_idx).font = header_font

        for ticket_id, result in sorted_rows:
            ws.append(
                [
                    ticket_id or "",
                    result.status.value,
                    result.type or "",
                    result.service_id or "",
                    result.service_name or "",
                    result.queue or "",
                    result.confidence_score if result.confidence_score is not None else "",
                    "yes" if result.threshold_met else "no",
                    result.sentiment_label or "",
                    "yes" if result.urgency_detected else "no",
                    "yes" if result.should_increase_severity else "no",
                    result.provider or "",
                    result.model or "",
                    result.error_code or "",
                    result.processing_time_ms if result.processing_time_ms is not None else "",
                    result.sanitized_subject or "",
                ]
            )

        # auto-fit by setting column width from max content length
        for column_cells in ws.columns:
            col_index: Any = column_cells[0].column
            if not isinstance(col_index, int):
                logger.warning("Unexpected column index type: %r (%r)", col_index, type(col_index))
                continue

            max_length = max((len(str(cell.value)) for cell in column_cells if cell.value is not None), default=0)
            ws.column_dimensions[get_column_letter(col_index)].width = max_length + 2

        with BytesIO() as buffer:
            wb.save(buffer)
            return buffer.getvalue()

    except ExcelReportError:
        raise
    except Exception as exc:
        logger.exception("Failed to build Excel report")
        raise ExcelReportError("Failed to build Excel report") from exc

def save_excel(
    rows: Iterable[ReportRow],
    output_dir: str | Path = "output",
    filename_prefix: str = "classified_tickets_",
    now: datetime | None = None,
) -> Path:
    """Build the report and write it as <output_dir>/<prefix><timestamp>.xlsx."""

    content = build_excel(rows)
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    directory = Path(output_dir)
    path = directory / f"{filename_prefix}{timestamp}.xlsx"

    try:
        directory.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
    except OSError as exc:
        msg = f"Failed to write Excel report to {path}: {exc}"
        logger.error(msg)
        raise ExcelReportError(msg) from exc

    logger.info("Excel report saved to %s (%d bytes)", path, len(content))
    return path
