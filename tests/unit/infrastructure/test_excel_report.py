from __future__ import annotations
from datetime import datetime
from io import BytesIO
from pathlib import Path
from openpyxl import load_workbook
from ai_classifier.domain.models import ClassificationResult, ClassificationStatus
from ai_classifier.infrastructure.excel import HEADERS, build_excel, save_excel


# build a ClassificationResult
def _make_result(
    status: ClassificationStatus = ClassificationStatus.APPLIED,
    service_id: str | None = "REQ-101",
    confidence_score: float | None = 0.9,
    urgency_detected: bool = False,
) -> ClassificationResult:
    return ClassificationResult(
        success=True,
        status=status,
        type="REQ",
        service_id=service_id,
        service_name="Resetar Senha de Usuario",
        queue="Identidade e Acesso",
        confidence_score=confidence_score,
        threshold_met=status == ClassificationStatus.APPLIED,
        sentiment_label="neutral",
        urgency_detected=urgency_detected,
        provider="azure-openai",
        model="gpt-4o-mini",
        processing_time_ms=120,
        sanitized_subject="Senha expirada",
    )

def test_build_excel() -> None:
    # given
    rows = [
        ("T-3", _make_result(status=ClassificationStatus.MANUAL, service_id=None, confidence_score=None)),
        ("T-2", _make_result(service_id="REQ-102")),
        ("T-1", _make_result(status=ClassificationStatus.PARTIAL, confidence_score=0.5, urgency_detected=True)),
        ("T-0", _make_result()),
    ]

    # when
    excel_bytes = build_excel(rows)

    # then
    wb = load_workbook(BytesIO(excel_bytes))
    ws = wb.active

    assert ws.title == "Classifications"
    assert [cell.value for cell in ws[1]] == HEADERS
    assert ws["A1"].font.bold is True

    # applied first (by service id), then partial, then manual
    assert [ws.cell(row=r, column=1).value for r in range(2, 6)] == ["T-0", "T-2", "T-1", "T-3"]

    partial_row = [cell.value for cell in ws[4]]
    assert partial_row[HEADERS.index("status")] == "partial"
    assert partial_row[HEADERS.index("confidence_score")] == 0.5
    assert partial_row[HEADERS.index("threshold_met")] == "no"
    assert partial_row[HEADERS.index("urgency_detected")] == "yes"

    manual_row = [cell.value for cell in ws[5]]
    # blank values are written as empty cells
    assert manual_row[HEADERS.index("service_id")] in (None, "")
    assert manual_row[HEADERS.index("confidence_score")] in (None, "")

def test_build_excel_without_rows_has_only_header() -> None:
    wb = load_workbook(BytesIO(build_excel([])))

    assert wb.active.max_row == 1

def test_save_excel_writes_timestamped_file(tmp_path: Path) -> None:
    now = datetime(2025, 3, 14, 9, 26, 53)

    path = save_excel([(None, _make_result())], output_dir=tmp_path / "out", now=now)

    assert path == tmp_path / "out" / "classified_tickets_20250314_092653.xlsx"
    assert path.exists()
    wb = load_workbook(path)
    assert wb.active.cell(row=2, column=1).value in (None, "")
    assert wb.active.cell(row=2, column=4).value == "REQ-101"
