from __future__ import annotations
from pathlib import Path
from types import SimpleNamespace
from typing import Any, List
import pytest
import ai_classifier.cmd.main as batch
from ai_classifier.cmd.main import TicketFileError, load_tickets, summarize
from ai_classifier.domain.models import ClassificationRequest, ClassificationResult, ClassificationStatus


TICKETS_YAML = """
tickets:
  - id: T-1
    subject: "Senha expirada"
    body: "Nao consigo logar"
    sender: "ana@caesb.df.gov.br"
  - ticket_id: T-2
    subject: "VPN fora do ar"
    provider: gemini
    model: gemini-2.0-flash
"""

class FakeClassifier:
    def __init__(self, results: List[ClassificationResult]) -> None:
        self.results = results
        self.calls: list[tuple[list[ClassificationRequest], int]] = []

    def classify_many(self, requests: Any, max_workers: int = 8) -> List[ClassificationResult]:
        self.calls.append((list(requests), max_workers))
        return self.results

def _result(status: ClassificationStatus, service_id: str | None = None) -> ClassificationResult:
    return ClassificationResult(success=True, status=status, service_id=service_id)

def _write(tmp_path: Path, text: str, name: str = "tickets.yaml") -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path

def test_load_tickets_maps_fields_and_overrides(tmp_path: Path) -> None:
    path = _write(tmp_path, TICKETS_YAML)

    tickets = load_tickets(path, provider="azure-openai", model="gpt-4o")

    assert tickets[0] == ClassificationRequest(
        subject="Senha expirada",
        body="Nao consigo logar",
        sender_email="ana@caesb.df.gov.br",
        ticket_id="T-1",
        provider="azure-openai",
        model="gpt-4o",
    )
    # per-ticket values win over command-line overrides
    assert tickets[1].ticket_id == "T-2"
    assert tickets[1].provider == "gemini"
    assert tickets[1].model == "gemini-2.0-flash"
    assert tickets[1].body is None

def test_load_tickets_accepts_json_list(tmp_path: Path) -> None:
    path = _write(tmp_path, '[{"subject": "Impressora sem toner", "id": 7}]', name="tickets.json")

    tickets = load_tickets(path)

    assert len(tickets) == 1
    assert tickets[0].ticket_id == "7"
    assert tickets[0].provider is None

@pytest.mark.parametrize(
    "text",
    [
        "tickets: {}",
        "- just a string",
        "- body: sem assunto",
        "tickets: [unclosed",
    ],
)
def test_load_tickets_rejects_bad_input(tmp_path: Path, text: str) -> None:
    with pytest.raises(TicketFileError):
        _ = load_tickets(_write(tmp_path, text))

def test_load_tickets_missing_file(tmp_path: Path) -> None:
    with pytest.raises(TicketFileError):
        _ = load_tickets(tmp_path / "missing.yaml")

def test_summarize_counts_statuses() -> None:
    counts = summarize(
        [
            _result(ClassificationStatus.APPLIED),
            _result(ClassificationStatus.MANUAL),
            _result(ClassificationStatus.APPLIED),
        ]
    )

    assert counts == {"applied": 2, "manual": 1}

def test_main_classifies_and_writes_report(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # arrange
    classifier = FakeClassifier(
        [_result(ClassificationStatus.APPLIED, "REQ-101"), _result(ClassificationStatus.MANUAL)]
    )
    monkeypatch.setattr(batch, "build_engine", lambda: SimpleNamespace(classifier=classifier))
    input_path = _write(tmp_path, TICKETS_YAML)
    output_dir = tmp_path / "out"

    # act
    batch.main([str(input_path), "--output-dir", str(output_dir), "--workers", "2"])

    # assert
    requests, workers = classifier.calls[0]
    assert [r.ticket_id for r in requests] == ["T-1", "T-2"]
    assert workers == 2
    reports = list(output_dir.glob("classified_tickets_*.xlsx"))
    assert len(reports) == 1

def test_main_without_report(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    classifier = FakeClassifier([_result(ClassificationStatus.APPLIED), _result(ClassificationStatus.APPLIED)])
    monkeypatch.setattr(batch, "build_engine", lambda: SimpleNamespace(classifier=classifier))
    output_dir = tmp_path / "out"

    batch.main([str(_write(tmp_path, TICKETS_YAML)), "--output-dir", str(output_dir), "--no-report"])

    assert not output_dir.exists()

def test_main_exits_on_bad_tickets_file(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    def fail_build_engine() -> Any:
        raise AssertionError("engine must not be built")

    monkeypatch.setattr(batch, "build_engine", fail_build_engine)

    with pytest.raises(SystemExit) as exc_info:
        batch.main([str(tmp_path / "missing.yaml")])

    assert exc_info.value.code == 1
