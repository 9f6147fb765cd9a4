from __future__ import annotations

import csv
import importlib.util
import io
import json
import sys
from pathlib import Path

import pytest

from criteria_analyzer.config import settings
from criteria_analyzer.ingestion import IngestionOrchestrator
from criteria_analyzer.upstage import ProxyRequest, ProxyResponse, UpstageClient

REPO_ROOT = Path(__file__).resolve().parents[2]
SCRIPT_PATH = REPO_ROOT / "scripts" / "analyze_documents.py"


def _load_script_module():
    spec = importlib.util.spec_from_file_location("analyze_documents", SCRIPT_PATH)
    assert spec is not None
    assert spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[spec.name] = module
    spec.loader.exec_module(module)
    return module


class FakeTransport:
    def __init__(self, has_credential: bool = True) -> None:
        self.has_credential = has_credential

    async def __call__(self, request: ProxyRequest) -> ProxyResponse:
        if request.is_form_data:
            return ProxyResponse(status_code=200, body={"content": {"text": "체크리스트"}})
        reply = json.dumps({"소프트웨어명": "클래스팅", "1-1": "충족"}, ensure_ascii=False)
        return ProxyResponse(status_code=200, body={"choices": [{"message": {"content": reply}}]})


def test_script_writes_csv_for_accepted_files(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
    module = _load_script_module()
    document = tmp_path / "checklist.pdf"
    document.write_bytes(b"%PDF-1.7")
    out_path = tmp_path / "out" / "results.csv"
    monkeypatch.setattr(
        module,
        "build_orchestrator",
        lambda: IngestionOrchestrator(settings, UpstageClient(settings, FakeTransport())),
    )
    monkeypatch.setattr(sys, "argv", ["analyze_documents.py", str(document), "--out", str(out_path)])

    assert module.main() == 0

    rows = list(csv.reader(io.StringIO(out_path.read_text(encoding="utf-8-sig"), newline="")))
    assert rows[1][:2] == ["1", "클래스팅"]
    assert rows[1][5] == "O"
    assert "분석 완료" in capsys.readouterr().out


def test_script_exits_when_no_file_is_supported(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    module = _load_script_module()
    notes = tmp_path / "notes.txt"
    notes.write_text("memo", encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["analyze_documents.py", str(notes)])

    assert module.main() == 1


def test_script_exits_without_credential(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    module = _load_script_module()
    document = tmp_path / "checklist.hwp"
    document.write_bytes(b"HWP")
    monkeypatch.setattr(
        module,
        "build_orchestrator",
        lambda: IngestionOrchestrator(settings, UpstageClient(settings, FakeTransport(has_credential=False))),
    )
    monkeypatch.setattr(sys, "argv", ["analyze_documents.py", str(document)])

    assert module.main() == 1
