import asyncio
import json
from pathlib import Path

from reference_harvester import cli
from reference_harvester.models import Extraction, RunResult, Window
from reference_harvester.state import ExtractionState, add_extraction


class FakeHarvester:
    instances = []

    def __init__(self, settings):
        self.settings = settings
        self.calls = []
        FakeHarvester.instances.append(self)

    async def process_file(self, path, references_only=False, callbacks=None):
        self.calls.append((Path(path), references_only))
        state = ExtractionState(windows=[Window(0, 0, 10, 10, "x" * 10)])
        citation = Extraction(title="Sample article title", year="2021", doi="10.1234/jt")
        citation.assign_identity(0)
        citation.validation_status = "valid"
        citation.validation_message = "DOI verified via CrossRef (98% match)"
        add_extraction(state, citation)
        await asyncio.sleep(0)
        return state, RunResult(total_extractions=1, cancelled=False)


def _patch(monkeypatch):
    FakeHarvester.instances = []
    monkeypatch.setattr(cli, "ReferenceHarvesterApp", FakeHarvester)
    monkeypatch.setattr(cli, "configure_logging", lambda level=None: None)
    monkeypatch.setattr("reference_harvester.config.load_dotenv", lambda: False)
    for name in ("LLM_API_KEY", "LLM_MODEL", "LLM_PROVIDER", "LLM_ENDPOINT", "WINDOW_SIZE", "OVERLAP"):
        monkeypatch.delenv(f"REFHARVEST_{name}", raising=False)


def test_cli_writes_report_and_json(tmp_path: Path, monkeypatch, capsys):
    _patch(monkeypatch)
    monkeypatch.setenv("REFHARVEST_LLM_API_KEY", "key")
    manuscript = tmp_path / "paper.txt"
    manuscript.write_text("References\n1. Doe J. Sample article title. 2021.")
    json_out = tmp_path / "results.json"

    exit_code = cli.main(
        [
            str(manuscript),
            "--model",
            "gemini-test",
            "--window-size",
            "1200",
            "--references-only",
            "--json-output",
            str(json_out),
        ]
    )

    assert exit_code == 0
    harvester = FakeHarvester.instances[0]
    assert harvester.settings.window_size == 1200
    assert harvester.settings.llm_model == "gemini-test"
    assert harvester.calls == [(manuscript, True)]

    output = capsys.readouterr().out
    assert "Reference Extraction Report" in output
    assert "[VALID] extraction-0: Sample article title (2021)" in output

    payload = json.loads(json_out.read_text())
    assert payload["run"]["total_extractions"] == 1
    assert payload["extractions"][0]["doi"] == "10.1234/jt"
    assert payload["extractions"][0]["validation_status"] == "valid"


def test_cli_requires_configured_model(tmp_path: Path, monkeypatch, capsys):
    _patch(monkeypatch)
    manuscript = tmp_path / "paper.txt"
    manuscript.write_text("Doe J. 2021.")

    exit_code = cli.main([str(manuscript)])

    assert exit_code == 2
    assert FakeHarvester.instances == []
    assert "not configured" in capsys.readouterr().err
