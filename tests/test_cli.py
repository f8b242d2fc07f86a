from __future__ import annotations

import json

from bluebookify import cli
from bluebookify.models import AppliedCorrection, BluebookifyResult


def _write_config(path) -> None:
    path.write_text(
        "llm:\n"
        "  provider: ollama\n"
        "batch_size: 4\n",
        encoding="utf-8",
    )


def test_cli_correct_applies_overrides_and_writes_outputs(tmp_path, monkeypatch, capsys):
    cfg_path = tmp_path / "config.yaml"
    _write_config(cfg_path)
    src = tmp_path / "brief.txt"
    src.write_text("held in Smith v Jones, 1 F.3d 2 (1990).", encoding="utf-8")
    out = tmp_path / "out" / "brief.txt"
    audit = tmp_path / "audit.jsonl"

    called: dict[str, object] = {}
    change = AppliedCorrection(
        position=8,
        original="Smith v Jones, 1 F.3d 2 (1990)",
        replacement="*Smith v. Jones*, 1 F.3d 2 (1990)",
        context="held in [Smith v Jones, 1 F.3d 2 (1990)→*Smith v. Jones*, 1 F.3d 2 (1990)].",
    )

    def _fake_bluebookify(text, cfg, **kwargs):  # noqa: ANN001, ANN003
        called["text"] = text
        called["cfg"] = cfg
        called.update(kwargs)
        return BluebookifyResult(text="held in *Smith v. Jones*, 1 F.3d 2 (1990).", corrections=[change], unchanged=False)

    monkeypatch.setattr(cli, "bluebookify", _fake_bluebookify)

    rc = cli.main(
        [
            "correct",
            "--input",
            str(src),
            "--output",
            str(out),
            "--config",
            str(cfg_path),
            "--model",
            "llama3.2",
            "--batch-size",
            "2",
            "--audit-jsonl",
            str(audit),
            "--log",
            str(tmp_path / "run.log"),
        ]
    )

    assert rc == 0
    assert called["text"] == "held in Smith v Jones, 1 F.3d 2 (1990)."
    assert called["show_progress"] is True
    cfg = called["cfg"]
    assert cfg.llm.provider == "ollama"
    assert cfg.llm.model == "llama3.2"
    assert cfg.batch_size == 2
    assert out.read_text(encoding="utf-8") == "held in *Smith v. Jones*, 1 F.3d 2 (1990)."
    assert json.loads(audit.read_text(encoding="utf-8").strip())["position"] == 8
    assert "Corrected citations: 1" in capsys.readouterr().out


def test_cli_correct_reports_unchanged(tmp_path, monkeypatch, capsys):
    src = tmp_path / "in.txt"
    src.write_text("No citations.", encoding="utf-8")

    def _fake_bluebookify(text, cfg, **kwargs):  # noqa: ANN001, ANN003
        return BluebookifyResult(text=text)

    monkeypatch.setattr(cli, "bluebookify", _fake_bluebookify)

    rc = cli.main(["correct", "-i", str(src), "-o", str(tmp_path / "out.txt"), "--provider", "openai"])
    assert rc == 0
    assert (tmp_path / "out.txt").read_text(encoding="utf-8") == "No citations."
    assert "No citation changes needed." in capsys.readouterr().out


def test_cli_extract_lists_spans_without_llm(tmp_path, capsys):
    src = tmp_path / "in.txt"
    src.write_text("Under 42 U.S.C. § 1983 relief lies. Id. at 3.", encoding="utf-8")

    rc = cli.main(["extract", "-i", str(src), "--context-size", "10"])

    assert rc == 0
    lines = capsys.readouterr().out.splitlines()
    assert lines[0] == "Citations found: 2"
    assert lines[1] == "[0] 6-22: 42 U.S.C. § 1983"
    assert lines[2].startswith("[1] ") and lines[2].endswith(": Id. at 3")
