from __future__ import annotations

import json

from bluebookify.models import AppliedCorrection
from bluebookify.report import write_audit_jsonl, write_audit_report

CHANGES = [
    AppliedCorrection(position=8, original="Smith v Jones", replacement="*Smith v. Jones*", context="held in [Smith v Jones→*Smith v. Jones*] that"),
    AppliedCorrection(position=40, original="Id. at 5", replacement="*Id.* at 5", context="<b> [Id. at 5→*Id.* at 5] &"),
]


def test_audit_jsonl_writes_one_record_per_change(tmp_path):
    path = tmp_path / "out" / "audit.jsonl"
    write_audit_jsonl(CHANGES, path)

    records = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    assert [r["position"] for r in records] == [8, 40]
    assert records[0] == {
        "position": 8,
        "original": "Smith v Jones",
        "replacement": "*Smith v. Jones*",
        "context": "held in [Smith v Jones→*Smith v. Jones*] that",
    }
    assert "→" in path.read_text(encoding="utf-8")


def test_audit_report_escapes_html(tmp_path):
    path = tmp_path / "audit.html"
    write_audit_report(CHANGES, path)

    html = path.read_text(encoding="utf-8")
    assert "<td class='pos'>40</td>" in html
    assert "&lt;b&gt; [Id. at 5→*Id.* at 5] &amp;" in html
    assert "<b>" not in html


def test_audit_report_handles_no_changes(tmp_path):
    path = tmp_path / "audit.html"
    write_audit_report([], path)
    assert "No citations changed." in path.read_text(encoding="utf-8")
