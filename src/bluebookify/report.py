from __future__ import annotations

import html
import json
from dataclasses import asdict
from pathlib import Path
from typing import Iterable

from .models import AppliedCorrection


def write_audit_jsonl(corrections: Iterable[AppliedCorrection], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        for correction in corrections:
            f.write(json.dumps(asdict(correction), ensure_ascii=False) + "\n")


def write_audit_report(corrections: Iterable[AppliedCorrection], path: Path) -> None:
    rows: list[str] = []

    def esc(s: str) -> str:
        return html.escape(s, quote=True)

    for c in corrections:
        rows.append(
            "<tr>"
            + f"<td class='pos'>{c.position}</td>"
            + f"<td class='orig'>{esc(c.original)}</td>"
            + f"<td class='repl'>{esc(c.replacement)}</td>"
            + f"<td class='ctx'>{esc(c.context)}</td>"
            + "</tr>"
        )

    body = "\n".join(rows) if rows else "<tr><td colspan='4'>No citations changed.</td></tr>"
    doc = f"""<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>bluebookify audit</title>
<style>
body {{ font-family: system-ui, sans-serif; margin: 24px; }}
table {{ border-collapse: collapse; width: 100%; }}
th, td {{ border: 1px solid #ddd; padding: 6px 8px; vertical-align: top; }}
th {{ background: #f4f4f4; text-align: left; }}
td.orig {{ color: #a00; }}
td.repl {{ color: #070; }}
td.ctx {{ font-family: ui-monospace, monospace; font-size: 12px; white-space: pre-wrap; }}
</style>
</head>
<body>
<h1>Citation corrections</h1>
<table>
<thead><tr><th>Position</th><th>Original</th><th>Replacement</th><th>Context</th></tr></thead>
<tbody>
{body}
</tbody>
</table>
</body>
</html>
"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(doc, encoding="utf-8")
