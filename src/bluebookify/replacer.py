from __future__ import annotations

import json
import re
from typing import Any, Sequence

from .errors import ReconciliationError, ResponseFormatError
from .models import AppliedCorrection, ApplyResult, CitationCorrection, CitationSpan

_FENCE_OPEN_RE = re.compile(r"\A```[A-Za-z0-9_+-]*[ \t]*\n?")
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*\Z")

SNIPPET_CHARS = 30


def _strip_fences(raw: str) -> str:
    cleaned = (raw or "").strip()
    cleaned = _FENCE_OPEN_RE.sub("", cleaned)
    cleaned = _FENCE_CLOSE_RE.sub("", cleaned)
    return cleaned.strip()


def _loads_array(candidate: str) -> list[Any] | None:
    try:
        value = json.loads(candidate)
    except json.JSONDecodeError:
        return None
    return value if isinstance(value, list) else None


def _scan_for_array(cleaned: str) -> list[Any] | None:
    """Pair each `[` (leftmost first) with the last `]` and keep the first that parses.

    Noise such as "[my analysis]" before the payload fails to parse and is
    skipped; the earliest opening bracket that yields an array wins.
    """
    end = cleaned.rfind("]")
    if end == -1:
        return None
    for i in range(end):
        if cleaned[i] != "[":
            continue
        parsed = _loads_array(cleaned[i : end + 1])
        if parsed is not None:
            return parsed
    return None


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_response(raw: str) -> list[CitationCorrection]:
    """Parse an LLM reply into corrections, in array order.

    Accepts a bare JSON array, one wrapped in a code fence, or one embedded in
    prose. Every record needs an integer `id` and a non-blank string
    `citation`; ids must be unique within the reply.
    """
    cleaned = _strip_fences(raw)

    parsed = _loads_array(cleaned)
    if parsed is None:
        parsed = _scan_for_array(cleaned)
    if parsed is None:
        raise ResponseFormatError(f"Invalid LLM response: no JSON array found. Response: {cleaned[:200]}")

    corrections: list[CitationCorrection] = []
    seen_ids: set[int] = set()
    for idx, item in enumerate(parsed):
        if not isinstance(item, dict) or not _is_int(item.get("id")) or not isinstance(item.get("citation"), str):
            raise ResponseFormatError(
                f"Invalid correction at index {idx}: {json.dumps(item, ensure_ascii=False)}"
            )
        span_id = int(item["id"])
        citation = item["citation"]
        if not citation.strip():
            raise ResponseFormatError(
                f"Empty citation at index {idx} (id {span_id}): citation must be a non-empty string"
            )
        if span_id in seen_ids:
            raise ResponseFormatError(f"Duplicate correction id {span_id} at index {idx}")
        seen_ids.add(span_id)
        corrections.append(CitationCorrection(span_id=span_id, citation=citation))
    return corrections


def _context_snippet(span: CitationSpan, replacement: str) -> str:
    before = span.before[-SNIPPET_CHARS:]
    after = span.after[:SNIPPET_CHARS]
    return f"{before}[{span.text}→{replacement}]{after}"


def apply_corrections(
    text: str,
    spans: Sequence[CitationSpan],
    corrections: Sequence[CitationCorrection],
) -> ApplyResult:
    """Splice corrections into `text`.

    Every span needs exactly one correction and every correction a span;
    a repeated correction id is rejected.
    Only replacements that differ from the original are applied, from the
    end of the text backwards so pending offsets stay valid; the returned
    audit list is ordered by ascending position.
    """
    by_id: dict[int, str] = {}
    for c in corrections:
        if c.span_id in by_id:
            raise ReconciliationError(f"Duplicate correction for citation id {c.span_id}")
        by_id[c.span_id] = c.citation
    span_ids = {s.span_id for s in spans}

    for span in spans:
        if span.span_id not in by_id:
            raise ReconciliationError(f"Missing correction for citation id {span.span_id}")
    for span_id in by_id:
        if span_id not in span_ids:
            raise ReconciliationError(f"Unknown correction id {span_id}: no matching citation context")

    changes = [(span, by_id[span.span_id]) for span in spans if by_id[span.span_id] != span.text]
    changes.sort(key=lambda item: item[0].start, reverse=True)

    out = text
    applied: list[AppliedCorrection] = []
    for span, replacement in changes:
        out = out[: span.start] + replacement + out[span.end :]
        applied.append(
            AppliedCorrection(
                position=span.start,
                original=span.text,
                replacement=replacement,
                context=_context_snippet(span, replacement),
            )
        )

    applied.reverse()
    return ApplyResult(text=out, applied=applied)
