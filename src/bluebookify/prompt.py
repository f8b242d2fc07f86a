from __future__ import annotations

import re
from typing import Sequence

from .models import CitationSpan, Message

SYSTEM_PROMPT_TEMPLATE = """You are a legal citation expert specializing in Bluebook format (The Bluebook: A Uniform System of Citation).

Your task is to correct each citation below to proper Bluebook format.

Key Bluebook rules to apply:
- Case names italicized (use *asterisks* for italic markers)
- Proper reporter abbreviations with correct spacing (e.g., "F.3d" not "F. 3d")
- Correct use of "v." (not "vs." or "vs")
- Proper pincite format with comma separators
- Proper short-form citations (Id. rules)
- Correct section symbols and spacing for statutes
- Proper parenthetical format for court and year
- Introductory signals (See, Cf., But see, E.g.,) italicized together with the citation they introduce"""

RESPONSE_CONTRACT = """IMPORTANT: You must return exactly one entry for every id provided. Do not skip any and do not add ids.
If a citation is already correctly formatted, return it unchanged.
Respond with ONLY a JSON array. No explanation, no markdown fences.
Format: [{"id":0,"citation":"*Marbury v. Madison*, 5 U.S. (1 Cranch) 137 (1803)"}]"""

_LINEBREAK_RE = re.compile(r"\s*[\r\n]+\s*")


def build_system_prompt(rules: str | None = None) -> str:
    sections = [SYSTEM_PROMPT_TEMPLATE]
    custom = (rules or "").strip()
    if custom:
        sections.append(f"Additional rules:\n{custom}")
    sections.append(RESPONSE_CONTRACT)
    return "\n\n".join(sections)


def _one_line(value: str) -> str:
    return _LINEBREAK_RE.sub(" ", value)


def format_span_line(span: CitationSpan) -> str:
    # Line breaks become single spaces so every span stays on its own line.
    return f"[{span.span_id}] “{_one_line(span.before)}” [{_one_line(span.text)}] “{_one_line(span.after)}”"


def build_messages(spans: Sequence[CitationSpan], rules: str | None = None) -> list[Message]:
    """Build the two-message request for one batch of spans."""
    user = "\n".join(format_span_line(span) for span in spans)
    return [
        {"role": "system", "content": build_system_prompt(rules)},
        {"role": "user", "content": user},
    ]
