from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Pattern

from .errors import ConfigError
from .models import CitationSpan

# Matchers are deliberately loose: the LLM decides what is correct, so missing
# periods, "vs." and stray spaces inside reporter abbreviations are accepted.
_NAME = r"[A-Z][A-Za-z'.\-]+(?:\s+[A-Z][A-Za-z'.\-]+)*"
_REPORTER = (
    r"(?:U\.?\s?S\."
    r"|US"
    r"|S\.?\s?Ct\."
    r"|L\.?\s?Ed\.(?:\s?2d)?"
    r"|F\.?\s?(?:2d|3d|4th)"
    r"|F\.?\s?Supp\.(?:\s?(?:2d|3d))?"
    r"|F\.?\s?App'x)"
)
# Early Supreme Court volumes carry a nominative reporter: 5 U.S. (1 Cranch) 137
_NOMINATIVE = r"(?:\s*\(\d+\s+[A-Z][A-Za-z.]*\))?"
_PINCITE = r"(?:[,–-]\s*\d+)?"

# Full case citation: Name v. Name, 123 Reporter 456, 458 (Court Year)
CASE_RE = re.compile(
    _NAME
    + r"\s+vs?\.?\s+"
    + _NAME
    + r",?\s+\d+\s+"
    + _REPORTER
    + _NOMINATIVE
    + r"\s+\d+(?:,\s*\d+(?:[–-]\d+)?)?(?:\s*\([^)]*\d{4}\))?"
)

# Statutes and regulations: 42 U.S.C. § 1983, 29 C.F.R. § 1926.1053(a)
STATUTE_RE = re.compile(
    r"\d+\s+(?:U\.?\s?S\.?\s?C\.?(?:\s?A\.?)?|C\.?\s?F\.?\s?R\.?)"
    r"\s*(?:§+\s*)?\d+(?:\.\d+)?(?:\([a-zA-Z0-9]+\))*(?:[–-]\d+(?:\.\d+)?)?"
)

# Short form with locator: Smith, 456 F.3d at 792
SHORT_FORM_RE = re.compile(r"[A-Z][A-Za-z'.\-]+,\s+\d+\s+" + _REPORTER + r"\s+at\s+\d+" + _PINCITE)

# Back-reference: Id. / id. at 12
ID_RE = re.compile(r"\b[Ii]d\.(?:\s+at\s+\d+" + _PINCITE + r")?")

# Introductory signals; the trailing whitespace is part of the match.
SIGNAL_RE = re.compile(
    r"\b(?:See\s+also|But\s+see|But\s+cf\.|See,?\s+e\.g\.,|See|Cf\.|Accord,?|Compare|Contra|E\.g\.,)\s"
)

CITATION_PATTERNS: tuple[Pattern[str], ...] = (CASE_RE, STATUTE_RE, SHORT_FORM_RE, ID_RE)


@dataclass(frozen=True)
class PatternRule:
    name: str
    pattern: str
    flags: str = ""  # e.g. "I" for IGNORECASE
    description: str = ""


@dataclass(frozen=True)
class PatternSet:
    rules: tuple[PatternRule, ...] = ()


def _compile_rule(rule: PatternRule) -> Pattern[str]:
    flags = 0
    if "I" in rule.flags.upper():
        flags |= re.IGNORECASE
    if "M" in rule.flags.upper():
        flags |= re.MULTILINE
    if "S" in rule.flags.upper():
        flags |= re.DOTALL
    try:
        return re.compile(rule.pattern, flags=flags)
    except re.error as e:
        raise ConfigError(f"Invalid pattern for rule '{rule.name}': {e}") from e


def compile_pattern_set(pattern_set: PatternSet) -> tuple[Pattern[str], ...]:
    """Compile extra matcher rules, failing early on a bad regex."""
    return tuple(_compile_rule(r) for r in pattern_set.rules)


def _find_all(patterns: Iterable[Pattern[str]], text: str) -> list[tuple[int, int]]:
    hits: list[tuple[int, int]] = []
    for pattern in patterns:
        for m in pattern.finditer(text):
            if m.end() > m.start():
                hits.append((m.start(), m.end()))
    return hits


def merge_intervals(hits: Iterable[tuple[int, int]]) -> list[tuple[int, int]]:
    """Union overlapping or touching intervals.

    Ties on start go to the longer interval so it absorbs the shorter one.
    """
    merged: list[list[int]] = []
    for start, end in sorted(hits, key=lambda h: (h[0], -h[1])):
        if merged and start <= merged[-1][1]:
            merged[-1][1] = max(merged[-1][1], end)
        else:
            merged.append([start, end])
    return [(start, end) for start, end in merged]


def _absorb_signals(intervals: list[tuple[int, int]], signals: list[tuple[int, int]]) -> list[tuple[int, int]]:
    out: list[tuple[int, int]] = []
    prev_end = 0
    for start, end in intervals:
        for sig_start, sig_end in signals:
            # Allow one separating character between the signal and the citation.
            if sig_end in (start, start - 1) and sig_start >= prev_end:
                start = sig_start
                break
        out.append((start, end))
        prev_end = end
    return out


def _context_before(text: str, start: int, size: int) -> str:
    b_start = max(0, start - size)
    before = text[b_start:start]
    if b_start > 0:
        if not text[b_start - 1].isspace() and before and not before[0].isspace():
            m = re.search(r"\s", before)
            if m:
                before = before[m.start() :]
        before = before.lstrip()
    return before


def _context_after(text: str, end: int, size: int) -> str:
    a_end = min(len(text), end + size)
    after = text[end:a_end]
    if a_end < len(text):
        if not text[a_end].isspace() and after and not after[-1].isspace():
            m = re.search(r"\s\S*\Z", after)
            if m and m.start() > 0:
                after = after[: m.start()]
        after = after.rstrip()
    return after


def extract_citations(
    text: str,
    context_size: int = 100,
    *,
    extra_rules: PatternSet | None = None,
) -> list[CitationSpan]:
    """Find citation spans in `text`, left to right, with ids 0..n-1.

    Overlapping hits from different matchers are merged into one span, and an
    introductory signal directly in front of a citation becomes part of it.
    """
    if not text:
        return []

    patterns = CITATION_PATTERNS
    if extra_rules is not None and extra_rules.rules:
        patterns = patterns + compile_pattern_set(extra_rules)

    intervals = merge_intervals(_find_all(patterns, text))
    signals = [(m.start(), m.end()) for m in SIGNAL_RE.finditer(text)]
    intervals = _absorb_signals(intervals, signals)

    return [
        CitationSpan(
            span_id=i,
            text=text[start:end],
            start=start,
            end=end,
            before=_context_before(text, start, context_size),
            after=_context_after(text, end, context_size),
        )
        for i, (start, end) in enumerate(intervals)
    ]
