from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, TypedDict


class Message(TypedDict):
    role: str
    content: str


# The oracle: role-tagged messages in, raw reply text out.
LLMFn = Callable[[list[Message]], str]


@dataclass(frozen=True)
class CitationSpan:
    """A citation-shaped region of the input text, with surrounding context.

    `start`/`end` index into the original text (`end` exclusive) and
    `text == original[start:end]` always holds.
    """

    span_id: int
    text: str
    start: int
    end: int
    before: str = ""
    after: str = ""


@dataclass(frozen=True)
class CitationCorrection:
    """Replacement proposed by the LLM for one span, keyed by span id."""

    span_id: int
    citation: str


@dataclass(frozen=True)
class AppliedCorrection:
    position: int
    original: str
    replacement: str
    context: str


@dataclass(frozen=True)
class ApplyResult:
    text: str
    applied: list[AppliedCorrection] = field(default_factory=list)


@dataclass(frozen=True)
class BluebookifyResult:
    text: str
    corrections: list[AppliedCorrection] = field(default_factory=list)
    unchanged: bool = True
