from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from tqdm import tqdm

from .config import BluebookifyConfig, require_int, validate_config
from .errors import BatchIntegrityError, ConfigError
from .extractor import extract_citations
from .llm import resolve_llm
from .logging_utils import LOGGER_NAME
from .models import BluebookifyResult, CitationCorrection, CitationSpan, LLMFn
from .prompt import build_messages
from .replacer import apply_corrections, parse_response

logger = logging.getLogger(LOGGER_NAME)


def _read_optional_text(path_value: str | None, label: str) -> str | None:
    if not path_value:
        return None
    path = Path(path_value)
    try:
        text = path.read_text(encoding="utf-8-sig").strip()
    except OSError as e:
        raise ConfigError(f"Cannot read {label} from '{path}': {e}") from e
    if not text:
        logger.warning(f"{label} is configured but empty: {path}")
        return None
    logger.info(f"Loaded {label}: {path}")
    return text


def _combined_rules(cfg: BluebookifyConfig) -> str | None:
    parts = [p for p in ((cfg.rules or "").strip(), _read_optional_text(cfg.rules_path, "rules file")) if p]
    return "\n\n".join(parts) if parts else None


def chunk_spans(spans: Sequence[CitationSpan], batch_size: int) -> list[list[CitationSpan]]:
    return [list(spans[i : i + batch_size]) for i in range(0, len(spans), batch_size)]


def validate_batch_ids(corrections: Iterable[CitationCorrection], expected_ids: set[int]) -> None:
    """Fail unless the reply covers exactly the ids that were sent in this batch."""
    returned = [c.span_id for c in corrections]
    for span_id in returned:
        if span_id not in expected_ids:
            raise BatchIntegrityError(f"LLM returned unexpected id {span_id} (not in this batch)")
    returned_set = set(returned)
    for span_id in sorted(expected_ids):
        if span_id not in returned_set:
            raise BatchIntegrityError(f"LLM missing correction for id {span_id} in batch")


def run_batches(
    spans: Sequence[CitationSpan],
    batch_size: int,
    llm: LLMFn,
    *,
    rules: str | None = None,
    show_progress: bool = False,
) -> list[CitationCorrection]:
    """Send spans to the LLM in order, one batch at a time, and collect validated corrections.

    Any failure aborts the whole run; LLM exceptions propagate unchanged.
    """
    batch_size = require_int(batch_size, "batch_size", 1)
    if not spans:
        return []

    batches = chunk_spans(spans, batch_size)
    logger.info(f"LLM batches: {len(batches)} (batch_size={batch_size})")

    collected: list[CitationCorrection] = []
    for index, batch in enumerate(tqdm(batches, desc="Correct", unit="batch", disable=not show_progress)):
        logger.debug(f"Batch {index + 1}/{len(batches)}: ids {batch[0].span_id}..{batch[-1].span_id}")
        reply = llm(build_messages(batch, rules))
        corrections = parse_response(reply)
        validate_batch_ids(corrections, {span.span_id for span in batch})
        collected.extend(corrections)
    return collected


def bluebookify(
    text: str,
    cfg: BluebookifyConfig | None = None,
    *,
    llm: Any = None,
    show_progress: bool = False,
) -> BluebookifyResult:
    """Correct the citations in `text` with an LLM.

    Only the extracted citations and their context are sent, never the whole
    document. Text without citations is returned as-is without calling the LLM.
    """
    cfg = validate_config(cfg or BluebookifyConfig())
    batch_size = require_int(cfg.batch_size, "batch_size", 1)
    context_size = require_int(cfg.context_size, "context_size", 0)
    llm_fn = resolve_llm(cfg.llm, llm=llm)
    rules = _combined_rules(cfg)

    spans = extract_citations(text, context_size, extra_rules=cfg.pattern_set)
    logger.info(f"Citations found: {len(spans)}")
    if not spans:
        return BluebookifyResult(text=text, corrections=[], unchanged=True)

    corrections = run_batches(spans, batch_size, llm_fn, rules=rules, show_progress=show_progress)
    applied = apply_corrections(text, spans, corrections)
    logger.info(f"Corrections applied: {len(applied.applied)}")

    return BluebookifyResult(
        text=applied.text,
        corrections=applied.applied,
        unchanged=not applied.applied,
    )
