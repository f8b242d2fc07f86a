from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError
from .extractor import PatternRule, PatternSet, compile_pattern_set

DEFAULT_BATCH_SIZE = 20
DEFAULT_CONTEXT_SIZE = 100


@dataclass(frozen=True)
class LLMConfig:
    provider: str | None = None  # 'openai' | 'anthropic' | 'ollama'
    model: str | None = None
    # Falls back to OPENAI_API_KEY / ANTHROPIC_API_KEY when unset.
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = 0.0
    timeout_s: float = 60.0
    max_output_tokens: int = 4000


@dataclass(frozen=True)
class BluebookifyConfig:
    llm: LLMConfig = LLMConfig()
    # Maximum citations per LLM call.
    batch_size: int = DEFAULT_BATCH_SIZE
    # Characters of context on each side of a citation.
    context_size: int = DEFAULT_CONTEXT_SIZE
    # Extra rules appended to the system prompt; rules_path contents are added after them.
    rules: str | None = None
    rules_path: str | None = None
    log_path: str | None = None
    audit_jsonl_path: str | None = None
    audit_html_path: str | None = None
    # Additional citation matchers on top of the built-in ones.
    pattern_set: PatternSet = PatternSet()


def require_int(value: Any, name: str, minimum: int) -> int:
    """Validate a whole number >= minimum; integral floats are accepted."""
    valid = (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
        and value >= minimum
        and int(value) == value
    )
    if not valid:
        raise ConfigError(f"Invalid {name}: {value!r}. Must be a finite integer >= {minimum}.")
    return int(value)


def validate_config(cfg: BluebookifyConfig) -> BluebookifyConfig:
    require_int(cfg.batch_size, "batch_size", 1)
    require_int(cfg.context_size, "context_size", 0)
    compile_pattern_set(cfg.pattern_set)
    return cfg


def _resolve_optional_path(base_dir: Path, value: Any) -> str | None:
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    path = Path(raw)
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    raw = str(value).strip()
    return raw or None


def _normalize_provider(value: Any) -> str | None:
    raw = _optional_str(value)
    return raw.lower() if raw else None


def load_config(path: str | Path) -> BluebookifyConfig:
    cfg_path = Path(path)
    data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {cfg_path}")

    llm_data = data.get("llm", {}) or {}
    llm = LLMConfig(
        provider=_normalize_provider(llm_data.get("provider")),
        model=_optional_str(llm_data.get("model")),
        api_key=_optional_str(llm_data.get("api_key")),
        base_url=_optional_str(llm_data.get("base_url")),
        temperature=float(llm_data.get("temperature", 0.0)),
        timeout_s=float(llm_data.get("timeout_s", 60.0)),
        max_output_tokens=int(llm_data.get("max_output_tokens", 4000)),
    )

    rules_data: list[dict[str, Any]] = (data.get("patterns", {}) or {}).get("rules", []) or []
    rules = tuple(
        PatternRule(
            name=str(rd["name"]),
            pattern=str(rd["pattern"]),
            flags=str(rd.get("flags", "")),
            description=str(rd.get("description", "")),
        )
        for rd in rules_data
    )

    cfg = BluebookifyConfig(
        llm=llm,
        batch_size=data.get("batch_size", DEFAULT_BATCH_SIZE),
        context_size=data.get("context_size", DEFAULT_CONTEXT_SIZE),
        rules=_optional_str(data.get("rules")),
        rules_path=_resolve_optional_path(cfg_path.parent, data.get("rules_path")),
        log_path=_resolve_optional_path(cfg_path.parent, data.get("log_path")),
        audit_jsonl_path=_resolve_optional_path(cfg_path.parent, data.get("audit_jsonl_path")),
        audit_html_path=_resolve_optional_path(cfg_path.parent, data.get("audit_html_path")),
        pattern_set=PatternSet(rules),
    )
    return validate_config(cfg)
