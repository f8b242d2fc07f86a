from __future__ import annotations

from pathlib import Path

import pytest

from bluebookify.config import BluebookifyConfig, LLMConfig, load_config, require_int
from bluebookify.errors import ConfigError
from bluebookify.extractor import extract_citations

EXAMPLE_CONFIG = Path(__file__).resolve().parents[1] / "config" / "config.example.yaml"


def test_llm_config_defaults():
    cfg = LLMConfig()
    assert cfg.provider is None
    assert cfg.model is None
    assert cfg.temperature == 0.0
    assert cfg.timeout_s == 60.0
    assert cfg.max_output_tokens == 4000


def test_bluebookify_config_defaults():
    cfg = BluebookifyConfig()
    assert cfg.batch_size == 20
    assert cfg.context_size == 100
    assert cfg.rules is None
    assert cfg.pattern_set.rules == ()


def test_load_config_empty_file_uses_defaults(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("", encoding="utf-8")

    cfg = load_config(config_path)
    assert cfg.batch_size == 20
    assert cfg.context_size == 100
    assert cfg.llm == LLMConfig()


def test_load_config_reads_llm_section(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "llm:\n"
        "  provider: Anthropic\n"
        "  model: claude-3-5-haiku-latest\n"
        "  api_key: ak-test\n"
        "  timeout_s: 30\n"
        "batch_size: 5\n"
        "context_size: 40\n",
        encoding="utf-8",
    )

    cfg = load_config(config_path)
    assert cfg.llm.provider == "anthropic"
    assert cfg.llm.model == "claude-3-5-haiku-latest"
    assert cfg.llm.api_key == "ak-test"
    assert cfg.llm.timeout_s == 30.0
    assert cfg.batch_size == 5
    assert cfg.context_size == 40


def test_load_config_resolves_relative_paths_against_config_dir(tmp_path):
    config_dir = tmp_path / "conf"
    config_dir.mkdir()
    config_path = config_dir / "config.yaml"
    config_path.write_text(
        "rules_path: house_rules.md\n"
        "log_path: logs/run.log\n"
        "audit_jsonl_path: ''\n",
        encoding="utf-8",
    )

    cfg = load_config(config_path)
    assert cfg.rules_path == str((config_dir / "house_rules.md").resolve())
    assert cfg.log_path == str((config_dir / "logs" / "run.log").resolve())
    assert cfg.audit_jsonl_path is None


def test_load_config_reads_pattern_rules(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        "patterns:\n"
        "  rules:\n"
        "    - name: RESTATEMENT\n"
        "      pattern: 'restatement \\(second\\) of \\w+ § \\d+'\n"
        "      flags: I\n",
        encoding="utf-8",
    )

    cfg = load_config(config_path)
    assert [r.name for r in cfg.pattern_set.rules] == ["RESTATEMENT"]
    spans = extract_citations("See Restatement (Second) of Torts § 402 for the rule.", extra_rules=cfg.pattern_set)
    assert [s.text for s in spans] == ["See Restatement (Second) of Torts § 402"]


def test_load_config_rejects_bad_pattern(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("patterns:\n  rules:\n    - name: BROKEN\n      pattern: '(unclosed'\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="BROKEN"):
        load_config(config_path)


@pytest.mark.parametrize("body", ["batch_size: 0\n", "batch_size: 2.5\n", "context_size: -3\n", "batch_size: ten\n"])
def test_load_config_rejects_invalid_sizes(tmp_path, body):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(body, encoding="utf-8")
    with pytest.raises(ConfigError, match="Must be a finite integer"):
        load_config(config_path)


def test_load_config_rejects_non_mapping_root(tmp_path):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("- just\n- a list\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="must be a mapping"):
        load_config(config_path)


def test_example_config_loads():
    cfg = load_config(EXAMPLE_CONFIG)
    assert cfg.llm.provider == "openai"
    assert cfg.rules and "practitioner" in cfg.rules
    spans = extract_citations("Liability follows under Cal. Civ. Code § 1714 here.", extra_rules=cfg.pattern_set)
    assert [s.text for s in spans] == ["Cal. Civ. Code § 1714"]


@pytest.mark.parametrize(("value", "expected"), [(0, 0), (7, 7), (3.0, 3)])
def test_require_int_accepts_whole_numbers(value, expected):
    assert require_int(value, "context_size", 0) == expected


@pytest.mark.parametrize("value", [None, True, -1, 0.5, float("inf"), "3"])
def test_require_int_rejects_other_values(value):
    with pytest.raises(ConfigError, match=r"Invalid context_size: .*Must be a finite integer >= 0\."):
        require_int(value, "context_size", 0)
