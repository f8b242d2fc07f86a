from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import BluebookifyConfig, load_config, require_int
from .extractor import extract_citations
from .logging_utils import setup_logging
from .pipeline import bluebookify
from .report import write_audit_jsonl, write_audit_report


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="bluebookify", description="Correct legal citations to Bluebook format.")
    sub = p.add_subparsers(dest="cmd", required=True)

    c = sub.add_parser("correct", help="Correct citations in a UTF-8 text file.")
    c.add_argument("--input", "-i", required=True, help="Path to source text")
    c.add_argument("--output", "-o", required=True, help="Path to corrected text")
    c.add_argument("--config", "-c", default=None, help="Path to YAML config")
    c.add_argument("--provider", choices=["openai", "anthropic", "ollama"], default=None, help="Override LLM provider.")
    c.add_argument("--model", default=None, help="Override LLM model.")
    c.add_argument("--batch-size", type=int, default=None, help="Maximum citations per LLM call.")
    c.add_argument("--context-size", type=int, default=None, help="Characters of context on each side.")
    c.add_argument("--rules-file", default=None, help="Extra rules appended to the system prompt.")
    c.add_argument("--audit-jsonl", default=None, help="Write applied corrections as JSONL.")
    c.add_argument("--audit-html", default=None, help="Write applied corrections as an HTML table.")
    c.add_argument("--log", default=None, help="Override log path.")
    c.add_argument("--verbose", "-v", action="store_true", help="Log per-batch details.")

    e = sub.add_parser("extract", help="List detected citations without calling the LLM.")
    e.add_argument("--input", "-i", required=True, help="Path to source text")
    e.add_argument("--config", "-c", default=None, help="Path to YAML config")
    e.add_argument("--context-size", type=int, default=None, help="Characters of context on each side.")
    return p


def _load(config_path: str | None) -> BluebookifyConfig:
    return load_config(config_path) if config_path else BluebookifyConfig()


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    if args.cmd == "correct":
        cfg = _load(args.config)

        # CLI overrides
        if args.provider is not None:
            llm_cfg = cfg.llm.__class__(**{**cfg.llm.__dict__, "provider": str(args.provider)})
            cfg = cfg.__class__(**{**cfg.__dict__, "llm": llm_cfg})
        if args.model is not None:
            llm_cfg = cfg.llm.__class__(**{**cfg.llm.__dict__, "model": str(args.model)})
            cfg = cfg.__class__(**{**cfg.__dict__, "llm": llm_cfg})
        if args.batch_size is not None:
            cfg = cfg.__class__(**{**cfg.__dict__, "batch_size": int(args.batch_size)})
        if args.context_size is not None:
            cfg = cfg.__class__(**{**cfg.__dict__, "context_size": int(args.context_size)})
        if args.rules_file is not None:
            cfg = cfg.__class__(**{**cfg.__dict__, "rules_path": str(args.rules_file)})
        if args.audit_jsonl is not None:
            cfg = cfg.__class__(**{**cfg.__dict__, "audit_jsonl_path": str(args.audit_jsonl)})
        if args.audit_html is not None:
            cfg = cfg.__class__(**{**cfg.__dict__, "audit_html_path": str(args.audit_html)})
        if args.log is not None:
            cfg = cfg.__class__(**{**cfg.__dict__, "log_path": str(args.log)})

        logger = setup_logging(Path(cfg.log_path) if cfg.log_path else None, verbose=args.verbose)
        logger.info(f"Input: {args.input}")
        logger.info(f"Output: {args.output}")

        text = Path(args.input).read_text(encoding="utf-8")
        result = bluebookify(text, cfg, show_progress=True)

        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(result.text, encoding="utf-8")

        if cfg.audit_jsonl_path:
            write_audit_jsonl(result.corrections, Path(cfg.audit_jsonl_path))
            logger.info(f"Audit jsonl: {cfg.audit_jsonl_path}")
        if cfg.audit_html_path:
            write_audit_report(result.corrections, Path(cfg.audit_html_path))
            logger.info(f"Audit report: {cfg.audit_html_path}")

        if result.unchanged:
            print("No citation changes needed.")
        else:
            print(f"Corrected citations: {len(result.corrections)}")
            for c in result.corrections:
                print(f"  @{c.position}: {c.original} -> {c.replacement}")
        return 0

    if args.cmd == "extract":
        cfg = _load(args.config)
        context_size = require_int(
            cfg.context_size if args.context_size is None else args.context_size, "context_size", 0
        )
        text = Path(args.input).read_text(encoding="utf-8")
        spans = extract_citations(text, context_size, extra_rules=cfg.pattern_set)
        print(f"Citations found: {len(spans)}")
        for span in spans:
            print(f"[{span.span_id}] {span.start}-{span.end}: {span.text}")
        return 0

    print(f"Unknown command: {args.cmd}", file=sys.stderr)
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
