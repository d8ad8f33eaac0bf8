#!/usr/bin/env python3
"""
Command-line driver for the marketing compliance analyzer.

Runs full analyses, rule-only quick checks, JSONL batches and guideline
lookups from a single CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

load_dotenv()

from marketing_compliance.config.settings import load_settings
from marketing_compliance.errors import ComplianceError
from marketing_compliance.reporting import serialize_result, serialize_rule, write_html_report
from marketing_compliance.services.pipeline import AnalysisPipeline
from marketing_compliance.utils.checksum import load_checksums, save_checksums, sha256_of_file, verify_checksums

CHECKSUM_KEY = "guidelines"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="RBI marketing compliance analyzer")
    parser.add_argument("--guidelines", type=Path, default=None, help="Override the guideline corpus path")
    parser.add_argument("--results-log", type=Path, default=None, help="JSONL file receiving persisted analyses")
    parser.add_argument(
        "--model-mode",
        choices=["ollama", "ollama_chat", "openai", "gemini"],
        help="Override MCA_MODEL_API_MODE for the model backend",
    )
    parser.add_argument("--model", default=None, help="Override MCA_MODEL_NAME")
    parser.add_argument(
        "--checksum-file",
        type=Path,
        default=None,
        help="Pin the guideline corpus to the digest stored in this file",
    )
    parser.add_argument("--write-checksum", action="store_true", help="Record the current corpus digest and exit")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Full analysis with model augmentation and recommendations")
    _add_content_args(analyze)
    analyze.add_argument("--actor", default="cli", help="Actor id recorded in result metadata")
    analyze.add_argument("--document-id", default=None, help="Persist the result under this document id")
    analyze.add_argument("--json-out", type=Path, default=None)
    analyze.add_argument("--html-out", type=Path, default=None)

    quick = sub.add_parser("quick", help="Rule-only screening")
    _add_content_args(quick)

    batch = sub.add_parser("batch", help="Analyse a JSONL file of {id, text, context} records")
    batch.add_argument("input", type=Path)
    batch.add_argument("--actor", default="cli")
    batch.add_argument("--workers", type=int, default=None)
    batch.add_argument("--json-out", type=Path, default=None)

    rules = sub.add_parser("rules", help="Inspect the loaded guideline corpus")
    rules.add_argument("--search", default=None, help="Substring search over rule text")
    rules.add_argument("--category", default=None)
    rules.add_argument("--validate-urls", action="store_true", help="Check citation URL formats")

    sub.add_parser("status", help="Report setup readiness")

    return parser.parse_args(argv)


def _add_content_args(parser: argparse.ArgumentParser) -> None:
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", default=None, help="Marketing copy to analyse")
    source.add_argument("--file", type=Path, default=None, help="Read marketing copy from a file")
    parser.add_argument("--context", default=None, help="Marketing context, e.g. 'digital lending loan'")


def print_step(message: str) -> None:
    print(f"[scan] {message}")


def configure_logging(verbose: bool) -> None:
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )


def read_content(args: argparse.Namespace) -> str:
    if args.file is not None:
        return args.file.read_text(encoding="utf-8")
    return args.text or ""


def read_batch(path: Path) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not line.strip():
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ValueError(f"{path}:{line_no}: invalid JSON ({exc})") from exc
        if "id" not in record:
            record["id"] = str(line_no)
        records.append(record)
    return records


def write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")


def check_corpus_digest(guidelines_path: Path, checksum_file: Path, *, write: bool) -> None:
    actual = {CHECKSUM_KEY: sha256_of_file(guidelines_path)}
    if write:
        save_checksums(checksum_file, actual)
        print_step(f"Recorded corpus digest in {checksum_file}")
        return
    expected = load_checksums(checksum_file)
    if not expected:
        print_step(f"No digest recorded at {checksum_file}; skipping corpus pin")
        return
    ok, mismatches = verify_checksums(actual, expected)
    if not ok:
        for name, (want, got) in mismatches.items():
            print_step(f"ERROR: {name} digest mismatch (expected {want}, got {got})")
        sys.exit(1)
    print_step("Guideline corpus digest verified")


def run_analyze(pipeline: AnalysisPipeline, args: argparse.Namespace) -> None:
    text = read_content(args)
    result = pipeline.analyze(text, args.context, actor_id=args.actor, document_id=args.document_id)
    breakdown = result.report.score_breakdown
    print_step(f"Score: {breakdown.total_score}/100 ({breakdown.compliance_level.value}, {breakdown.color_code})")
    print_step(f"Violations: {len(result.report.violations)}; missing elements: {len(result.report.missing_elements)}")
    for line in result.report.recommendations:
        print_step(f"- {line}")
    if result.insights.fallback_used:
        print_step("Model analysis unavailable; fallback insights used")
    if args.json_out:
        write_json(args.json_out, serialize_result(result))
        print_step(f"JSON result written to {args.json_out}")
    if args.html_out:
        write_html_report(result, args.html_out)
        print_step(f"HTML report written to {args.html_out}")


def run_quick(pipeline: AnalysisPipeline, args: argparse.Namespace) -> None:
    result = pipeline.quick_check(read_content(args), args.context)
    print_step(f"Score: {result.score}/100 (risk {result.risk_level.value}, {result.elapsed_ms} ms)")
    for violation in result.top_violations:
        print_step(f"- [{violation.severity}] {violation.text!r} ({violation.rule})")


def run_batch(pipeline: AnalysisPipeline, args: argparse.Namespace) -> None:
    records = read_batch(args.input)
    print_step(f"Loaded {len(records)} batch records from {args.input}")
    results = pipeline.batch_analyze(records, actor_id=args.actor, max_workers=args.workers)
    for item in results:
        if item.ok:
            print_step(f"{item.id}: {item.result.score}/100")
        else:
            print_step(f"{item.id}: ERROR {item.error}")
    if args.json_out:
        write_json(
            args.json_out,
            [
                {"id": item.id, "result": serialize_result(item.result) if item.ok else None, "error": item.error}
                for item in results
            ],
        )
        print_step(f"Batch results written to {args.json_out}")


def run_rules(pipeline: AnalysisPipeline, args: argparse.Namespace) -> None:
    repository = pipeline.repository
    if args.validate_urls:
        check = repository.validate_citation_urls()
        print_step(f"Citation URLs: {check.valid} valid, {len(check.invalid)} invalid")
        for entry in check.invalid:
            print_step(f"- invalid: {entry}")
        return

    if args.search:
        rules = repository.search(args.search)
    elif args.category:
        rules = repository.rules_by_category(args.category)
    else:
        rules = repository.all_rules()
    print(json.dumps([serialize_rule(rule) for rule in rules], ensure_ascii=False, indent=2))


def run_status(pipeline: AnalysisPipeline) -> None:
    status = pipeline.validate_setup()
    print_step(f"Ready: {status.ready}")
    print_step(f"Guidelines: {status.guideline_count} rules (version {status.guideline_version})")
    print_step(f"Model configured: {status.model_ready}")
    for issue in status.issues:
        print_step(f"- {issue}")


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    configure_logging(args.verbose)

    settings = load_settings()
    if args.guidelines is not None:
        settings.guidelines_path = args.guidelines
    if args.results_log is not None:
        settings.results_log_path = args.results_log
    if args.model_mode:
        settings.model.api_mode = args.model_mode
        print_step(f"Model mode override: {args.model_mode}")
    if args.model:
        settings.model.name = args.model

    if args.checksum_file is not None:
        check_corpus_digest(settings.guidelines_path, args.checksum_file, write=args.write_checksum)
        if args.write_checksum:
            return

    if args.command is None:
        print_step("ERROR: no command given (analyze, quick, batch, rules, status)")
        sys.exit(2)

    try:
        pipeline = AnalysisPipeline.from_settings(settings)
    except (ComplianceError, ValueError) as exc:
        print_step(f"ERROR: failed to initialise analyzer: {exc}")
        sys.exit(1)

    try:
        if args.command == "analyze":
            run_analyze(pipeline, args)
        elif args.command == "quick":
            run_quick(pipeline, args)
        elif args.command == "batch":
            run_batch(pipeline, args)
        elif args.command == "rules":
            run_rules(pipeline, args)
        else:
            run_status(pipeline)
    except (ComplianceError, OSError, ValueError) as exc:
        print_step(f"ERROR: {args.command} failed: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
