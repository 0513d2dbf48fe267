"""Command line entry point: ``model-intake``."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

import structlog
import yaml

from governance.errors import ConfigValidationError, IntakeError, RecordError
from governance.logging_config import configure_logging
from governance.mapper import map_use_case
from governance.settings import get_settings
from intake.preview import preview_tier, serialize_preview
from policy.diff import diff_rules_configs, serialize_diff
from policy.engine import evaluate_use_case
from policy.loader import RULES_FILE, check_config_dir, load_engine_config, load_proposed_rules_config
from report.generator import (
    generate_checklist_markdown,
    generate_inventory_csv,
    generate_memo_markdown,
    serialize_decision,
)

logger = structlog.get_logger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="model-intake",
        description="Risk-tier model and AI use cases against the governance rules.",
    )
    parser.add_argument("--config-dir", type=Path, help="Directory holding rules.yaml and artifacts.yaml")
    parser.add_argument("--log-level", help="Logging level (default from MRM_LOG_LEVEL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    evaluate = subparsers.add_parser("evaluate", help="Evaluate a stored use case (YAML or JSON)")
    evaluate.add_argument("file", type=Path)
    evaluate.add_argument(
        "--format",
        choices=["json", "memo", "checklist", "csv"],
        default="json",
        help="Output format",
    )
    evaluate.set_defaults(handler=cmd_evaluate)

    preview = subparsers.add_parser("preview", help="Preview the tier of an intake form")
    preview.add_argument("file", type=Path)
    preview.set_defaults(handler=cmd_preview)

    validate = subparsers.add_parser("validate-config", help="Validate rules and artifacts configuration")
    validate.set_defaults(handler=cmd_validate_config)

    diff = subparsers.add_parser("diff", help="Compare the active rules with a proposed rules directory")
    diff.add_argument("proposed_dir", type=Path)
    diff.set_defaults(handler=cmd_diff)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return its exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(args.log_level or settings.log_level, settings.log_format)
    if args.config_dir is None:
        args.config_dir = settings.config_dir

    try:
        return args.handler(args)
    except ConfigValidationError as exc:
        logger.error("config_invalid", errors=exc.errors)
        for error in exc.errors:
            print(f"error: {error}", file=sys.stderr)
        return EXIT_INVALID
    except IntakeError as exc:
        logger.error("command_failed", code=exc.code, message=exc.message, details=exc.details)
        print(f"error: {exc.message}", file=sys.stderr)
        return EXIT_INVALID


def cmd_evaluate(args: argparse.Namespace) -> int:
    config = load_engine_config(args.config_dir)
    use_case = map_use_case(_read_document(args.file))
    decision = evaluate_use_case(use_case.record, config)
    logger.info("use_case_decided", use_case_id=use_case.use_case_id, tier=decision.tier)

    if args.format == "memo":
        output = generate_memo_markdown(use_case, decision, config)
    elif args.format == "checklist":
        output = generate_checklist_markdown(use_case, decision, config)
    elif args.format == "csv":
        output = generate_inventory_csv(use_case, decision)
    else:
        output = json.dumps(serialize_decision(decision), indent=2) + "\n"
    sys.stdout.write(output)
    return EXIT_OK


def cmd_preview(args: argparse.Namespace) -> int:
    config = load_engine_config(args.config_dir)
    preview = preview_tier(_read_document(args.file), config)
    sys.stdout.write(json.dumps(serialize_preview(preview), indent=2) + "\n")
    return EXIT_OK


def cmd_validate_config(args: argparse.Namespace) -> int:
    errors = check_config_dir(args.config_dir)
    if errors:
        for error in errors:
            print(f"error: {error}", file=sys.stderr)
        return EXIT_INVALID
    print(f"Configuration in {args.config_dir} is valid.")
    return EXIT_OK


def cmd_diff(args: argparse.Namespace) -> int:
    current = load_engine_config(args.config_dir)
    proposed = load_proposed_rules_config(Path(args.proposed_dir) / RULES_FILE, current.artifacts)
    diff = diff_rules_configs(current.rules, proposed)
    sys.stdout.write(json.dumps(serialize_diff(diff), indent=2) + "\n")
    return EXIT_OK


def _read_document(path: Path) -> Any:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise RecordError(f"Unable to read {path}", details={"reason": str(exc)}) from exc
    try:
        # JSON documents are valid YAML.
        return yaml.safe_load(content)
    except yaml.YAMLError as exc:
        raise RecordError(f"Unable to parse {path}", details={"reason": str(exc)}) from exc


if __name__ == "__main__":
    sys.exit(main())
