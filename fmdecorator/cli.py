#!/usr/bin/env python3
"""Command-line interface for fmdecorator.

This module lets rule authors try their settings outside the editor:
- ``check``: preload every function-file rule and report failures
- ``evaluate``: evaluate all rules against a snapshot file and print JSON

Example:
    >>> from fmdecorator.cli import parse_arguments
    >>> args = parse_arguments(["-c", "fmdecorator.yaml", "evaluate", "note.yaml"])
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from fmdecorator.core.constants import FMDECORATOR_VERSION
from fmdecorator.infrastructure.config_manager import (
    ConfigManager,
    ConfigSource,
    ConfigurationError,
)
from fmdecorator.infrastructure.logger import Logger, set_global_logger
from fmdecorator.infrastructure.notices import render_preload_notice
from fmdecorator.main import DecoratorEngine, run_inline
from fmdecorator.rules.evaluator import RuleEvaluation
from fmdecorator.rules.models import MetadataSnapshot

DESCRIPTION = "fmdecorator - decorate documents from metadata rules"


class CLIError(Exception):
    """Exception raised for CLI-related errors."""

    pass


def parse_arguments(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        args: Argument list to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace

    Raises:
        SystemExit: On invalid arguments or --help/--version
    """
    parser = argparse.ArgumentParser(
        prog="fmdecorator",
        description=DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Report rule files that fail to load
  fmdecorator --config fmdecorator.yaml --vault ~/notes check

  # Show which rules apply to a document
  fmdecorator --config fmdecorator.yaml evaluate snapshot.yaml
        """,
    )

    parser.add_argument(
        "-v",
        "--version",
        action="version",
        version=f"%(prog)s {FMDECORATOR_VERSION}",
    )

    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        type=str,
        help="Settings file with the rule list (YAML or JSON)",
    )

    parser.add_argument(
        "--vault",
        metavar="DIR",
        type=str,
        help="Directory rule file paths are relative to",
    )

    log_group = parser.add_argument_group("logging options")

    log_group.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )

    log_group.add_argument(
        "--log-file",
        metavar="FILE",
        type=str,
        help="Also write logs to this file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("check", help="Preload function-file rules and report failures")

    evaluate_parser = subparsers.add_parser(
        "evaluate", help="Evaluate all enabled rules against a snapshot"
    )
    evaluate_parser.add_argument(
        "snapshot",
        metavar="FILE",
        type=str,
        help="Snapshot file with path, title, tags and frontmatter (YAML or JSON)",
    )

    return parser.parse_args(args)


def load_snapshot_from_file(snapshot_path: str) -> MetadataSnapshot:
    """
    Load a metadata snapshot from a YAML or JSON file.

    Raises:
        CLIError: If the file cannot be read or does not describe a snapshot
    """
    try:
        with open(snapshot_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise CLIError(f"Failed to parse snapshot file: {snapshot_path}\n{e}")
    except OSError as e:
        raise CLIError(f"Failed to read snapshot file: {snapshot_path}\n{e}")

    if not isinstance(data, dict):
        raise CLIError(f"Snapshot file must contain a mapping: {snapshot_path}")

    try:
        return MetadataSnapshot.from_dict(data)
    except ValueError as e:
        raise CLIError(f"Invalid snapshot in {snapshot_path}: {e}")


def build_config(args: argparse.Namespace) -> ConfigManager:
    """
    Build configuration from the settings file and arguments.

    Raises:
        CLIError: If the settings file cannot be loaded
    """
    if args.config and not Path(args.config).is_file():
        raise CLIError(f"Configuration file does not exist: {args.config}")

    try:
        config = ConfigManager(args.config)
    except ConfigurationError as e:
        raise CLIError(e.message)

    if args.vault:
        config.set("fmdecorator.vault", args.vault, ConfigSource.CLI_ARGS)
    if args.debug:
        config.set("fmdecorator.logging.level", "DEBUG", ConfigSource.CLI_ARGS)
    if args.log_file:
        config.set("fmdecorator.logging.file", args.log_file, ConfigSource.CLI_ARGS)

    return config


def setup_logging(config: ConfigManager) -> Logger:
    """
    Create the process logger from configuration.

    Args:
        config: Loaded configuration

    Returns:
        Configured logger, also installed as the global logger
    """
    logger = Logger("fmdecorator", level=config.get("fmdecorator.logging.level", "INFO"))

    log_file = config.get("fmdecorator.logging.file")
    if log_file:
        logger.add_handler(logger.create_file_handler(log_file))

    set_global_logger(logger)
    return logger


def format_evaluation(evaluation: RuleEvaluation) -> Dict[str, Any]:
    """Turn one rule outcome into JSON-ready data."""
    data: Dict[str, Any] = {
        "id": evaluation.rule.id,
        "name": evaluation.rule.name,
        "matched": evaluation.matched,
        "classNames": evaluation.applied_class_names,
    }
    if evaluation.result is not None and evaluation.result.elements:
        data["elements"] = [e.to_dict() for e in evaluation.result.elements]
    return data


def command_check(engine: DecoratorEngine) -> int:
    warnings = engine.preload_rule_files()
    if warnings:
        print(render_preload_notice(warnings))
        return 1
    print(f"{len(engine.function_file_rules())} rule file(s) loaded")
    return 0


def command_evaluate(engine: DecoratorEngine, snapshot: MetadataSnapshot) -> int:
    warnings = engine.preload_rule_files()
    if warnings:
        print(render_preload_notice(warnings), file=sys.stderr)

    evaluations = engine.evaluate(snapshot)
    print(json.dumps([format_evaluation(e) for e in evaluations], indent=2, ensure_ascii=False))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 success, 1 failure, 130 interrupted)
    """
    try:
        args = parse_arguments(argv)
        config = build_config(args)
        logger = setup_logging(config)

        try:
            # Loads run inline so a single evaluate pass sees every rule file
            engine = DecoratorEngine.from_config(config, scheduler=run_inline, logger=logger)
        except ConfigurationError as e:
            raise CLIError(f"Invalid rule settings: {e.message}")

        if args.command == "check":
            return command_check(engine)

        snapshot = load_snapshot_from_file(args.snapshot)
        return command_evaluate(engine, snapshot)

    except CLIError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    except KeyboardInterrupt:
        print("\nInterrupted by user", file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
