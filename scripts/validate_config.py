#!/usr/bin/env python3
"""
scripts/validate_config.py

Validate an orchestration config before starting the server.

Checks:
- The file exists and is valid YAML
- The document matches the config schema (unknown keys are rejected)
- Rules and workflows only reference declared providers, tools and steps
- Integration settings are in range

Exit codes:
    0  valid (warnings may still be printed)
    2  file missing or not parseable
    4  schema or reference errors

Usage:
    python scripts/validate_config.py --config config/orchestration.yaml
    python scripts/validate_config.py -c my.yaml --strict --verbose
"""

from __future__ import annotations
import argparse
import sys
from pathlib import Path
from typing import List, Optional

from orchestrator.config import build_config, read_config_file, resolve_config_path, validate_references
from orchestrator.exceptions import ConfigurationError

EXIT_OK = 0
EXIT_UNREADABLE = 2
EXIT_INVALID = 4


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Validate an orchestration config.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s --config config/orchestration.yaml
  %(prog)s --config my.yaml --strict
        """,
    )
    parser.add_argument("--config", "-c", type=Path,
                        help="Path to the YAML config (default: $ORCHESTRATOR_CONFIG or config/orchestration.yaml).")
    parser.add_argument("--strict", action="store_true",
                        help="Treat warnings as errors.")
    parser.add_argument("--verbose", "-v", action="count", default=0,
                        help="Increase verbosity.")
    args = parser.parse_args(argv)

    path = resolve_config_path(args.config)
    verbose = args.verbose > 0
    if verbose:
        print(f"Validating config: {path}\n")

    try:
        raw = read_config_file(path)
    except ConfigurationError as e:
        print(f"ERROR: Unable to load config: {e}", file=sys.stderr)
        return EXIT_UNREADABLE

    try:
        config = build_config(raw)
    except ConfigurationError as e:
        print(f"\nValidation FAILED:\n\n  - {e}", file=sys.stderr)
        return EXIT_INVALID

    if verbose:
        print(f"  [OK] {len(config.providers)} providers, {len(config.routing_rules)} rules, "
              f"{len(config.workflows)} workflows")

    errors, warnings = validate_references(config)
    if args.strict:
        errors, warnings = errors + warnings, []

    if warnings:
        print("\nWarnings:", file=sys.stderr)
        for w in warnings:
            print(f"  - {w}", file=sys.stderr)

    if errors:
        print("\nValidation FAILED:\n", file=sys.stderr)
        for p in errors:
            print(f"  - {p}", file=sys.stderr)
        print(f"\nExit code: {EXIT_INVALID}", file=sys.stderr)
        return EXIT_INVALID

    print("\nValidation PASSED.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
