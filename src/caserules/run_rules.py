#!/usr/bin/env python3
"""
Run a case rule pipeline on a case document.

The case document is JSON (see InMemoryCase.from_dict). Stored case values can
be given inline ("values") or as a CSV table with the columns field, value and
optional start, end.

Usage:
    python -m caserules.run_rules CASE.json [--values VALUES.csv] [--pipeline Validate]
    python -m caserules.run_rules --list-actions [--pipeline Build]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd

from caserules.config import EngineConfig
from caserules.context import PipelineKind
from caserules.dispatcher import ActionDispatcher, DispatchResult
from caserules.host import InMemoryCase, normalize_values_frame
from caserules.registry import ACTION_REGISTRY

logger = logging.getLogger(__name__)


# =============================================================================
# LOADING
# =============================================================================

def load_case(case_path: Path, values_path: Optional[Path] = None) -> InMemoryCase:
    """
    Load a case document and optional stored values.

    Args:
        case_path: JSON case document.
        values_path: CSV table of stored case values, appended to inline values.

    Returns:
        The in-memory case.
    """
    with open(case_path, "r", encoding="utf-8") as fh:
        document = json.load(fh)
    case = InMemoryCase.from_dict(document)

    if values_path is not None:
        table = pd.read_csv(values_path, dtype={"field": str, "value": object})
        frames = [frame for frame in (case.values, normalize_values_frame(table)) if not frame.empty]
        if frames:
            values = pd.concat(frames, ignore_index=True)
            values["created"] = range(len(values))
            case.values = normalize_values_frame(values)
        logger.info(f"Loaded {len(table)} case values from {values_path}")
    return case


# =============================================================================
# OUTPUT
# =============================================================================

def print_result(case: InMemoryCase, pipeline: PipelineKind, result: DispatchResult) -> None:
    status = "passed" if result.success else "failed"
    print(f"\n--- {pipeline.value}: {case.name} {status} ---")
    print(f"  actions invoked: {len(result.invoked)}")
    if result.invoked:
        print(f"  invoked: {', '.join(result.invoked)}")
    print(f"  issues: {len(result.issues)}")
    for issue in result.issues:
        code = f" [{issue.code}]" if issue.code else ""
        print(f"    - {issue}{code}")

    if pipeline in (PipelineKind.BUILD, PipelineKind.RELATION_BUILD):
        changes = case.changes_frame()
        if not changes.empty:
            print("\n--- Case Change ---")
            print(changes.to_string(index=False))


def print_actions(pipeline: Optional[PipelineKind]) -> None:
    catalogue = ACTION_REGISTRY.to_frame(pipeline)
    with pd.option_context("display.max_rows", None, "display.max_colwidth", 60, "display.width", 200):
        print(catalogue[["pipeline", "namespace", "name", "parameters", "categories"]].to_string(index=False))
    print(f"\n{len(catalogue)} actions")


# =============================================================================
# CLI
# =============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run case rule actions on a case document"
    )
    parser.add_argument(
        "case",
        nargs="?",
        help="Path to the JSON case document",
    )
    parser.add_argument(
        "--values",
        help="CSV table of stored case values",
    )
    parser.add_argument(
        "--pipeline",
        default=None,
        help="Pipeline to run: Available, Build, Validate (default: Build then Validate)",
    )
    parser.add_argument(
        "--list-actions",
        action="store_true",
        help="List the registered actions and exit",
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Optional .env file with CASERULES_* settings",
    )

    args = parser.parse_args(argv)

    config = EngineConfig.from_env(args.env_file)
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    pipeline = PipelineKind.from_name(args.pipeline) if args.pipeline else None
    if args.list_actions:
        print_actions(pipeline)
        return 0
    if not args.case:
        parser.error("a case document is required")

    case = load_case(Path(args.case), Path(args.values) if args.values else None)
    dispatcher = ActionDispatcher(config=config)

    pipelines = [pipeline] if pipeline else [PipelineKind.BUILD, PipelineKind.VALIDATE]
    success = True
    for kind in pipelines:
        if kind.is_relation:
            parser.error(f"{kind.value} needs a case relation and cannot run on a single case")
        result = dispatcher.run(case, kind)
        print_result(case, kind, result)
        success = success and result.success

    print(f"\nRules complete: {'passed' if success else 'failed'}")
    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
