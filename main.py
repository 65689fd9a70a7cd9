#!/usr/bin/env python3
"""git-history-reorder CLI.

Computes and prints the reorder plan. The destructive rewrite lives in
`python -m reorder.rewrite`.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
import sys

from reorder.config import ConfigError, default_schema_path
from reorder.dryrun import build_entries, render_dryrun_report
from reorder.repo import GitRepositoryError
from reorder.rewrite import build_reorder_plan
from reorder.scheduler import SchedulerError
from reorder.validation import ValidationError


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-history-reorder",
        description="Move Git commits into one contiguous block under a YAML policy",
    )

    parser.add_argument(
        "--repo",
        required=True,
        help="Path to the target git repository",
    )
    parser.add_argument(
        "--config",
        required=True,
        help="Path to reorder policy YAML",
    )
    parser.add_argument(
        "--schema",
        default=str(default_schema_path()),
        help="Path to schema.json",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute and print a report without touching the repo",
    )
    parser.add_argument(
        "--hash-len",
        type=int,
        default=12,
        help="Number of characters to show for commit hash",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if int(args.hash_len) <= 0:
        print("error: --hash-len must be a positive integer", file=sys.stderr)
        return 2

    if not args.dry_run:
        print(
            "error: this command only plans. Use --dry-run, or run python -m reorder.rewrite to rewrite.",
            file=sys.stderr,
        )
        return 2

    repo_path = Path(args.repo).expanduser().resolve()
    config_path = Path(args.config).expanduser().resolve()
    schema_path = Path(args.schema).expanduser().resolve()

    try:
        plan = build_reorder_plan(repo_path, config_path, schema_path)

        entries = build_entries(
            plan.commits,
            plan.script,
            plan.targets.move_set,
            plan.targets.anchor,
            hash_len=int(args.hash_len),
        )

        report = render_dryrun_report(
            total_commits=len(plan.commits),
            base=plan.base,
            anchor=plan.targets.anchor,
            move_count=len(plan.targets.move_set),
            entries=entries,
            script=plan.script,
            hash_len=int(args.hash_len),
        )

        print(report)
        return 0

    except (ConfigError, ValidationError, GitRepositoryError, SchedulerError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
