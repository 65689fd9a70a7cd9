# reorder/rewrite.py
"""
History rewrite implementation.

Responsibilities:
- Load config and schema
- Run semantic validation
- Read the commit log for the rewrite range
- Compute the reorder script
- Hand the script to git's interactive rebase and report its progress

This module does NOT:
- change commit messages
- change file contents
- resolve conflicts
"""

from __future__ import annotations

import argparse
import enum
import logging
import os
import re
import shlex
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from subprocess import PIPE, STDOUT, CalledProcessError, Popen, run
from typing import Callable, List, Optional, Sequence

from reorder.config import ConfigError, default_schema_path, load_config
from reorder.repo import (
    Commit,
    GitRepositoryError,
    ensure_git_repository,
    is_rebase_in_progress,
    load_commit_log,
    resolve_commit,
)
from reorder.scheduler import EmptyLog, SchedulerError, compute_script
from reorder.script import Script, ScriptEntry, parse_todo, render_todo
from reorder.validation import ReorderTargets, ValidationError, resolve_targets, validate_config


logger = logging.getLogger(__name__)


_PROGRESS_RE = re.compile(r"Rebasing \((\d+)/(\d+)\)")


class RewriteError(RuntimeError):
    pass


class RebaseResult(enum.Enum):
    COMPLETED_WITHOUT_ERROR = "completed_without_error"
    CONFLICTS_ENCOUNTERED = "conflicts_encountered"
    ERROR = "error"


@dataclass(frozen=True)
class RebaseProgress:
    value: float  # fraction done, 0.0 to 1.0
    current: int
    total: int
    summary: Optional[str]


ProgressCallback = Callable[[RebaseProgress], None]


@dataclass(frozen=True)
class ReorderPlan:
    repo_path: Path
    base: Optional[str]  # full hash of the last retained commit, None for the root
    commits: Sequence[Commit]  # newest -> oldest
    targets: ReorderTargets
    script: Script


def _run_git(repo_path: Path, args: List[str]) -> str:
    try:
        result = run(
            ["git", "-C", str(repo_path)] + args,
            stdout=PIPE,
            stderr=PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=True,
        )
        return result.stdout
    except CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise RewriteError(stderr if stderr else "git command failed") from e


def _ensure_clean_worktree(repo_path: Path) -> None:
    out = _run_git(repo_path, ["status", "--porcelain", "--untracked-files=no"])
    if out.strip():
        raise RewriteError("Working tree is not clean. Commit or stash changes, or pass --allow-dirty to override.")


def _has_unmerged_paths(repo_path: Path) -> bool:
    out = _run_git(repo_path, ["diff", "--name-only", "--diff-filter=U"])
    return bool(out.strip())


def build_reorder_plan(
    repo_path: Path,
    config_path: Path,
    schema_path: Path,
) -> ReorderPlan:
    """
    Compute everything the rebase needs without touching the repository.

    Raises SchedulerError when no script can be produced.
    """
    cfg = load_config(config_path, schema_path)
    validated = validate_config(cfg)

    ensure_git_repository(repo_path)
    base = resolve_commit(repo_path, validated.base) if validated.base is not None else None

    commits = load_commit_log(repo_path, base)
    if not commits:
        raise EmptyLog()

    targets = resolve_targets(validated, commits)

    result = compute_script(commits, targets.move_set, targets.anchor)
    if not result.ok:
        logger.debug("reorder failed: %s", result.error)

    return ReorderPlan(
        repo_path=repo_path,
        base=base,
        commits=commits,
        targets=targets,
        script=result.unwrap(),
    )


def _sequence_editor_command(todo_path: Path) -> str:
    """
    GIT_SEQUENCE_EDITOR replacement that overwrites git's todo list with ours.

    Git runs the editor through a shell and appends the todo path as the last argument.
    """
    code = f"import shutil, sys; shutil.copyfile({todo_path.as_posix()!r}, sys.argv[1])"
    return " ".join(
        [
            shlex.quote(Path(sys.executable).as_posix()),
            "-c",
            shlex.quote(code),
        ]
    )


def _write_todo(todo_path: Path, script: Script) -> None:
    todo_path.write_text(render_todo(script), encoding="utf-8", newline="\n")

    written = parse_todo(todo_path.read_text(encoding="utf-8"))
    if [e.hash for e in written] != [e.hash for e in script]:
        raise RewriteError(f"Todo file does not match the computed script: {todo_path}")


def parse_progress(line: str, script: Sequence[ScriptEntry]) -> Optional[RebaseProgress]:
    """
    Parse a "Rebasing (n/m)" status line emitted by git.
    """
    m = _PROGRESS_RE.search(line)
    if not m:
        return None

    current = int(m.group(1))
    total = int(m.group(2))

    summary: Optional[str] = None
    if 0 < current <= len(script):
        summary = script[current - 1].summary

    value = current / total if total > 0 else 0.0
    return RebaseProgress(value=value, current=current, total=total, summary=summary)


def run_rebase(
    repo_path: Path,
    todo_path: Path,
    base: Optional[str],
    script: Script,
    progress_callback: Optional[ProgressCallback] = None,
) -> RebaseResult:
    """
    Run git rebase --interactive with the todo list at todo_path.

    On conflicts the repository is left mid-rebase for the user to resolve.
    """
    env = os.environ.copy()
    env["GIT_SEQUENCE_EDITOR"] = _sequence_editor_command(todo_path)
    # ':' tells git not to launch an editor at all
    env["GIT_EDITOR"] = ":"

    cmd = ["git", "-C", str(repo_path), "rebase", "--interactive", "--no-autosquash"]
    cmd.append(base if base is not None else "--root")

    logger.debug("running %s", " ".join(cmd))

    output: List[str] = []

    try:
        proc = Popen(
            cmd,
            stdout=PIPE,
            stderr=STDOUT,
            env=env,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
    except FileNotFoundError as e:
        raise RewriteError("git executable not found on PATH") from e

    assert proc.stdout is not None
    with proc:
        # Universal newlines turn git's '\r' progress updates into separate lines.
        for line in proc.stdout:
            output.append(line)
            if progress_callback is None:
                continue
            progress = parse_progress(line, script)
            if progress is not None:
                progress_callback(progress)

    if proc.returncode == 0:
        return RebaseResult.COMPLETED_WITHOUT_ERROR

    if is_rebase_in_progress(repo_path) and _has_unmerged_paths(repo_path):
        logger.warning("rebase stopped on conflicts")
        return RebaseResult.CONFLICTS_ENCOUNTERED

    logger.error("git rebase failed with exit code %s:\n%s", proc.returncode, "".join(output).strip())
    return RebaseResult.ERROR


def abort_rebase(repo_path: Path) -> None:
    _run_git(repo_path, ["rebase", "--abort"])


def rewrite_history(
    *,
    repo_path: Path,
    config_path: Path,
    schema_path: Path,
    force: bool,
    allow_dirty: bool,
    abort_on_conflict: bool = False,
    progress_callback: Optional[ProgressCallback] = None,
) -> RebaseResult:
    """
    Perform the reorder in-place on the target repository.

    This operation is destructive. Use --force only when you accept the consequences.
    The todo file lives in a temporary directory that is removed on every exit path.
    """
    repo_path = repo_path.expanduser().resolve()
    config_path = config_path.expanduser().resolve()
    schema_path = schema_path.expanduser().resolve()

    plan = build_reorder_plan(repo_path, config_path, schema_path)

    if is_rebase_in_progress(repo_path):
        raise RewriteError("A rebase is already in progress. Finish or abort it first.")

    if not allow_dirty:
        _ensure_clean_worktree(repo_path)

    if not force:
        raise RewriteError("Refusing to rewrite without --force.")

    with tempfile.TemporaryDirectory(prefix="reorder-") as td:
        todo_path = Path(td) / "git-rebase-todo"
        _write_todo(todo_path, plan.script)

        logger.debug("reorder todo:\n%s", render_todo(plan.script).rstrip("\n"))

        try:
            result = run_rebase(
                repo_path,
                todo_path,
                plan.base,
                plan.script,
                progress_callback=progress_callback,
            )
        except KeyboardInterrupt:
            if abort_on_conflict and is_rebase_in_progress(repo_path):
                abort_rebase(repo_path)
                logger.info("rebase aborted after interrupt")
            raise

    # Git may stop without unmerged paths too, for example on a pick that became empty.
    if result is not RebaseResult.COMPLETED_WITHOUT_ERROR and abort_on_conflict and is_rebase_in_progress(repo_path):
        abort_rebase(repo_path)
        logger.info("rebase aborted after %s", result.value)

    return result


def _rebase_left_in_progress(repo_path: Path) -> bool:
    try:
        return is_rebase_in_progress(repo_path.expanduser().resolve())
    except GitRepositoryError:
        return False


def _print_progress(progress: RebaseProgress) -> None:
    summary = progress.summary or ""
    print(f"[{progress.current}/{progress.total}] {summary}".rstrip())


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="git-history-reorder-rewrite",
        description="Reorder Git commits under a YAML policy (destructive)",
    )

    parser.add_argument("--repo", required=True, help="Path to the target git repository")
    parser.add_argument("--config", required=True, help="Path to reorder policy YAML")
    parser.add_argument("--schema", default=str(default_schema_path()), help="Path to schema.json")

    parser.add_argument(
        "--force",
        action="store_true",
        help="Proceed with rewriting history",
    )
    parser.add_argument(
        "--allow-dirty",
        action="store_true",
        help="Proceed even if the working tree has uncommitted changes",
    )
    parser.add_argument(
        "--abort-on-conflict",
        action="store_true",
        help="Abort the rebase instead of leaving it stopped on conflicts or any other failure",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    repo_path = Path(args.repo)

    try:
        result = rewrite_history(
            repo_path=repo_path,
            config_path=Path(args.config),
            schema_path=Path(args.schema),
            force=bool(args.force),
            allow_dirty=bool(args.allow_dirty),
            abort_on_conflict=bool(args.abort_on_conflict),
            progress_callback=_print_progress,
        )
    except KeyboardInterrupt:
        print("error: interrupted", file=sys.stderr)
        return 130
    except (ConfigError, ValidationError, GitRepositoryError, SchedulerError, RewriteError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    if result is RebaseResult.CONFLICTS_ENCOUNTERED:
        if args.abort_on_conflict:
            print("error: conflicts encountered, rebase aborted", file=sys.stderr)
        else:
            print(
                "error: conflicts encountered. Resolve them and run 'git rebase --continue', "
                "or 'git rebase --abort' to give up.",
                file=sys.stderr,
            )
        return 1

    if result is RebaseResult.ERROR:
        print("error: git rebase failed, run with --verbose for details", file=sys.stderr)
        if _rebase_left_in_progress(repo_path):
            print(
                "error: the repository is mid-rebase. Run 'git rebase --abort' to restore it, "
                "or fix the problem and run 'git rebase --continue'.",
                file=sys.stderr,
            )
        elif args.abort_on_conflict:
            print("error: rebase aborted, history is unchanged", file=sys.stderr)
        return 2

    print("Reorder complete.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
