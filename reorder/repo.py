# reorder/repo.py
"""
Repository introspection utilities.

Reads the commit log for a rewrite range from a target Git repository.
Handles Git Bash ↔ Windows path normalisation.

The log is returned newest → oldest, the order `git log` produces.
The scheduler walks it in reverse.
"""

from dataclasses import dataclass
from subprocess import run, PIPE, CalledProcessError
from typing import List, Optional
from pathlib import Path
import logging
import os


logger = logging.getLogger(__name__)


# Single source of truth for git field separation
_FIELD_SEP = "\x00"


@dataclass(frozen=True)
class Commit:
    hash: str
    summary: str = ""


class GitRepositoryError(RuntimeError):
    pass


def _normalise_repo_path(repo_path: Path) -> Path:
    """
    Convert Git Bash paths (/c/Users/...) to native Windows paths (C:\\Users\\...).
    No-op on non-Windows systems.
    """
    if os.name != "nt":
        return repo_path

    p = str(repo_path)

    if p.startswith("/") and len(p) >= 3 and p[2] == "/":
        drive = p[1]
        if drive.isalpha():
            return Path(f"{drive.upper()}:/{p[3:]}")

    return Path(p)


def _run_git_command(repo_path: Path, args: List[str]) -> str:
    repo_path = _normalise_repo_path(repo_path)

    logger.debug("git -C %s %s", repo_path, " ".join(args))

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
        # Do not strip spaces, only remove trailing newlines
        return result.stdout.rstrip("\n")
    except CalledProcessError as e:
        stderr = (e.stderr or "").strip()
        raise GitRepositoryError(stderr if stderr else "git command failed") from e
    except FileNotFoundError as e:
        raise GitRepositoryError("git executable not found on PATH") from e


def ensure_git_repository(repo_path: Path) -> None:
    try:
        _run_git_command(repo_path, ["rev-parse", "--is-inside-work-tree"])
    except GitRepositoryError as e:
        raise GitRepositoryError(f"Not a git repository: {repo_path}") from e


def resolve_commit(repo_path: Path, ref: str) -> str:
    """
    Expand a ref or abbreviated hash to a full commit hash.
    """
    try:
        return _run_git_command(repo_path, ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"]).strip()
    except GitRepositoryError as e:
        raise GitRepositoryError(f"Unknown commit: {ref}") from e


def log_range(last_retained_ref: Optional[str]) -> str:
    """
    Revision range covering every commit after the last retained one.

    None means the whole history reachable from HEAD.
    """
    if last_retained_ref is None:
        return "HEAD"
    return f"{last_retained_ref}..HEAD"


def load_commit_log(repo_path: Path, last_retained_ref: Optional[str] = None) -> List[Commit]:
    """
    Load commits in newest → oldest order.

    Fields per commit:
    - hash
    - summary (first line of message)

    Merge commits are excluded, the rewrite replays a linear history.
    """
    ensure_git_repository(repo_path)

    log_format = "%H%x00%s"

    raw_log = _run_git_command(
        repo_path,
        [
            "log",
            "--no-merges",
            f"--pretty=format:{log_format}",
            log_range(last_retained_ref),
            "--",
        ],
    )

    commits: List[Commit] = []

    if not raw_log:
        return commits

    for line in raw_log.split("\n"):
        parts = line.split(_FIELD_SEP)

        if len(parts) != 2:
            raise GitRepositoryError(f"Malformed git log line: {line!r}")

        commit_hash, summary = parts

        commits.append(Commit(hash=commit_hash, summary=summary))

    logger.debug("loaded %d commits for range %s", len(commits), log_range(last_retained_ref))
    return commits


def is_rebase_in_progress(repo_path: Path) -> bool:
    for name in ("rebase-merge", "rebase-apply"):
        git_path = _run_git_command(repo_path, ["rev-parse", "--git-path", name]).strip()
        path = Path(git_path)
        if not path.is_absolute():
            path = _normalise_repo_path(repo_path) / path
        if path.exists():
            return True
    return False
