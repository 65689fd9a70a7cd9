import shutil
import subprocess
from pathlib import Path
from typing import List

import django
import pytest
from django.conf import settings

from reorder.repo import Commit


GIT = shutil.which("git")

requires_git = pytest.mark.skipif(GIT is None, reason="git is not installed")


def pytest_configure(config):
    # Forms only need a configured settings object, no apps or database.
    if not settings.configured:
        settings.configure(USE_I18N=False, ROOT_URLCONF="user_ui.urls")
        django.setup()


def make_log(*names: str) -> List[Commit]:
    """Build a newest-first log from names given oldest-first.

    Each name doubles as hash and summary so scripts read naturally in
    assertions.
    """
    return [Commit(hash=n, summary=f"commit {n}") for n in reversed(names)]


def git(repo: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args],
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def commit_file(repo: Path, name: str, content: str, message: str) -> str:
    (repo / name).write_text(content, encoding="utf-8")
    git(repo, "add", name)
    git(repo, "commit", "-q", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def summaries_oldest_first(repo: Path) -> List[str]:
    out = git(repo, "log", "--reverse", "--pretty=format:%s")
    return out.splitlines()


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    repo = tmp_path / "repo"
    repo.mkdir()
    git(repo, "init", "-q")
    git(repo, "config", "user.name", "Test User")
    git(repo, "config", "user.email", "test@example.com")
    git(repo, "config", "commit.gpgsign", "false")
    return repo


@pytest.fixture
def linear_repo(git_repo: Path):
    """Repository with commits A..E, each adding its own file.

    Returns the repository path and a mapping of name -> full hash.
    """
    hashes = {}
    for name in "ABCDE":
        hashes[name] = commit_file(git_repo, f"{name.lower()}.txt", f"{name}\n", name)
    return git_repo, hashes
