from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Sequence
import os
import re
import signal
import sys
import tempfile
import subprocess

from user_ui.yaml_emit import build_yaml


class ServiceError(RuntimeError):
    pass


@dataclass(frozen=True)
class CommandResult:
    ok: bool
    returncode: int
    cmd: Sequence[str]
    stdout: str
    stderr: str

    @property
    def conflicts(self) -> bool:
        # reorder.rewrite exits with 1 when the rebase stopped on conflicts
        return self.returncode == 1


_PROJECT_ROOT = Path(__file__).resolve().parent.parent


_GIT_BASH_PATH_RE = re.compile(r"^/([a-zA-Z])/(.+)$")


_DEFAULT_DRY_RUN_TIMEOUT_SECONDS = 60
_DEFAULT_REWRITE_TIMEOUT_SECONDS = 600
_INTERRUPT_GRACE_SECONDS = 10


def preview_yaml(cleaned_data: Mapping[str, Any]) -> str:
    """
    Render the exact YAML that will be executed, without writing any files.
    """
    return build_yaml(cleaned_data)


def run_dry_run(
    cleaned_data: Mapping[str, Any],
    *,
    hash_len: int | None = None,
    timeout_seconds: int | None = _DEFAULT_DRY_RUN_TIMEOUT_SECONDS,
) -> CommandResult:
    """
    Execute a dry run and return captured stdout and stderr.

    Writes policy YAML to a temp file and removes it immediately after the process ends.
    """
    repo_path = _normalise_repo_path(str(cleaned_data["repo_path"]))

    cmd_tail = ["--dry-run"]
    if hash_len is not None:
        if int(hash_len) <= 0:
            raise ServiceError("hash_len must be a positive integer")
        cmd_tail.extend(["--hash-len", str(int(hash_len))])

    return _run_with_policy(
        cleaned_data,
        lambda policy_path: [
            sys.executable,
            str(_PROJECT_ROOT / "main.py"),
            "--repo",
            repo_path,
            "--config",
            str(policy_path),
            *cmd_tail,
        ],
        timeout_seconds=timeout_seconds,
    )


def run_rewrite(
    cleaned_data: Mapping[str, Any],
    *,
    abort_on_conflict: bool = True,
    timeout_seconds: int | None = _DEFAULT_REWRITE_TIMEOUT_SECONDS,
) -> CommandResult:
    """
    Execute a destructive reorder and return captured stdout and stderr.

    Safety:
    The caller must provide confirm_rewrite in cleaned_data.
    Conflicts abort the rebase by default, the web UI cannot resolve them.
    """
    if not bool(cleaned_data.get("confirm_rewrite")):
        raise ServiceError("Rewrite requires confirm_rewrite to be checked")

    repo_path = _normalise_repo_path(str(cleaned_data["repo_path"]))

    flags = ["--force"]
    if bool(cleaned_data.get("allow_dirty")):
        flags.append("--allow-dirty")
    if abort_on_conflict:
        flags.append("--abort-on-conflict")

    return _run_with_policy(
        cleaned_data,
        lambda policy_path: [
            sys.executable,
            "-m",
            "reorder.rewrite",
            "--repo",
            repo_path,
            "--config",
            str(policy_path),
            *flags,
        ],
        timeout_seconds=timeout_seconds,
    )


def _run_with_policy(cleaned_data, build_cmd, *, timeout_seconds: int | None) -> CommandResult:
    yaml_text = build_yaml(cleaned_data)

    with tempfile.TemporaryDirectory() as td:
        policy_path = Path(td) / "reorder.yaml"
        policy_path.write_text(yaml_text, encoding="utf-8", newline="\n")

        return _run(build_cmd(policy_path), cwd=_PROJECT_ROOT, timeout_seconds=timeout_seconds)


def _new_group_options() -> dict:
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _signal_group(proc: subprocess.Popen, *, interrupt: bool) -> None:
    try:
        if os.name == "nt":
            if interrupt:
                proc.send_signal(signal.CTRL_BREAK_EVENT)
            else:
                proc.kill()
        else:
            os.killpg(proc.pid, signal.SIGINT if interrupt else signal.SIGKILL)
    except ProcessLookupError:
        # already exited
        return


def _stop(proc: subprocess.Popen) -> tuple:
    _signal_group(proc, interrupt=True)
    try:
        return proc.communicate(timeout=_INTERRUPT_GRACE_SECONDS)
    except subprocess.TimeoutExpired:
        _signal_group(proc, interrupt=False)
        return proc.communicate()


def _run(cmd: Sequence[str], *, cwd: Path, timeout_seconds: int | None) -> CommandResult:
    """
    Run a subprocess and capture stdout and stderr.

    The child runs in its own process group together with any git it starts.
    On timeout the group is interrupted first, so reorder.rewrite can abort a
    half-done rebase and remove its temporary todo file, and is killed only if
    it is still running after _INTERRUPT_GRACE_SECONDS.
    """
    try:
        proc = subprocess.Popen(
            list(cmd),
            cwd=str(cwd),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            **_new_group_options(),
        )
    except FileNotFoundError as e:
        raise ServiceError(f"Command not found: {cmd[0]}") from e
    except OSError as e:
        raise ServiceError(f"Failed to run command: {cmd[0]}") from e

    with proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout_seconds)
        except subprocess.TimeoutExpired:
            stdout, stderr = _stop(proc)

            return CommandResult(
                ok=False,
                returncode=124,
                cmd=list(cmd),
                stdout=stdout or "",
                stderr=(stderr or "") + "\nprocess timed out",
            )

    return CommandResult(
        ok=proc.returncode == 0,
        returncode=int(proc.returncode),
        cmd=list(cmd),
        stdout=stdout or "",
        stderr=stderr or "",
    )


def _normalise_repo_path(path_str: str) -> str:
    """
    Normalise Git Bash style paths to Windows drive paths when running on Windows.

    Example:
      /c/Users/name/repo -> C:/Users/name/repo
    """
    p = path_str.strip()

    if os.name != "nt":
        return p

    m = _GIT_BASH_PATH_RE.match(p)
    if not m:
        return p

    drive = m.group(1).upper()
    rest = m.group(2)
    return f"{drive}:/{rest}"
