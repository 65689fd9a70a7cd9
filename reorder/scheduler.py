# reorder/scheduler.py
"""
Reorder scheduling engine.

Responsibilities:
- Classify every commit of a log as moved, anchor, or kept
- Emit a pick script where the moved commits form one contiguous block
  directly after the anchor, or at the end of history without an anchor
- Preserve log order inside every group, whatever order the caller gave

This module does NOT:
- call git
- write the todo file
- rewrite history
"""

from __future__ import annotations

import enum
from collections import Counter
from dataclasses import dataclass
from typing import AbstractSet, Iterable, List, Optional, Sequence

from reorder.repo import Commit
from reorder.script import Script, ScriptEntry, pick


class SchedulerError(RuntimeError):
    pass


class EmptyMoveSet(SchedulerError):
    def __init__(self) -> None:
        super().__init__("No commits provided to reorder")


class EmptyLog(SchedulerError):
    def __init__(self) -> None:
        super().__init__("Could not find commits in log for the rewrite range")


class AnchorNotFound(SchedulerError):
    def __init__(self, anchor_hash: str) -> None:
        self.anchor_hash = anchor_hash
        super().__init__(
            f"The commit to move after ({anchor_hash}) was not in the log. "
            "Continuing would drop the commits being moved."
        )


class Phase(enum.Enum):
    BEFORE_ANCHOR = "before_anchor"
    AFTER_ANCHOR = "after_anchor"


@dataclass(frozen=True)
class ScheduleResult:
    script: Optional[Script] = None
    error: Optional[SchedulerError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Script:
        """
        Return the script, or raise the failure this result carries.
        """
        if self.error is not None:
            raise self.error
        assert self.script is not None
        return self.script


# ---------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------

def compute_script(
    log: Sequence[Commit],
    move_set: Iterable[str],
    anchor: Optional[Commit],
) -> ScheduleResult:
    """
    Compute the pick script for a reorder.

    Args:
        log: commits newest -> oldest, as returned by load_commit_log
        move_set: hashes of the commits to relocate, in any order
        anchor: commit the moved commits land after, or None for the end of history

    Returns:
        ScheduleResult holding either the script or the failure.
        Nothing is raised for EmptyMoveSet, EmptyLog or AnchorNotFound.

    Example, oldest -> newest A, B, C, D, E, moving {A, E} after C:
        B, C, A, E, D
    """
    to_move = frozenset(move_set)

    if not to_move:
        return ScheduleResult(error=EmptyMoveSet())

    if not log:
        return ScheduleResult(error=EmptyLog())

    try:
        script = _schedule(log, to_move, anchor)
    except SchedulerError as e:
        return ScheduleResult(error=e)

    _check_conservation(log, script)
    return ScheduleResult(script=script)


# ---------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------

def _schedule(
    log: Sequence[Commit],
    to_move: AbstractSet[str],
    anchor: Optional[Commit],
) -> Script:
    phase = Phase.BEFORE_ANCHOR
    anchor_hash = anchor.hash if anchor is not None else None

    # Moved commits seen before the anchor, in log order.
    move_buffer: List[Commit] = []
    # Kept commits seen after the anchor. They go after the moved block.
    deferred_buffer: List[Commit] = []
    out: List[ScriptEntry] = []

    for commit in reversed(log):
        if phase is Phase.BEFORE_ANCHOR:
            if commit.hash in to_move:
                move_buffer.append(commit)
            elif anchor_hash is not None and commit.hash == anchor_hash:
                phase = Phase.AFTER_ANCHOR
                out.append(_pick(commit))
                out.extend(_pick(c) for c in move_buffer)
                move_buffer.clear()
            else:
                out.append(_pick(commit))
        else:
            if commit.hash in to_move:
                out.append(_pick(commit))
            else:
                deferred_buffer.append(commit)

    if anchor_hash is not None and phase is Phase.BEFORE_ANCHOR:
        raise AnchorNotFound(anchor_hash)

    out.extend(_pick(c) for c in deferred_buffer)

    if anchor_hash is None:
        out.extend(_pick(c) for c in move_buffer)

    return tuple(out)


def _pick(commit: Commit) -> ScriptEntry:
    return pick(commit.hash, commit.summary)


def _check_conservation(log: Sequence[Commit], script: Script) -> None:
    if len(script) != len(log) or Counter(e.hash for e in script) != Counter(c.hash for c in log):
        raise SchedulerError("Internal error: reorder script does not match the commit log")
