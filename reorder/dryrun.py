# reorder/dryrun.py
"""
Dry run reporting.

Responsibilities:
- Build a report for a planned reorder
- Render a deterministic, human readable output

This module does NOT:
- call git
- compute the reorder script
- rewrite history
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Dict, List, Optional, Sequence

from reorder.repo import Commit
from reorder.script import ScriptEntry, render_todo


ROLE_ANCHOR = "anchor"
ROLE_MOVED = "moved"
ROLE_KEPT = "kept"


@dataclass(frozen=True)
class DryRunEntry:
    position: int
    original_position: int
    hash_prefix: str
    summary: str
    role: str
    changed: bool


def build_entries(
    log: Sequence[Commit],
    script: Sequence[ScriptEntry],
    move_set: AbstractSet[str],
    anchor: Optional[Commit],
    *,
    hash_len: int = 12,
) -> List[DryRunEntry]:
    """
    Build one dry run entry per script line.

    Positions are zero based and counted oldest first.

    Raises:
        KeyError: if a script hash is missing from the log, this indicates an upstream bug.
        ValueError: if hash_len is invalid.
    """
    if hash_len <= 0:
        raise ValueError("hash_len must be a positive integer")

    # log is newest first
    original: Dict[str, int] = {c.hash: i for i, c in enumerate(reversed(log))}
    anchor_hash = anchor.hash if anchor is not None else None

    entries: List[DryRunEntry] = []

    for position, e in enumerate(script):
        before = original[e.hash]

        if e.hash == anchor_hash:
            role = ROLE_ANCHOR
        elif e.hash in move_set:
            role = ROLE_MOVED
        else:
            role = ROLE_KEPT

        entries.append(
            DryRunEntry(
                position=position,
                original_position=before,
                hash_prefix=e.hash[:hash_len],
                summary=e.summary,
                role=role,
                changed=before != position,
            )
        )

    return entries


def render_dryrun_report(
    *,
    total_commits: int,
    base: Optional[str],
    anchor: Optional[Commit],
    move_count: int,
    entries: Sequence[DryRunEntry],
    script: Sequence[ScriptEntry],
    hash_len: int,
) -> str:
    """
    Render a dry run report as plain text.
    """
    lines: List[str] = []

    lines.append(f"Total commits: {total_commits}")
    lines.append(f"Base: {base if base is not None else '<root>'}")
    lines.append(f"Moved commits: {move_count}")

    if anchor is not None:
        lines.append(f"Anchor: {anchor.hash[:hash_len]} {anchor.summary}".rstrip())
    else:
        lines.append("Anchor: <end of history>")

    moved_positions = sum(1 for e in entries if e.changed)
    lines.append(f"Commits changing position: {moved_positions}")

    if not entries:
        return "\n".join(lines)

    lines.append("")
    lines.append(f"Hash shown as {hash_len} character prefix, positions are oldest first")
    lines.append("")

    headers = [
        "new",
        "old",
        "hash",
        "role",
        "summary",
    ]

    rows: List[List[str]] = []
    for e in entries:
        rows.append(
            [
                str(e.position),
                str(e.original_position),
                e.hash_prefix,
                e.role + ("*" if e.changed else ""),
                e.summary,
            ]
        )

    lines.extend(_format_table(headers, rows))
    lines.append("")
    lines.append("Todo list")
    lines.append("")
    lines.append(render_todo(script).rstrip("\n"))
    return "\n".join(lines)


def _format_table(headers: List[str], rows: List[List[str]]) -> List[str]:
    widths = [len(h) for h in headers]

    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(cell))

    def fmt_row(items: List[str]) -> str:
        return "  ".join(items[i].ljust(widths[i]) for i in range(len(items))).rstrip()

    lines: List[str] = []
    lines.append(fmt_row(headers))
    lines.append(fmt_row(["-" * w for w in widths]))

    for row in rows:
        lines.append(fmt_row(row))

    return lines
