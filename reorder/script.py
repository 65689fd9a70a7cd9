# reorder/script.py
"""
Rebase todo script model.

Responsibilities:
- Represent the instructions handed to the rewrite engine
- Render the todo list wire format (one "pick <hash> <summary>" line each)
- Parse the same format back

This module does NOT:
- call git
- decide the order of instructions
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Tuple


PICK = "pick"


class ScriptFormatError(ValueError):
    pass


@dataclass(frozen=True)
class ScriptEntry:
    op: str
    hash: str
    summary: str

    def to_line(self) -> str:
        # Summary is emitted verbatim. Git only uses the hash when replaying.
        return f"{self.op} {self.hash} {self.summary}"


Script = Tuple[ScriptEntry, ...]


def pick(commit_hash: str, summary: str) -> ScriptEntry:
    return ScriptEntry(op=PICK, hash=commit_hash, summary=summary)


def render_todo(script: Iterable[ScriptEntry]) -> str:
    """
    Render a script as todo list text.

    Every instruction is terminated by a newline, including the last one.
    """
    return "".join(entry.to_line() + "\n" for entry in script)


def parse_todo(text: str) -> Script:
    """
    Parse todo list text into a script.

    Blank lines and git style comments (#) are skipped.
    Only pick instructions are accepted.
    """
    entries: List[ScriptEntry] = []

    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split(" ", 2)
        if len(parts) < 2:
            raise ScriptFormatError(f"line {lineno}: expected '<op> <hash> <summary>', got {raw!r}")

        op, commit_hash = parts[0], parts[1]
        summary = parts[2] if len(parts) == 3 else ""

        if op != PICK:
            raise ScriptFormatError(f"line {lineno}: unsupported instruction {op!r}")

        entries.append(ScriptEntry(op=op, hash=commit_hash, summary=summary))

    return tuple(entries)
