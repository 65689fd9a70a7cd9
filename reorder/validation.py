# reorder/validation.py
"""
Semantic validation and resolution for configuration.

Responsibilities:
- Validate cross-field constraints the JSON Schema cannot express
- Normalise commit hashes
- Resolve abbreviated hashes against the loaded commit log
- Produce actionable errors with field path context

This module does NOT:
- load YAML files
- load JSON Schema files
- interact with git
- compute the reorder script
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, List, Optional, Sequence, Tuple

from reorder.config import Config
from reorder.repo import Commit


_HASH_RE = re.compile(r"^[0-9a-f]{4,64}$")


class ValidationError(RuntimeError):
    """
    Raised when configuration is structurally valid but semantically invalid.

    Attributes:
        path: dotted path of the failing field, for example reorder.after
    """

    def __init__(self, path: str, message: str) -> None:
        self.path = path
        super().__init__(f"{path}: {message}")


@dataclass(frozen=True)
class ValidatedConfig:
    base: Optional[str]
    move: Tuple[str, ...]
    after: Optional[str]


@dataclass(frozen=True)
class ReorderTargets:
    move_set: FrozenSet[str]
    anchor: Optional[Commit]


def validate_config(cfg: Config) -> ValidatedConfig:
    """
    Validate and normalise configuration into a form the scheduler can trust.

    Enforces:
    - every moved hash and the anchor look like (abbreviated) hex hashes
    - no commit is listed twice in reorder.move
    - the anchor is not one of the moved commits
    - the base is neither moved nor the anchor
    """
    move: List[str] = []
    seen = set()

    for i, raw in enumerate(cfg.reorder.move):
        path = f"reorder.move.{i}"
        value = normalise_hash(path, raw)
        if value in seen:
            raise ValidationError(path, f"commit listed more than once: {raw}")
        seen.add(value)
        move.append(value)

    after: Optional[str] = None
    if cfg.reorder.after is not None:
        after = normalise_hash("reorder.after", cfg.reorder.after)
        if _overlaps(after, move):
            raise ValidationError("reorder.after", "the anchor commit cannot also be moved")

    base: Optional[str] = None
    if cfg.range.base is not None:
        base = cfg.range.base.strip()
        if not base:
            raise ValidationError("range.base", "base must not be empty")
        if _HASH_RE.match(base.lower()):
            base = base.lower()
            if _overlaps(base, move):
                raise ValidationError("range.base", "the last retained commit cannot also be moved")
            if after is not None and _overlaps(base, [after]):
                raise ValidationError("range.base", "the last retained commit cannot be the anchor")

    return ValidatedConfig(base=base, move=tuple(move), after=after)


def resolve_targets(cfg: ValidatedConfig, commits: Sequence[Commit]) -> ReorderTargets:
    """
    Map configured hashes onto full commits of the loaded log.

    Moved commits must be present: an unknown one would silently be left in place.
    An anchor missing from the log is passed through unresolved, the scheduler
    reports it as AnchorNotFound.
    """
    move_set = set()
    for i, prefix in enumerate(cfg.move):
        commit = _match_one(f"reorder.move.{i}", prefix, commits)
        if commit is None:
            raise ValidationError(f"reorder.move.{i}", f"commit not found in rewrite range: {prefix}")
        move_set.add(commit.hash)

    anchor: Optional[Commit] = None
    if cfg.after is not None:
        anchor = _match_one("reorder.after", cfg.after, commits)
        if anchor is None:
            anchor = Commit(hash=cfg.after)
        elif anchor.hash in move_set:
            raise ValidationError("reorder.after", "the anchor commit cannot also be moved")

    return ReorderTargets(move_set=frozenset(move_set), anchor=anchor)


def normalise_hash(path: str, value: str) -> str:
    v = value.strip().lower()
    if not _HASH_RE.match(v):
        raise ValidationError(path, f"not a commit hash: {value!r}")
    return v


def _overlaps(value: str, others: Sequence[str]) -> bool:
    """
    Two abbreviated hashes may name the same commit when one prefixes the other.
    """
    return any(o.startswith(value) or value.startswith(o) for o in others)


def _match_one(path: str, prefix: str, commits: Sequence[Commit]) -> Optional[Commit]:
    matches = [c for c in commits if c.hash.lower().startswith(prefix)]

    if len(matches) > 1:
        raise ValidationError(path, f"ambiguous commit prefix: {prefix}")

    return matches[0] if matches else None
