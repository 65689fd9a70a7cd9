from __future__ import annotations

from django import forms
from pathlib import Path
import re


_HASH_RE = re.compile(r"^[0-9a-fA-F]{4,64}$")
_SPLIT_RE = re.compile(r"[\s,]+")


def split_hashes(value: str) -> list[str]:
    """
    Split a free text list of hashes on whitespace and commas.
    """
    return [h for h in _SPLIT_RE.split(value.strip()) if h]


class ReorderConfigForm(forms.Form):
    """
    Canonical UI form for configuring git-history-reorder.

    This form:
    - Mirrors the YAML contract exactly
    - Validates UI-level constraints
    - Emits a pure Python structure (no side effects)
    """

    # --------------------------------------------------
    # Repository selection
    # --------------------------------------------------

    repo_path = forms.CharField(
        label="Repository path",
        help_text="Path to a local Git repository",
        widget=forms.TextInput(attrs={"placeholder": "/path/to/repo"}),
    )

    base = forms.CharField(
        required=False,
        label="Last retained commit",
        help_text="Leave empty to rewrite from the first commit",
    )

    # --------------------------------------------------
    # Reorder
    # --------------------------------------------------

    move = forms.CharField(
        label="Commits to move",
        help_text="Hashes separated by spaces, commas, or new lines. Order does not matter.",
        widget=forms.Textarea(attrs={"rows": 4}),
    )

    after = forms.CharField(
        required=False,
        label="Move after",
        help_text="Leave empty to move the commits to the end of history",
    )

    # --------------------------------------------------
    # Execution intent
    # --------------------------------------------------

    allow_dirty = forms.BooleanField(
        required=False,
        label="Allow dirty working tree",
    )

    confirm_rewrite = forms.BooleanField(
        required=False,
        label="I understand this rewrites Git history",
    )

    # --------------------------------------------------
    # Field validation
    # --------------------------------------------------

    def clean_repo_path(self):
        value = self.cleaned_data["repo_path"]
        path = Path(value).expanduser().resolve()

        if not path.exists():
            raise forms.ValidationError("Path does not exist")

        if not (path / ".git").exists():
            raise forms.ValidationError("Path is not a Git repository")

        return str(path)

    def clean_base(self):
        value = (self.cleaned_data.get("base") or "").strip()
        return value or None

    def clean_move(self):
        hashes = split_hashes(self.cleaned_data["move"])

        if not hashes:
            raise forms.ValidationError("Provide at least one commit to move")

        bad = [h for h in hashes if not _HASH_RE.match(h)]
        if bad:
            raise forms.ValidationError(f"Not a commit hash: {', '.join(bad)}")

        lowered = [h.lower() for h in hashes]
        if len(set(lowered)) != len(lowered):
            raise forms.ValidationError("A commit is listed more than once")

        return lowered

    def clean_after(self):
        value = (self.cleaned_data.get("after") or "").strip()
        if not value:
            return None

        if not _HASH_RE.match(value):
            raise forms.ValidationError("Not a commit hash")

        return value.lower()

    # --------------------------------------------------
    # Cross-field validation
    # --------------------------------------------------

    def clean(self):
        cleaned = super().clean()
        move = cleaned.get("move") or []
        after = cleaned.get("after")

        if after is not None and any(h.startswith(after) or after.startswith(h) for h in move):
            self.add_error("after", "The anchor commit cannot also be moved")

        return cleaned
