# user_ui/yaml_emit.py
from __future__ import annotations

from typing import Any, Dict, Mapping

import yaml


class QuotedString(str):
    """
    Marker type for forcing quoted YAML scalars.

    This is used to stop PyYAML from later reinterpreting unquoted hashes as
    non-string types on load, for example an all digit prefix like 1234567
    or an exponent lookalike like 1e10.
    """


def _quoted_str_representer(dumper: yaml.SafeDumper, data: QuotedString):
    return dumper.represent_scalar("tag:yaml.org,2002:str", data, style='"')


yaml.add_representer(QuotedString, _quoted_str_representer, Dumper=yaml.SafeDumper)


def build_policy_dict(cleaned_data: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Convert validated form.cleaned_data into a policy dict matching schema.json.

    Rules:
    1) range.base and reorder.after are emitted as null when empty
    2) reorder.move keeps the order the user typed, the scheduler ignores it anyway
    3) every hash is emitted as a quoted string to avoid YAML implicit typing
    """
    move = list(cleaned_data["move"])
    if not move:
        raise ValueError("At least one commit to move is required")

    base = cleaned_data.get("base")
    after = cleaned_data.get("after")

    return {
        "range": {"base": _quoted_or_none(base)},
        "reorder": {
            "move": [QuotedString(str(h)) for h in move],
            "after": _quoted_or_none(after),
        },
    }


def build_yaml(cleaned_data: Mapping[str, Any]) -> str:
    """
    Build YAML text from validated form.cleaned_data.
    """
    policy = build_policy_dict(cleaned_data)
    return yaml.safe_dump(
        policy,
        sort_keys=False,
        default_flow_style=False,
    )


def _quoted_or_none(value: Any) -> QuotedString | None:
    if value is None or str(value).strip() == "":
        return None
    return QuotedString(str(value).strip())
