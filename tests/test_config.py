from pathlib import Path

import pytest

from reorder.config import Config
from reorder.config import ConfigError
from reorder.config import RangeConfig
from reorder.config import ReorderConfig
from reorder.config import default_schema_path
from reorder.config import load_config


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "reorder.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_full_policy(self, tmp_path):
        path = write(
            tmp_path,
            'range:\n  base: "1a2b3c4d"\nreorder:\n  move: ["abc1234", "def5678"]\n  after: "0badc0de"\n',
        )

        cfg = load_config(path, default_schema_path())

        assert cfg == Config(
            range=RangeConfig(base="1a2b3c4d"),
            reorder=ReorderConfig(move=("abc1234", "def5678"), after="0badc0de"),
        )

    def test_range_and_anchor_are_optional(self, tmp_path):
        path = write(tmp_path, "reorder:\n  move: [abc1234]\n")

        cfg = load_config(path, default_schema_path())

        assert cfg.range.base is None
        assert cfg.reorder.after is None
        assert cfg.reorder.move == ("abc1234",)

    def test_explicit_nulls(self, tmp_path):
        path = write(tmp_path, "range:\n  base: null\nreorder:\n  move: [abc1234]\n  after: null\n")

        cfg = load_config(path, default_schema_path())

        assert cfg.range.base is None
        assert cfg.reorder.after is None

    def test_empty_move_list_rejected(self, tmp_path):
        path = write(tmp_path, "reorder:\n  move: []\n")

        with pytest.raises(ConfigError, match="reorder.move"):
            load_config(path, default_schema_path())

    def test_unquoted_numeric_hash_rejected(self, tmp_path):
        path = write(tmp_path, "reorder:\n  move: [1234567]\n")

        with pytest.raises(ConfigError, match="reorder.move.0"):
            load_config(path, default_schema_path())

    def test_unknown_key_reported_at_root(self, tmp_path):
        path = write(tmp_path, "reorder:\n  move: [abc1234]\nsquash: true\n")

        with pytest.raises(ConfigError, match="<root>"):
            load_config(path, default_schema_path())

    def test_missing_reorder_section(self, tmp_path):
        path = write(tmp_path, "range:\n  base: abc1234\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(path, default_schema_path())

    def test_empty_file(self, tmp_path):
        path = write(tmp_path, "")

        with pytest.raises(ConfigError, match="Config is empty"):
            load_config(path, default_schema_path())

    def test_top_level_list(self, tmp_path):
        path = write(tmp_path, "- abc1234\n")

        with pytest.raises(ConfigError, match="mapping at top level"):
            load_config(path, default_schema_path())

    def test_invalid_yaml(self, tmp_path):
        path = write(tmp_path, "reorder: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to load config"):
            load_config(path, default_schema_path())

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="Failed to load config"):
            load_config(tmp_path / "missing.yaml", default_schema_path())

    def test_bad_schema_file(self, tmp_path):
        path = write(tmp_path, "reorder:\n  move: [abc1234]\n")
        schema = tmp_path / "schema.json"
        schema.write_text("[]", encoding="utf-8")

        with pytest.raises(ConfigError, match="Schema must be a JSON object"):
            load_config(path, schema)
