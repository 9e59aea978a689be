"""
Tests for configuration loading.
"""

from pathlib import Path

import pytest

from freeslots.config import AppConfig


def write(tmp_path, text: str) -> Path:
    path = tmp_path / "freeslots.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestAppConfig:
    """Tests for AppConfig."""

    def test_defaults(self):
        config = AppConfig()

        assert config.defaults.range_days == 7
        assert config.defaults.min_duration_minutes == 0
        assert config.log_level == "WARNING"

    def test_load_from_yaml(self, tmp_path):
        path = write(
            tmp_path,
            "data_file: store/data.json\n"
            "log_level: info\n"
            "defaults:\n"
            "  range_days: 14\n"
            "  min_duration_minutes: 30\n"
            "owners:\n"
            "  - name: Alice\n"
            "    owner_id: u-1\n",
        )

        config = AppConfig.load_from_yaml(path)

        assert config.data_file == tmp_path / "store" / "data.json"
        assert config.log_level == "INFO"
        assert config.defaults.range_days == 14
        assert config.resolve_owner("alice") == "u-1"
        assert config.resolve_owner("u-2") == "u-2"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            AppConfig.load_from_yaml(tmp_path / "missing.yaml")

    def test_empty_file_gives_defaults(self, tmp_path):
        config = AppConfig.load_from_yaml(write(tmp_path, ""))

        assert config.defaults.range_days == 7

    @pytest.mark.parametrize(
        "text",
        [
            "- just\n- a list\n",
            "defaults:\n  range_days: 0\n",
            "defaults:\n  min_duration_minutes: -5\n",
            "log_level: chatty\n",
            "owners:\n  - {name: a, owner_id: '1'}\n  - {name: A, owner_id: '2'}\n",
            "data_file: [unclosed\n",
        ],
    )
    def test_invalid_config(self, tmp_path, text):
        with pytest.raises(ValueError):
            AppConfig.load_from_yaml(write(tmp_path, text))
