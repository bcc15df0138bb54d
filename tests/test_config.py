"""Tests for configuration layering."""

import json
from pathlib import Path

import pytest

from runpanel.config import DEFAULT_CONFIG
from runpanel.config import adapter_enabled
from runpanel.config import deep_merge
from runpanel.config import get_bool
from runpanel.config import get_float
from runpanel.config import get_int
from runpanel.config import get_option
from runpanel.config import load_config_file
from runpanel.config import resolve_run_config
from runpanel.exceptions import ConfigurationError


class TestDeepMerge:
    """Tests for deep_merge."""

    def test_nested_sections_merge_keywise(self) -> None:
        """Test nested tables keep keys the override does not mention."""
        merged = deep_merge(DEFAULT_CONFIG, {"mini": {"width_max": 70}})
        assert merged["mini"]["width_max"] == 70
        assert merged["mini"]["width_min"] == DEFAULT_CONFIG["mini"]["width_min"]

    def test_scalars_replace(self) -> None:
        """Test scalar values replace, including replacing a table with a scalar."""
        merged = deep_merge({"a": {"b": 1}, "c": 1}, {"a": 5, "c": 2})
        assert merged == {"a": 5, "c": 2}

    def test_inputs_not_mutated(self) -> None:
        """Test neither input is changed and no containers are shared."""
        base = {"poll": {"interval": 1.0}}
        override = {"poll": {"interval": 2.0}, "list": [1, 2]}
        merged = deep_merge(base, override)
        merged["poll"]["interval"] = 3.0
        merged["list"].append(3)
        assert base == {"poll": {"interval": 1.0}}
        assert override == {"poll": {"interval": 2.0}, "list": [1, 2]}

    def test_objects_are_shared(self) -> None:
        """Test non-container values such as notifier objects are kept as-is."""
        notifier = object()
        merged = deep_merge(DEFAULT_CONFIG, {"notifier": notifier})
        assert merged["notifier"] is notifier

    def test_none_override(self) -> None:
        """Test None override returns an equal copy."""
        merged = deep_merge(DEFAULT_CONFIG, None)
        assert merged == DEFAULT_CONFIG
        assert merged is not DEFAULT_CONFIG


class TestResolveRunConfig:
    """Tests for profile and per-call layering."""

    @pytest.fixture
    def base(self) -> dict:
        return deep_merge(
            DEFAULT_CONFIG,
            {
                "max_lines": 100,
                "profiles": {
                    "latex": {"max_lines": 200, "auto_hide": {"enabled": True}},
                },
            },
        )

    def test_profile_applied(self, base: dict) -> None:
        """Test profile values override the base."""
        config = resolve_run_config(base, "latex")
        assert config["max_lines"] == 200
        assert config["auto_hide"]["enabled"] is True
        assert config["auto_hide"]["delay"] == DEFAULT_CONFIG["auto_hide"]["delay"]

    def test_per_call_wins_over_profile(self, base: dict) -> None:
        """Test per-call overrides beat the profile on the same key."""
        config = resolve_run_config(base, "latex", {"max_lines": 300})
        assert config["max_lines"] == 300

    def test_unknown_profile_ignored(self, base: dict) -> None:
        """Test an unknown profile leaves the base untouched."""
        assert resolve_run_config(base, "nope")["max_lines"] == 100

    def test_snapshots_independent(self, base: dict) -> None:
        """Test two snapshots do not share state."""
        first = resolve_run_config(base, "latex")
        second = resolve_run_config(base, None)
        first["auto_hide"]["enabled"] = False
        second["max_lines"] = 1
        assert base["profiles"]["latex"]["auto_hide"]["enabled"] is True
        assert base["max_lines"] == 100
        assert resolve_run_config(base, "latex")["auto_hide"]["enabled"] is True


class TestAdapterEnabled:
    """Tests for adapter_enabled."""

    def test_missing_profile(self) -> None:
        """Test adapters without a profile are disabled."""
        assert adapter_enabled(DEFAULT_CONFIG, "vimtex") is False

    def test_enabled_by_default(self) -> None:
        """Test a profile without an enabled flag is enabled."""
        config = deep_merge(DEFAULT_CONFIG, {"profiles": {"vimtex": {}}})
        assert adapter_enabled(config, "vimtex") is True

    def test_explicitly_disabled(self) -> None:
        """Test enabled=False disables the adapter."""
        config = deep_merge(DEFAULT_CONFIG, {"profiles": {"vimtex": {"enabled": False}}})
        assert adapter_enabled(config, "vimtex") is False


class TestOptionReaders:
    """Tests for the typed option readers."""

    def test_get_option_walks_sections(self) -> None:
        """Test nested lookup and default."""
        assert get_option(DEFAULT_CONFIG, "poll", "interval") == 0.25
        assert get_option(DEFAULT_CONFIG, "poll", "missing", default=7) == 7
        assert get_option(DEFAULT_CONFIG, "max_lines", "deeper", default=1) == 1

    def test_get_float_rejects_non_numbers(self) -> None:
        """Test strings, booleans and NaN fall back to the default."""
        config = {"a": "x", "b": True, "c": float("nan"), "d": 2}
        assert get_float(config, "a", default=1.0) == 1.0
        assert get_float(config, "b", default=1.0) == 1.0
        assert get_float(config, "c", default=1.0) == 1.0
        assert get_float(config, "d", default=1.0) == 2.0

    def test_get_float_minimum(self) -> None:
        """Test values below the minimum are raised to it."""
        assert get_float({"a": -3}, "a", default=1.0, minimum=0.0) == 0.0

    def test_get_int_rounds(self) -> None:
        """Test floats are rounded to int."""
        assert get_int({"a": 2.6}, "a", default=0) == 3
        assert get_int({"a": "many"}, "a", default=5) == 5
        assert get_int({"a": -1}, "a", default=5, minimum=1) == 1

    def test_get_bool_only_accepts_bools(self) -> None:
        """Test truthy non-bools fall back to the default."""
        assert get_bool({"a": 1}, "a", default=False) is False
        assert get_bool({"a": True}, "a", default=False) is True


class TestLoadConfigFile:
    """Tests for load_config_file."""

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file yields empty overrides."""
        assert load_config_file(tmp_path / "config.json") == {}

    def test_valid_file(self, tmp_path: Path) -> None:
        """Test a JSON object is returned."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"max_lines": 10}))
        assert load_config_file(path) == {"max_lines": 10}

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Test unparseable JSON raises ConfigurationError."""
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigurationError):
            load_config_file(path)

    def test_not_an_object(self, tmp_path: Path) -> None:
        """Test a JSON array raises ConfigurationError."""
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigurationError):
            load_config_file(path)
