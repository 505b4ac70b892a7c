"""Tests for config module."""

import json

import pytest

from tandem.config import TandemConfig, get_config_path, load_config, save_config
from tandem.exceptions import ConfigError


class TestTandemConfig:
    """Tests for TandemConfig dataclass."""

    def test_defaults(self):
        """Default engine is basic with the documented limits."""
        config = TandemConfig()
        assert config.engine == "basic"
        assert config.auto_trigger_threshold == 7
        assert config.cache_ttl == 3600
        assert config.pattern_cache_size == 500

    def test_unknown_engine_rejected(self):
        """Only basic and advanced engines exist."""
        with pytest.raises(ConfigError):
            TandemConfig(engine="quantum")

    def test_from_dict_keeps_unknown_keys(self):
        """Unknown keys are preserved in extra."""
        config = TandemConfig.from_dict({"engine": "advanced", "theme": "dark"})
        assert config.engine == "advanced"
        assert config.extra == {"theme": "dark"}

    def test_merged_overrides(self):
        """Overrides are shallow-merged into a new config."""
        base = TandemConfig(batch_size=5)
        merged = base.merged({"batch_size": 10})
        assert merged.batch_size == 10
        assert base.batch_size == 5


class TestLoadConfig:
    """Tests for loading and saving config files."""

    def test_missing_file_gives_defaults(self, tmp_path):
        """No file means all defaults."""
        config = load_config(tmp_path / "absent.json")
        assert config == TandemConfig()

    def test_load_from_file(self, tmp_path):
        """Values in the file override defaults."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"engine": "advanced", "max_retries": 4}))
        config = load_config(path)
        assert config.engine == "advanced"
        assert config.max_retries == 4

    def test_invalid_json_raises(self, tmp_path):
        """Malformed JSON is a ConfigError."""
        path = tmp_path / "config.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(path)

    def test_non_object_raises(self, tmp_path):
        """A JSON list is not a valid config."""
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError):
            load_config(path)

    def test_env_engine_override(self, tmp_path, monkeypatch):
        """TANDEM_ENGINE selects the engine."""
        monkeypatch.setenv("TANDEM_ENGINE", "advanced")
        assert load_config(tmp_path / "absent.json").engine == "advanced"

    def test_explicit_overrides_win(self, tmp_path):
        """Explicit overrides beat file contents."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"engine": "advanced"}))
        assert load_config(path, overrides={"engine": "basic"}).engine == "basic"

    def test_config_path_env(self, tmp_path, monkeypatch):
        """TANDEM_CONFIG points at the config file."""
        monkeypatch.setenv("TANDEM_CONFIG", str(tmp_path / "custom.json"))
        assert get_config_path() == tmp_path / "custom.json"

    def test_save_and_reload(self, tmp_path):
        """Saved config loads back unchanged."""
        path = tmp_path / "nested" / "config.json"
        original = TandemConfig(engine="advanced", batch_size=9, extra={"team": "core"})
        save_config(original, path)
        assert load_config(path) == original
