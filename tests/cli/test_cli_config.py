"""Tests for config models and config loading."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from cli.config import _deep_merge, find_config, load_config_model
from cli.config_models import LoggingConfig, SwarmConfig
from learning.config import LearningConfig, MaturityConfig, StorageConfig
from shared_types import StorageBackend


class TestModels:
    def test_defaults(self):
        config = SwarmConfig()
        assert config.learning.half_life_days == 90.0
        assert config.learning.default_criteria == ["type_safe", "no_bugs", "patterns", "readable"]
        assert config.anti_patterns.failure_ratio_threshold == 0.6
        assert config.anti_patterns.anti_pattern_prefix == "AVOID: "
        assert config.maturity.min_feedback == 3
        assert config.strikes.max_strikes == 3
        assert config.storage.backend == StorageBackend.SQLITE
        assert config.storage.db_path == Path("~/.swarm/learning.db").expanduser()

    def test_half_life_must_be_positive(self):
        with pytest.raises(ValidationError):
            LearningConfig(half_life_days=0)

    def test_fast_threshold_not_above_slow(self):
        with pytest.raises(ValidationError):
            LearningConfig(fast_completion_threshold_ms=10, slow_completion_threshold_ms=5)

    def test_ratio_bounds(self):
        with pytest.raises(ValidationError):
            MaturityConfig(deprecation_threshold=1.5)

    def test_unknown_backend_rejected(self):
        with pytest.raises(ValidationError):
            StorageConfig(backend="redis")

    def test_log_level_normalised(self):
        assert LoggingConfig(level="debug").level == "DEBUG"
        with pytest.raises(ValidationError):
            LoggingConfig(level="chatty")

    def test_json_alias(self):
        assert SwarmConfig.from_dict({"logging": {"json": True}}).logging.json_output is True


class TestOverrides:
    def test_only_named_field_changes(self):
        base = SwarmConfig()
        updated = base.with_overrides({"learning": {"half_life_days": 30}})
        assert updated.learning.half_life_days == 30
        assert updated.learning.min_feedback_for_adjustment == base.learning.min_feedback_for_adjustment
        assert updated.maturity == base.maturity
        assert base.learning.half_life_days == 90.0

    def test_overrides_revalidated(self):
        with pytest.raises(ValidationError):
            SwarmConfig().with_overrides({"strikes": {"max_strikes": 0}})

    def test_deep_merge(self):
        merged = _deep_merge({"a": {"b": 1, "c": 2}, "d": 3}, {"a": {"b": 10}})
        assert merged == {"a": {"b": 10, "c": 2}, "d": 3}


class TestLoading:
    def test_find_config_in_cwd(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HOME", str(tmp_path / "home"))
        assert find_config() is None
        (tmp_path / "swarm-learning.yaml").write_text("strikes:\n  max_strikes: 5\n")
        assert find_config() == tmp_path / "swarm-learning.yaml"

    def test_load_yaml(self, tmp_path, monkeypatch):
        monkeypatch.delenv("SWARM_LEARNING_DB", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text(
            "learning:\n  half_life_days: 14\n"
            "storage:\n  backend: memory\n  db_path: ~/elsewhere.db\n"
        )
        config = load_config_model(path)
        assert config.learning.half_life_days == 14
        assert config.storage.backend == StorageBackend.MEMORY
        assert config.storage.db_path == Path("~/elsewhere.db").expanduser()

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("learning: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            load_config_model(path)

    def test_invalid_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("maturity:\n  min_feedback: 0\n")
        with pytest.raises(ValueError, match="Config validation failed"):
            load_config_model(path)

    def test_env_overrides_db_path(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SWARM_LEARNING_DB", str(tmp_path / "env.db"))
        config = load_config_model(tmp_path / "missing.yaml")
        assert config.storage.db_path == tmp_path / "env.db"
