"""
Tests for configuration and logging setup

- Defaults and validation
- Environment overrides
- Global config override for tests
- loguru sinks
"""
import json
import sys
import pytest
from loguru import logger
from temporal_core.core import config as config_module
from temporal_core.core.config import (
    TemporalCoreConfig,
    SequenceMemoryConfig,
    PredictionErrorConfig,
    LoggingConfig,
    get_config,
    set_config,
)
from temporal_core.core.logging_setup import setup_logging, PerformanceLogger


ENV_VARS = [
    "TEMPORAL_CORE_ENV",
    "TEMPORAL_CORE_DEBUG",
    "TEMPORAL_CORE_MAX_EPISODES",
    "TEMPORAL_CORE_MEMORY_DECAY_RATE",
    "TEMPORAL_CORE_SIMILARITY_THRESHOLD",
    "TEMPORAL_CORE_MAX_LEVELS",
    "TEMPORAL_CORE_SIGNIFICANCE_THRESHOLD",
    "TEMPORAL_CORE_ADAPTIVE_LEARNING",
    "TEMPORAL_CORE_LOG_LEVEL",
    "TEMPORAL_CORE_JSON_LOGS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    set_config(None)
    yield monkeypatch
    set_config(None)


@pytest.fixture
def restore_logger():
    yield
    logger.remove()
    logger.add(sys.stderr)


class TestDefaults:
    """Test default values and validation"""

    def test_defaults_validate(self):
        config = TemporalCoreConfig()

        config.validate()

        assert config.memory.max_episodes == 10000
        assert config.memory.consolidation_threshold == 5.0
        assert config.prediction.max_levels == 5
        assert config.prediction.significance_threshold == 0.1
        assert config.prediction.error_weighting.magnitude == 0.4

    @pytest.mark.parametrize("overrides", [
        {"max_episodes": 0},
        {"decay_rate": -0.1},
        {"similarity_threshold": 1.5},
    ])
    def test_invalid_memory(self, overrides):
        with pytest.raises(AssertionError):
            SequenceMemoryConfig(**overrides).validate()

    @pytest.mark.parametrize("overrides", [
        {"max_levels": 0},
        {"error_threshold": 0.0},
        {"learning_rate": 0.0},
        {"suppression_strength": 2.0},
        {"max_active_errors": 0},
    ])
    def test_invalid_prediction(self, overrides):
        with pytest.raises(AssertionError):
            PredictionErrorConfig(**overrides).validate()

    def test_invalid_log_level(self):
        with pytest.raises(AssertionError):
            LoggingConfig(level="VERBOSE").validate()

    def test_to_dict(self):
        data = TemporalCoreConfig().to_dict()

        assert data["memory"]["decay_rate"] == 0.01
        assert data["prediction"]["error_weighting"]["novelty"] == 0.3
        assert data["logging"]["file"] is None

    def test_str(self):
        assert "max_levels=5" in str(TemporalCoreConfig())


class TestEnvironment:
    """Test environment overrides"""

    def test_overrides(self, clean_env):
        clean_env.setenv("TEMPORAL_CORE_MAX_EPISODES", "250")
        clean_env.setenv("TEMPORAL_CORE_MAX_LEVELS", "3")
        clean_env.setenv("TEMPORAL_CORE_ADAPTIVE_LEARNING", "false")
        clean_env.setenv("TEMPORAL_CORE_LOG_LEVEL", "debug")

        config = TemporalCoreConfig.from_env()

        assert config.memory.max_episodes == 250
        assert config.prediction.max_levels == 3
        assert config.prediction.adaptive_learning is False
        assert config.logging.level == "DEBUG"

    def test_production_forces_json(self, clean_env):
        clean_env.setenv("TEMPORAL_CORE_ENV", "production")
        clean_env.setenv("TEMPORAL_CORE_DEBUG", "true")

        config = TemporalCoreConfig.from_env()

        assert config.debug is False
        assert config.logging.json_logs is True
        assert config.logging.colorize is False

    def test_get_config_loads_once(self, clean_env):
        clean_env.setenv("TEMPORAL_CORE_MAX_EPISODES", "42")

        first = get_config()
        clean_env.setenv("TEMPORAL_CORE_MAX_EPISODES", "43")

        assert get_config() is first
        assert first.memory.max_episodes == 42

    def test_set_config(self, clean_env):
        custom = TemporalCoreConfig()
        custom.prediction.max_levels = 2

        set_config(custom)

        assert get_config().prediction.max_levels == 2

    def test_set_invalid_config(self, clean_env):
        custom = TemporalCoreConfig()
        custom.memory.max_episodes = -1

        with pytest.raises(AssertionError):
            set_config(custom)

    def test_set_none_clears(self, clean_env):
        set_config(TemporalCoreConfig())
        set_config(None)

        assert config_module._config is None


class TestLogging:
    """Test loguru sink configuration"""

    def test_json_console(self, capsys, restore_logger):
        setup_logging(LoggingConfig(json_logs=True, colorize=False))

        logger.info("episode stored")

        lines = [line for line in capsys.readouterr().out.splitlines() if line]
        entry = json.loads(lines[-1])
        assert entry["message"] == "episode stored"
        assert entry["level"] == "INFO"

    def test_level_filter(self, capsys, restore_logger):
        setup_logging(LoggingConfig(level="WARNING", colorize=False))

        logger.info("hidden")
        logger.warning("shown")

        out = capsys.readouterr().out
        assert "hidden" not in out
        assert "shown" in out

    def test_file_sink(self, tmp_path, restore_logger):
        log_file = tmp_path / "logs" / "core.log"
        setup_logging(LoggingConfig(console_enabled=False, file_enabled=True, file_path=str(log_file)))

        logger.info("to file")
        logger.remove()

        assert "to file" in log_file.read_text()

    def test_performance_logger(self):
        with PerformanceLogger("block") as perf:
            sum(range(100))

        assert perf.duration_ms >= 0.0
