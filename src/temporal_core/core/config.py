"""
Configuration Management

Centralized configuration with:
- Environment variables (12-factor app)
- Configuration validation
- Easy testing (override configs)

Components never read the global config on their own; the host passes
the relevant section into SequenceMemory / PredictionErrorProcessor.
"""
import os
from dataclasses import dataclass, field, asdict
from typing import Optional
from loguru import logger


@dataclass
class ImportanceWeighting:
    """
    Importance weighting for episodes.

    Declared for compatibility with existing host configs; the scoring
    algorithm does not read these yet.
    """
    recency: float = 0.3
    frequency: float = 0.25
    distinctiveness: float = 0.25
    emotional: float = 0.2


@dataclass
class SequenceMemoryConfig:
    """Episodic sequence memory configuration"""
    max_episodes: int = 10000  # Maintenance runs once the store exceeds this
    consolidation_threshold: float = 5.0  # Importance needed to queue for consolidation
    decay_rate: float = 0.01  # Per-day forgetting rate
    similarity_threshold: float = 0.7  # Default retrieval cutoff
    importance_weighting: ImportanceWeighting = field(default_factory=ImportanceWeighting)

    def validate(self):
        """Validate configuration"""
        assert self.max_episodes > 0, "Invalid max episodes"
        assert self.consolidation_threshold >= 0, "Invalid consolidation threshold"
        assert self.decay_rate >= 0, "Invalid decay rate"
        assert 0.0 <= self.similarity_threshold <= 1.0, "Invalid similarity threshold"


@dataclass
class ErrorWeighting:
    """Weights blended into every learning signal component"""
    magnitude: float = 0.4
    novelty: float = 0.3
    consistency: float = 0.2
    contextual: float = 0.1


@dataclass
class PredictionErrorConfig:
    """Hierarchical prediction error configuration"""
    max_levels: int = 5  # 0 = concrete, max_levels-1 = abstract
    error_threshold: float = 0.01
    learning_rate: float = 0.1
    decay_rate: float = 0.95  # Signal decay, applied per 10s of signal age
    significance_threshold: float = 0.1  # Signals need strictly more than this
    suppression_strength: float = 0.3
    adaptive_learning: bool = True
    error_weighting: ErrorWeighting = field(default_factory=ErrorWeighting)
    max_active_errors: int = 10000  # Oldest active errors evicted beyond this

    def validate(self):
        """Validate configuration"""
        assert self.max_levels > 0, "Invalid max levels"
        assert self.error_threshold > 0, "Invalid error threshold"
        assert 0.0 < self.learning_rate <= 1.0, "Invalid learning rate"
        assert self.decay_rate >= 0, "Invalid decay rate"
        assert 0.0 <= self.significance_threshold <= 1.0, "Invalid significance threshold"
        assert 0.0 <= self.suppression_strength <= 1.0, "Invalid suppression strength"
        assert self.max_active_errors > 0, "Invalid max active errors"


@dataclass
class LoggingConfig:
    """Logging configuration"""
    # Log level
    level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL

    # Output
    console_enabled: bool = True
    file_enabled: bool = False  # The core itself never writes files
    file_path: str = "logs/temporal-core.log"
    file_rotation: str = "100 MB"
    file_retention: str = "1 week"

    # Format
    json_logs: bool = False  # JSON for production
    colorize: bool = True

    def validate(self):
        """Validate configuration"""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        assert self.level in valid_levels, f"Invalid log level (must be one of {valid_levels})"


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


@dataclass
class TemporalCoreConfig:
    """
    Main configuration for temporal-core.

    Override via environment variables (12-factor app).
    """
    memory: SequenceMemoryConfig = field(default_factory=SequenceMemoryConfig)
    prediction: PredictionErrorConfig = field(default_factory=PredictionErrorConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    # General settings
    environment: str = "development"  # development, production
    debug: bool = False

    @classmethod
    def from_env(cls) -> "TemporalCoreConfig":
        """
        Load configuration from environment variables.

        Environment variables override defaults:
        - TEMPORAL_CORE_ENV: development/production
        - TEMPORAL_CORE_DEBUG: true/false
        - TEMPORAL_CORE_MAX_EPISODES: Episode ceiling before maintenance
        - TEMPORAL_CORE_MAX_LEVELS: Prediction hierarchy depth
        - etc.

        Returns:
            Configuration instance
        """
        config = cls()

        # General
        config.environment = os.getenv("TEMPORAL_CORE_ENV", "development")
        config.debug = _env_bool("TEMPORAL_CORE_DEBUG", False)

        # Memory
        config.memory.max_episodes = int(os.getenv(
            "TEMPORAL_CORE_MAX_EPISODES",
            str(config.memory.max_episodes)
        ))
        config.memory.decay_rate = float(os.getenv(
            "TEMPORAL_CORE_MEMORY_DECAY_RATE",
            str(config.memory.decay_rate)
        ))
        config.memory.similarity_threshold = float(os.getenv(
            "TEMPORAL_CORE_SIMILARITY_THRESHOLD",
            str(config.memory.similarity_threshold)
        ))

        # Prediction
        config.prediction.max_levels = int(os.getenv(
            "TEMPORAL_CORE_MAX_LEVELS",
            str(config.prediction.max_levels)
        ))
        config.prediction.significance_threshold = float(os.getenv(
            "TEMPORAL_CORE_SIGNIFICANCE_THRESHOLD",
            str(config.prediction.significance_threshold)
        ))
        config.prediction.adaptive_learning = _env_bool(
            "TEMPORAL_CORE_ADAPTIVE_LEARNING",
            config.prediction.adaptive_learning
        )

        # Logging
        config.logging.level = os.getenv(
            "TEMPORAL_CORE_LOG_LEVEL",
            config.logging.level
        ).upper()
        config.logging.json_logs = _env_bool("TEMPORAL_CORE_JSON_LOGS", False)

        # Production defaults
        if config.environment == "production":
            config.debug = False
            config.logging.json_logs = True
            config.logging.colorize = False

        return config

    def validate(self):
        """Validate all configuration"""
        self.memory.validate()
        self.prediction.validate()
        self.logging.validate()

        logger.info("Configuration validated successfully")

    def to_dict(self) -> dict:
        """Convert to dictionary for logging/debugging"""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "memory": asdict(self.memory),
            "prediction": asdict(self.prediction),
            "logging": {
                "level": self.logging.level,
                "file": self.logging.file_path if self.logging.file_enabled else None,
                "json": self.logging.json_logs,
            },
        }

    def __str__(self) -> str:
        return (
            f"TemporalCoreConfig("
            f"env={self.environment}, "
            f"max_episodes={self.memory.max_episodes}, "
            f"max_levels={self.prediction.max_levels}, "
            f"log_level={self.logging.level}"
            f")"
        )


# Global config instance
_config: Optional[TemporalCoreConfig] = None


def get_config() -> TemporalCoreConfig:
    """
    Get global configuration instance.

    Loads from environment on first call.
    """
    global _config

    if _config is None:
        _config = TemporalCoreConfig.from_env()
        _config.validate()
        logger.info(f"Configuration loaded: {_config}")

    return _config


def set_config(config: Optional[TemporalCoreConfig]):
    """
    Set global configuration (for testing).

    Passing None clears it so the next get_config() reloads from the
    environment.
    """
    global _config
    _config = config
    if _config is not None:
        _config.validate()
