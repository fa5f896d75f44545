"""
Logging System

Features:
- Structured logging with loguru
- Console output, optional rotating file output
- JSON format for production

The library modules only call loguru's global `logger`; the host decides
where records go by calling setup_logging() once.
"""
import sys
import json
from datetime import datetime
from pathlib import Path
from loguru import logger

from .config import LoggingConfig


def setup_logging(config: LoggingConfig):
    """
    Configure loguru sinks.

    Args:
        config: Logging configuration
    """
    # Remove default handler
    logger.remove()

    # Console handler
    if config.console_enabled:
        if config.json_logs:
            logger.add(
                sys.stdout,
                format=_json_formatter,
                level=config.level,
                colorize=False,
                serialize=False  # We handle JSON ourselves
            )
        else:
            logger.add(
                sys.stdout,
                format=(
                    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                    "<level>{level: <8}</level> | "
                    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                    "<level>{message}</level>"
                ),
                level=config.level,
                colorize=config.colorize
            )

    # File handler
    if config.file_enabled:
        Path(config.file_path).parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            config.file_path,
            format=_json_formatter if config.json_logs else (
                "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <8} | "
                "{name}:{function}:{line} | {message}"
            ),
            level=config.level,
            rotation=config.file_rotation,
            retention=config.file_retention,
            compression="zip"
        )

    logger.info(
        f"Logging configured: level={config.level}, "
        f"console={config.console_enabled}, file={config.file_enabled}, "
        f"json={config.json_logs}"
    )


def _json_formatter(record: dict) -> str:
    """
    Format log record as JSON.

    Loguru treats a callable's return value as a format template, so the
    rendered JSON is stashed in `extra` and referenced from there.
    """
    log_entry = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
    }

    if record["exception"]:
        log_entry["exception"] = {
            "type": record["exception"].type.__name__,
            "value": str(record["exception"].value),
        }

    extra = {k: v for k, v in record["extra"].items() if k != "_json"}
    if extra:
        log_entry["extra"] = extra

    record["extra"]["_json"] = json.dumps(log_entry, default=str)
    return "{extra[_json]}\n"


class PerformanceLogger:
    """
    Times a block and logs the duration at DEBUG.

    Usage:
        with PerformanceLogger("memory maintenance"):
            ...
    """

    def __init__(self, name: str):
        self.name = name
        self.start_time = None
        self.duration_ms = 0.0

    def __enter__(self):
        self.start_time = datetime.now()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration_ms = (datetime.now() - self.start_time).total_seconds() * 1000
            logger.debug(f"Performance: {self.name} took {self.duration_ms:.2f}ms")
