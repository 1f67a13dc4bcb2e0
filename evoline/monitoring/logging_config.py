"""
Logging Configuration for Evoline.

Provides structured logging with loguru integration.

Author: Evoline Team
License: MIT
"""

import sys
from pathlib import Path
from typing import Optional

from loguru import logger


def configure_logging(
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
    rotation: str = "100 MB",
    retention: str = "30 days",
    format_string: Optional[str] = None,
    serialize: bool = False,
) -> None:
    """
    Configure logging for Evoline.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional log file path
        rotation: Log rotation size/time
        retention: Log retention period
        format_string: Custom format string
        serialize: Whether to serialize logs as JSON
    """
    # Remove default handler
    logger.remove()

    if format_string is None:
        if serialize:
            format_string = "{message}"
        else:
            format_string = (
                "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
                "<level>{message}</level> {extra}"
            )

    logger.add(
        sys.stderr,
        format=format_string,
        level=log_level.upper(),
        colorize=not serialize,
        serialize=serialize,
    )

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            str(log_file),
            format=format_string,
            level=log_level.upper(),
            rotation=rotation,
            retention=retention,
            compression="zip",
            serialize=serialize,
        )

    logger.configure(extra={"component": "evoline"})


def configure_from_settings(settings) -> None:
    """Configure logging from a ``LoggingConfig`` section."""
    configure_logging(
        log_level=settings.level,
        log_file=settings.log_file,
        serialize=settings.serialize,
    )


def get_logger(name: str):
    """
    Get logger instance for component.

    Args:
        name: Component name

    Returns:
        Logger bound to the component
    """
    return logger.bind(component=name)


class LogContext:
    """Context manager for structured logging."""

    def __init__(self, **kwargs):
        """
        Initialize log context.

        Args:
            **kwargs: Context key-value pairs
        """
        self.context = kwargs
        self.token = None

    def __enter__(self):
        self.token = logger.contextualize(**self.context)
        self.token.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.token:
            self.token.__exit__(exc_type, exc_val, exc_tb)


def log_evolution_start(kind: str, generations: int, population_size: int):
    """Log evolution start."""
    with LogContext(phase="evolution", kind=kind):
        logger.info(
            f"Starting evolution: generations={generations}, "
            f"population_size={population_size}"
        )


def log_evolution_complete(kind: str, best_fitness: float, total_generations: int,
                           total_time: float):
    """Log evolution completion."""
    with LogContext(phase="evolution", kind=kind):
        logger.success(
            f"Evolution complete: "
            f"best_fitness={best_fitness:.4f}, "
            f"generations={total_generations}, "
            f"total_time={total_time:.2f}s"
        )
