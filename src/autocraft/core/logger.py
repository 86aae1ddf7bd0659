"""
Logging setup.
"""
import sys
from pathlib import Path

from loguru import logger

from .config import settings

_configured = False

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logger(force: bool = False):
    """Configure loguru sinks from settings."""
    global _configured
    if _configured and not force:
        return logger

    logger.remove()

    if settings.log_console_enabled:
        logger.add(
            sys.stderr,
            level=settings.log_level,
            format=CONSOLE_FORMAT,
        )

    if settings.log_path:
        log_dir = Path(settings.log_path)
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "autocraft_{time:YYYY-MM-DD}.log",
            level=settings.log_level,
            format=FILE_FORMAT,
            rotation=settings.log_rotation,
            retention=f"{settings.log_retention_days} days",
            encoding="utf-8",
        )

        # errors get their own file, kept twice as long
        logger.add(
            log_dir / "error_{time:YYYY-MM-DD}.log",
            level="ERROR",
            format=FILE_FORMAT,
            rotation=settings.log_rotation,
            retention=f"{settings.log_retention_days * 2} days",
            encoding="utf-8",
        )

    _configured = True
    return logger


def get_run_logger(run_id: str):
    """Logger bound to one attempt-loop run."""
    return logger.bind(run_id=run_id)


logger = setup_logger()
