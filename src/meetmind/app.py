"""Application configuration and setup"""

import sys
from loguru import logger

from .core.config import get_config_dir, get_config_manager


LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
)


def setup_logging(level: str | None = None, log_to_file: bool = True) -> None:
    """Configure loguru logging"""
    level = level or get_config_manager().config.log_level

    logger.remove()  # Remove default handler
    logger.add(sys.stderr, format=LOG_FORMAT, level=level)

    if log_to_file:
        log_path = get_config_dir() / "logs" / "meetmind.log"
        logger.add(
            str(log_path),
            level=level,
            rotation="10 MB",
            retention=3,
            encoding="utf-8",
        )

    logger.info("MeetMind starting...")
