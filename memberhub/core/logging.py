"""
Structured logging configuration using loguru.
"""
import sys
from loguru import logger
from memberhub.core.config import settings

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# Test runs only surface problems
_LEVELS = {
    "development": "DEBUG",
    "test": "WARNING",
}

# Remove default handler
logger.remove()

logger.add(
    sys.stdout,
    format=LOG_FORMAT,
    level=_LEVELS.get(settings.ENVIRONMENT, "INFO"),
    colorize=True,
)

# Add file handler for production
if settings.ENVIRONMENT == "production":
    logger.add(
        "logs/app.log",
        rotation="500 MB",
        retention="10 days",
        compression="zip",
        format=FILE_FORMAT,
        level="INFO",
    )

__all__ = ["logger"]
