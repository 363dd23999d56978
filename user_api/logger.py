"""
Logging setup built on loguru.

loguru ships a ready-to-use `logger` object; this module only swaps its
default handler for one whose level comes from settings. Call
`setup_logger()` once at startup (main.py does this in the lifespan hook),
then anywhere else:

    from loguru import logger
    logger.info("User {} created", user_id)

Never pass passwords or tokens to the logger.
"""

import sys

from loguru import logger

from user_api.config import settings


LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level>"
)


def setup_logger(level: str | None = None) -> None:
    """Replace loguru's default handler with a stdout sink at the configured level."""
    logger.remove()
    logger.add(
        sys.stdout,
        format=LOG_FORMAT,
        level=(level or settings.LOG_LEVEL).upper(),
        colorize=True,
        backtrace=True,
        diagnose=settings.DEBUG,
    )
