import sys
from loguru import logger
import logging

from app.core.config import settings

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)
ERROR_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"

# uvicorn access lines and urllib3 connection chatter drown out the tool-call logs
QUIET_LOGGERS = ("uvicorn.access", "urllib3")


class InterceptHandler(logging.Handler):
    """Route stdlib records (uvicorn, urllib3) into loguru with the right caller."""

    def emit(self, record):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(level: str = None):
    logger.remove()
    logger.add(sys.stdout, level=level or settings.LOG_LEVEL, format=CONSOLE_FORMAT)

    # Upstream failures and fatal availability errors
    logger.add(
        settings.ERROR_LOG_PATH,
        level="ERROR",
        rotation="10 MB",
        retention="1 month",
        compression="zip",
        format=ERROR_FORMAT,
    )

    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


__all__ = ["logger", "setup_logging"]
