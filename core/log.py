import os
import sys

from loguru import logger

log_format = " | ".join(
    (
        "<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>",
        "<lvl>{level:<8}</>",
        "<c>{name}:{function}:{line}</>",
        "{message}",
    )
)

logger.remove()
logger.add(sys.stdout, format=log_format, level=os.environ.get("LOG_LEVEL", "INFO"))

__all__ = ["logger"]
