import sys

from loguru import logger

from src.settings import settings

log_format = ' | '.join(
    (
        '<lk>{time:YYYY-MM-DD HH:mm:ss.SSS}</>',
        '<lvl>{level:<8}</>',
        '<c>{name}::{function}:{line}</>',
        '{message}',
    )
)

logger.remove()
logger.add(sys.stdout, format=log_format, level=settings.LOG_LEVEL)
