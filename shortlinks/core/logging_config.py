import logging
import sys
from typing import Optional

from shortlinks.core.config import settings

LOG_FORMAT = '%(asctime)s | %(levelname)s | %(name)s | %(funcName)s:%(lineno)d | %(message)s'


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    level_value = getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO)
    logging.basicConfig(
        level=level_value,
        format=LOG_FORMAT,
        datefmt='%Y-%m-%d %H:%M:%S',
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # uvicorn keeps its own handlers otherwise and every line shows up twice
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).handlers.clear()
        logging.getLogger(name).propagate = True

    # the redirect endpoint logs each hit itself
    logging.getLogger("uvicorn.access").disabled = True

    for noisy in ("sqlalchemy.engine", "sqlalchemy.pool", "redis", "httpx"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    logger = logging.getLogger("shortlinks")
    logger.setLevel(level_value)
    return logger
