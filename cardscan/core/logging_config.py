"""
Logging setup - one stdout handler shared by every "cardscan.*" logger.

Import this module once (cardscan.main does) and then use
logging.getLogger("cardscan.<area>") everywhere else.
"""

import logging
import sys

from cardscan.core.config import settings


LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger("cardscan")
logger.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))

# Create console handler if not exists
if not logger.handlers:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    logger.addHandler(handler)
