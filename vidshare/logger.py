# vidshare/logger.py
import logging
from typing import Optional, Sequence

import sentry_sdk

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger("vidshare")
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Avoid duplicate console handlers when the app is built more than once
    if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(ch)

    logger.propagate = False
    return logger


def get_logger(name: Optional[str] = None) -> logging.Logger:
    base = logging.getLogger("vidshare")
    return base.getChild(name) if name else base


def init_sentry(dsn: Optional[str], integrations: Sequence = ()) -> bool:
    """
    Send unhandled exceptions to Sentry with full stack trace and context.
    No-op when no DSN is configured.
    """
    if not dsn:
        return False
    sentry_sdk.init(dsn=dsn, integrations=list(integrations))
    return True
