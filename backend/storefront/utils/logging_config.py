import logging
import sys

from storefront.config import settings

LOGGERS = ("checkout", "cart", "inventory", "orders", "pricing", "locks", "db", "health")


def configure_logging(level: str = None) -> None:
    """Route the storefront's named loggers to stdout with a bracketed prefix."""
    level = (level or settings.LOG_LEVEL).upper()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter("[%(name)s] %(levelname)s %(message)s"))
    for name in LOGGERS:
        log = logging.getLogger(name)
        log.setLevel(level)
        if not log.handlers:
            log.addHandler(handler)
        log.propagate = False
