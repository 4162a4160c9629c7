import logging
import os
import sys
from pythonjsonlogger import jsonlogger

LOG_FORMAT = '%(asctime)s %(name)s %(levelname)s %(module)s %(funcName)s %(message)s'


def _json_handler() -> logging.Handler:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(LOG_FORMAT, rename_fields={"asctime": "timestamp", "levelname": "level"})
    )
    return handler


def get_logger(name: str, log_level: str = "INFO") -> logging.Logger:
    """Named logger writing one JSON object per line to stdout."""
    log = logging.getLogger(name)
    log.setLevel(log_level.upper())
    log.propagate = False
    if not log.handlers:
        log.addHandler(_json_handler())
    return log


def set_log_level(log_level: str) -> None:
    """Apply the configured level once settings are loaded (called from create_app)."""
    logger.setLevel(log_level.upper())


# Shared application logger. Reads LOG_LEVEL from the environment so it is
# usable before settings are loaded.
logger = get_logger("eduforce", os.environ.get("LOG_LEVEL", "INFO"))
