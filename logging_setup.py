"""
Logger setup shared by every module.

One StreamHandler per logger name, level taken from LOG_LEVEL. Propagation is
off so uvicorn's root configuration doesn't print each line twice.
"""
import logging
import threading
from typing import Optional

import settings

_LOCK = threading.Lock()
_PRIMARY: Optional[logging.Logger] = None


def get_logger(name: str = "rovel") -> logging.Logger:
    global _PRIMARY
    if name == "rovel" and _PRIMARY is not None:
        return _PRIMARY
    with _LOCK:
        if name == "rovel" and _PRIMARY is not None:
            return _PRIMARY
        logger = logging.getLogger(name)
        level = getattr(logging, settings.log_level_name(), logging.INFO)
        logger.setLevel(level)
        if not any(isinstance(h, logging.StreamHandler) for h in logger.handlers):
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[rovel] %(asctime)s %(levelname)s %(name)s %(message)s"))
            logger.addHandler(handler)
        logger.propagate = False
        if name == "rovel":
            _PRIMARY = logger
        return logger
