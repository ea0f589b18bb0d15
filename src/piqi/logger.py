from __future__ import annotations

import logging

ENGINE_LOGGER_NAME = "piqi"

_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def get_engine_logger(level: str | int = logging.INFO) -> logging.Logger:
    """Return the shared engine logger, attaching a stream handler once."""
    engine_logger = logging.getLogger(ENGINE_LOGGER_NAME)
    if not engine_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_FORMAT))
        engine_logger.addHandler(handler)
    engine_logger.setLevel(level)
    return engine_logger
