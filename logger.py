import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import config

# Include the function name so handler logs point at the route that wrote them
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(funcName)s] - %(message)s"

LOG_DIR = Path(config.LOG_DIR)


def setup_logger(name: str, level: int = None) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level or config.LOG_LEVEL)

    # Re-importing a module must not stack duplicate handlers
    logger.handlers = []
    logger.propagate = False

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    console_handler.setLevel(logging.INFO)
    logger.addHandler(console_handler)

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    log_file = LOG_DIR / f"{name.replace('.', '_')}.log"
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
        delay=True,
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(logging.DEBUG)
    logger.addHandler(file_handler)

    error_file = LOG_DIR / f"{name.replace('.', '_')}_error.log"
    error_handler = RotatingFileHandler(
        error_file,
        maxBytes=10 * 1024 * 1024,  # 10MB
        backupCount=5,
        encoding="utf-8",
        delay=True,
    )
    error_handler.setFormatter(formatter)
    error_handler.setLevel(logging.ERROR)
    logger.addHandler(error_handler)

    return logger
