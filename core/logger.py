"""
Logging setup for the trading engine.

All modules log through ``logging.getLogger("bot")``; this module attaches
the console and rotating file handlers to it.
"""
import logging
import logging.handlers
from pathlib import Path
from typing import Union

LOGGER_NAME = "bot"
LOG_FORMAT = "[%(asctime)s][%(levelname)s][%(name)s] %(message)s"
LOG_FILE = "engine.log"
MAX_LOG_BYTES = 10 * 1024 * 1024
BACKUP_COUNT = 5


def setup_logger(
    log_dir: Union[str, Path],
    level: str = "INFO",
    console: bool = True,
) -> logging.Logger:
    """
    Configure the "bot" logger.

    Args:
        log_dir: Directory for engine.log, created if missing
        level: Logging level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        console: Also log to stderr

    Returns:
        The configured logger. Calling again replaces the handlers.

    Raises:
        ValueError: If the level name is unknown
        OSError: If the log directory cannot be created
    """
    numeric_level = logging.getLevelName(str(level).upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Invalid log level: {level}")

    log_path = Path(log_dir)
    try:
        log_path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise OSError(f"Cannot create log directory {log_path.absolute()}: {e}")

    formatter = logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list[logging.Handler] = [
        logging.handlers.RotatingFileHandler(
            log_path / LOG_FILE,
            maxBytes=MAX_LOG_BYTES,
            backupCount=BACKUP_COUNT,
            encoding='utf-8',
        )
    ]
    if console:
        handlers.append(logging.StreamHandler())

    logger = logging.getLogger(LOGGER_NAME)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    logger.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    # Keep records out of the root logger
    logger.propagate = False
    return logger
