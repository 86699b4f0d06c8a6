import logging
import os
import sys
from typing import Optional

from tqdm import tqdm

LOGGER_NAME = "i18n_magic"
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'

# The OpenAI client logs every HTTP request at INFO.
THIRD_PARTY_LOGGERS = ("httpx", "httpcore", "openai")


class TqdmLoggingHandler(logging.Handler):
    """Writes records through tqdm.write so they do not tear the locale progress bars."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record), file=sys.stderr)
        except (KeyboardInterrupt, SystemExit):
            raise
        except Exception:
            self.handleError(record)


def _file_handler(log_file_path: str) -> logging.Handler:
    log_dir = os.path.dirname(log_file_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return logging.FileHandler(log_file_path, encoding='utf-8')


def quiet_third_party_loggers(log_level: int) -> None:
    """Keep HTTP client chatter out of the output unless the run is at DEBUG."""
    third_party_level = logging.DEBUG if log_level <= logging.DEBUG else logging.WARNING
    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)


def setup_logger(log_level_str: str, log_file_path: Optional[str], log_to_console: bool) -> logging.Logger:
    """
    Configure the ``i18n_magic`` logger all package modules log through.

    Calling it again (the CLI does so once the config file is read) replaces
    the previous handlers.

    Args:
        log_level_str: The logging level as a string (e.g., 'INFO', 'DEBUG').
        log_file_path: The path to the log file, or None to skip file logging.
        log_to_console: Whether to log to stderr.

    Returns:
        The configured logger instance.
    """
    logger = logging.getLogger(LOGGER_NAME)
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    logger.setLevel(log_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = False

    handlers = []
    if log_file_path:
        handlers.append(_file_handler(log_file_path))
    if log_to_console:
        handlers.append(TqdmLoggingHandler())

    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    quiet_third_party_loggers(log_level)
    return logger
