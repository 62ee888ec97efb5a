# Logging setup shared by the tuning modules

import logging
import os

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def get_logger(name=__name__, logfile=None, level=logging.INFO):
    """
    Return a logger that writes to console and optionally to a log file.

    Handlers are attached once per logger name, so repeated calls are cheap.
    """
    logger = logging.getLogger(name)
    if logger.handlers:
        if logfile:
            add_file_handler(logger, logfile)
        return logger
    logger.setLevel(level)
    ch = logging.StreamHandler()
    ch.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(ch)
    logger.propagate = False
    if logfile:
        add_file_handler(logger, logfile)
    return logger


def add_file_handler(logger, logfile):
    """Attach a file handler for `logfile` unless one is already attached."""
    path = os.path.abspath(logfile)
    for handler in logger.handlers:
        if isinstance(handler, logging.FileHandler) and handler.baseFilename == path:
            return handler
    os.makedirs(os.path.dirname(path), exist_ok=True)
    fh = logging.FileHandler(path)
    fh.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(fh)
    return fh


def remove_file_handlers(logger):
    """Detach and close every file handler (used when a run finishes)."""
    for handler in list(logger.handlers):
        if isinstance(handler, logging.FileHandler):
            logger.removeHandler(handler)
            handler.close()
