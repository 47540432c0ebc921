# Overview: Console logging setup shared by the app factory and the CLI.

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a single stdout handler to the ``ticketing`` logger tree."""
    logger = logging.getLogger("ticketing")
    logger.setLevel(level.upper())

    formatter = logging.Formatter(LOG_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(formatter)

    # Remove any pre-existing handlers to avoid duplicates
    if logger.hasHandlers():
        logger.handlers.clear()

    logger.addHandler(console_handler)
    return logger
