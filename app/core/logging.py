"""Logging configuration."""

import logging
import os

# pdfminer (under pdfplumber) and the HTTP client log every request/object at INFO/DEBUG
_NOISY_LOGGERS = ("pdfminer", "httpx", "httpcore", "openai")


def setup_logging() -> None:
    """Configure application logging."""
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
