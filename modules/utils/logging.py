"""Logging setup for design sessions."""

from __future__ import annotations

import logging
from pathlib import Path

from config.settings import AppConfig

LOGGER_NAME = "label_studio"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# The GenAI SDK's HTTP stack logs every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "google_genai")


def setup_logging(config: AppConfig, level: int = logging.INFO) -> logging.Logger:
    """Log to ``<log_dir>/application.log`` and stderr; return the app logger."""
    log_dir = Path(config.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[
            logging.FileHandler(log_dir / "application.log", encoding="utf-8"),
            logging.StreamHandler(),
        ],
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
    return logging.getLogger(LOGGER_NAME)
