"""Application logging.

One named logger tree ("tutoring_system") shared by every module through
``logging.getLogger(__name__)``; configured once from ``create_app``.
"""
from __future__ import annotations

import logging
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER_NAME = "tutoring_system"

_PASSWORD_RE = re.compile(r'(password|passwd|pwd)["\']?\s*[:=]\s*["\']?([^"\'\s,}]+)', re.IGNORECASE)


class SensitiveDataFilter(logging.Filter):
    """Mask password-looking values (e.g. DB credentials) before output."""

    def filter(self, record: logging.LogRecord) -> bool:
        # Format first so values passed as %s arguments are masked too.
        record.msg = _PASSWORD_RE.sub(r"\1: ********", record.getMessage())
        record.args = None
        return True


def setup_logging(level: str | int = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)

    # Avoid duplicate handlers when create_app() runs more than once (tests).
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    sensitive = SensitiveDataFilter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.addFilter(sensitive)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(log_path, maxBytes=10 * 1024 * 1024, backupCount=5, encoding="utf-8")
        file_handler.setFormatter(formatter)
        file_handler.addFilter(sensitive)
        logger.addHandler(file_handler)

    return logger
