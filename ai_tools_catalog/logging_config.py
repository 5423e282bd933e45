"""Logging configuration for the AI tools catalog."""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FILE_NAME = "ai_tools_catalog.log"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 3

_configured = False


def setup_logging(log_level: str = "INFO") -> None:
    """Configure the root logger once per process.

    Records go to a rotating file under ``LOG_DIR`` (default ``logs/``) and to
    stderr, which keeps stdout free for the CLI's JSON output.
    """
    global _configured

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    if _configured:
        return
    _configured = True

    log_dir = Path(os.getenv("LOG_DIR", "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(log_dir / LOG_FILE_NAME, maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(logging.Formatter("%(levelname)s %(name)s: %(message)s"))
    stream_handler.setLevel(logging.INFO)
    root_logger.addHandler(stream_handler)

    # Request lines from the HTTP client are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
