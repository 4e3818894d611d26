# Overview: Central logging setup with optional rotating log files.

import logging
import os
import sys
from logging.handlers import RotatingFileHandler

LOG_FORMAT = "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)d] - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# 10 MB per file, keep 10 files
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 10


def configure_logging(app) -> None:
    """
    Configure root logging once per process.

    Levels:
    - INFO: state transitions (sale approved, invoice generated, ...)
    - WARNING: rejected input, denied access, recoverable failures
    - ERROR: unexpected server errors (with stack traces)

    When LOG_DIR is set, two rotating files are written: salesdesk.log for
    everything at LOG_LEVEL and salesdesk_errors.log for ERROR and above.
    """
    level = logging.getLevelName(str(app.config.get("LOG_LEVEL", "INFO")).upper())
    if not isinstance(level, int):
        level = logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    root_logger = logging.getLogger()

    # Re-running create_app() (tests, reloader) must not stack handlers
    for handler in list(root_logger.handlers):
        if getattr(handler, "_salesdesk", False):
            root_logger.removeHandler(handler)
            handler.close()

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    handlers.append(console_handler)

    log_dir = app.config.get("LOG_DIR")
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

        file_handler = RotatingFileHandler(
            filename=os.path.join(log_dir, "salesdesk.log"),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        handlers.append(file_handler)

        error_handler = RotatingFileHandler(
            filename=os.path.join(log_dir, "salesdesk_errors.log"),
            maxBytes=MAX_LOG_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        error_handler.setLevel(logging.ERROR)
        handlers.append(error_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        handler._salesdesk = True
        root_logger.addHandler(handler)

    root_logger.setLevel(level)

    # Reduce verbosity of external libraries
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
