# --------------------------------------------------------------
#  logging_config.py
# --------------------------------------------------------------
import logging
from logging.handlers import RotatingFileHandler
from typing import Optional


def configure_logging(verbose: bool = False, log_file: Optional[str] = None) -> None:
    """Attach a *console* handler and optionally a *file* handler to the package logger.

    *   **Console handler** - plain messages on stderr, INFO (DEBUG when verbose).
    *   **File handler** - timestamped records (rotates at 1 MB, keeps 3 backups).
    """
    package_logger = logging.getLogger("cladeannotator")
    package_logger.setLevel(logging.DEBUG if verbose or log_file else logging.INFO)

    # Clear existing handlers to avoid duplicates when called twice
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    # -------- Console handler --------
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    package_logger.addHandler(console_handler)

    # -------- File handler (rotating) --------
    if log_file:
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=1_000_000,
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                "%Y-%m-%d %H:%M:%S",
            )
        )
        package_logger.addHandler(file_handler)

    package_logger.debug(f"Logging configured. Log file: {log_file}")
