"""
Centralized Logging Configuration for ExamGuard

Console output always; rotating service and error-only files when file
logging is enabled. Chatty third-party loggers are capped at WARNING so
attempt and proctoring events stay readable.
"""
import logging
import logging.handlers
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

DEFAULT_LOG_DIR = Path(__file__).resolve().parents[2] / "logs"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)-20s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "httpx", "httpcore")


def _rotating_handler(path: Path, max_bytes: int, backups: int, level: int,
                      formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backups, encoding="utf-8"
    )
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def setup_logging(
    service_name: str = "examguard",
    level: str = "INFO",
    log_to_file: bool = False,
    log_to_console: bool = True,
    log_dir: Optional[Union[str, Path]] = None
) -> logging.Logger:
    """
    Configure the root logger for the service.

    Args:
        service_name: Prefix for log file names and the returned logger
        level: Root level name (DEBUG, INFO, ...); unknown names fall back to INFO
        log_to_file: Write <service>_<date>.log and <service>_errors.log
        log_to_console: Write to stdout
        log_dir: Directory for log files (defaults to ./logs at the project root)

    Returns:
        The service logger
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))
    root_logger.handlers = []

    formatter = logging.Formatter(LOG_FORMAT, DATE_FORMAT)

    if log_to_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    log_file = None
    if log_to_file:
        directory = Path(log_dir) if log_dir else DEFAULT_LOG_DIR
        directory.mkdir(parents=True, exist_ok=True)
        log_file = directory / f"{service_name}_{datetime.now():%Y-%m-%d}.log"

        root_logger.addHandler(
            _rotating_handler(log_file, 10 * 1024 * 1024, 5, logging.DEBUG, formatter)
        )
        root_logger.addHandler(
            _rotating_handler(directory / f"{service_name}_errors.log", 5 * 1024 * 1024, 3,
                              logging.ERROR, formatter)
        )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logger = logging.getLogger(service_name)
    logger.info(f"=== {service_name.upper()} STARTED ===")
    if log_file:
        logger.info(f"Log file: {log_file}")

    return logger
