"""
Announcements Frame - Centralized Logging Configuration

Provides consistent logging setup across all frame services. Services log to
stderr (collected by journald); conversion runs additionally get their own
log file in log_dir.
"""

import logging
from pathlib import Path
from typing import Optional

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_LOG_LEVEL = logging.INFO


def setup_service_logging(
    service_name: str,
    level: int = DEFAULT_LOG_LEVEL,
    log_format: str = DEFAULT_LOG_FORMAT
) -> logging.Logger:
    """
    Setup logging for a frame service.

    Args:
        service_name: Name of the service (used as logger name, e.g., 'announcements-watcher')
        level: Logging level (default INFO)
        log_format: Log format string (uses default if not specified)

    Returns:
        Configured logger instance
    """
    logging.basicConfig(level=level, format=log_format)
    return logging.getLogger(service_name)


def log_service_start(logger: logging.Logger, service_name: str) -> None:
    """Log the standard service startup banner."""
    logger.info("=" * 60)
    logger.info(f"{service_name} Starting")
    logger.info("=" * 60)


def log_service_ready(logger: logging.Logger, service_name: str, status_msg: Optional[str] = None) -> None:
    """
    Log that a service is ready.

    Args:
        logger: Logger instance to use
        service_name: Human-readable service name
        status_msg: Optional additional status message
    """
    if status_msg:
        logger.info(f"{service_name} ready - {status_msg}")
    else:
        logger.info(f"{service_name} ready")


def attach_file_handler(
    logger: logging.Logger,
    log_path: Path,
    log_format: str = DEFAULT_LOG_FORMAT
) -> Optional[logging.Handler]:
    """
    Mirror a logger's output into a file (used for per-run conversion logs).

    The caller owns the handler and must pass it to detach_file_handler()
    when the run is over.

    Returns:
        The attached handler, or None if the log file could not be opened.
    """
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_path, encoding='utf-8')
    except OSError as e:
        logger.warning(f"Could not open run log {log_path}: {e}")
        return None

    handler.setFormatter(logging.Formatter(log_format))
    logger.addHandler(handler)
    return handler


def detach_file_handler(logger: logging.Logger, handler: Optional[logging.Handler]) -> None:
    """Remove and close a handler added by attach_file_handler()."""
    if handler is None:
        return
    logger.removeHandler(handler)
    handler.close()
