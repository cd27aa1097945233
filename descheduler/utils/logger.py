"""
Logging configuration for the descheduler
Uses loguru for formatting, rotation and bound component names
"""

import sys
from loguru import logger
from pathlib import Path

_configured = False


def configure(level: str = "INFO", log_file: str = None):
    """
    (Re)configure loguru sinks for the whole process

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for logging to file
    """
    global _configured

    # Remove default handler
    logger.remove()
    logger.configure(extra={"name": "Descheduler"})

    # Console handler with colors
    logger.add(
        sys.stderr,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{extra[name]}</cyan>:<cyan>{function}</cyan> | <level>{message}</level>",
        level=level,
        colorize=True
    )

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {extra[name]}:{function}:{line} | {message}",
            level=level,
            rotation="10 MB",
            retention="7 days",
            compression="zip"
        )

    _configured = True


def get_logger(name: str = "Descheduler", level: str = "INFO", log_file: str = None):
    """
    Get a logger bound to a component name

    Sinks are installed once; later calls only bind a new name so that
    module-level loggers do not reset each other's configuration.

    Args:
        name: Logger name (will appear in log messages)
        level: Log level used if sinks are not configured yet
        log_file: Optional file path for logging to file

    Returns:
        Configured logger instance
    """
    if not _configured:
        configure(level=level, log_file=log_file)

    return logger.bind(name=name)


def setup_logging(component_name: str, log_dir: str = None, level: str = "INFO"):
    """
    Setup logging for a descheduler component

    Args:
        component_name: Name of the component (e.g., "DeschedulerMain")
        log_dir: Directory for log files (console only if None)
        level: Log level

    Returns:
        Configured logger
    """
    log_file = f"{log_dir}/{component_name}.log" if log_dir else None
    configure(level=level, log_file=log_file)
    return logger.bind(name=component_name)
