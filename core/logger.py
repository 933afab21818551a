"""
Service Logger Setup

Configures a named logger per service from LoggingConfig.

Usage:
    from core.logger import setup_service_logger

    logger = setup_service_logger("trip_service", level="INFO")
"""

import logging
import sys
from typing import Dict, Optional

from core.config import LoggingConfig

_configured: Dict[str, logging.Logger] = {}


def setup_service_logger(
    service_name: str,
    level: Optional[str] = None,
    config: Optional[LoggingConfig] = None,
) -> logging.Logger:
    """
    Configure and return the logger for a service.

    Handlers are attached once per service name; repeated calls return the
    same logger with the level updated.

    Args:
        service_name: Logger name, usually the service package name
        level: Level override (defaults to LoggingConfig.log_level)
        config: Logging configuration (defaults to LoggingConfig.from_env())

    Returns:
        Configured logger
    """
    config = config or LoggingConfig.from_env()
    log_level = getattr(logging, (level or config.log_level).upper(), logging.INFO)

    logger = logging.getLogger(service_name)
    logger.setLevel(log_level)

    if service_name in _configured:
        return logger

    formatter = logging.Formatter(config.log_format, datefmt=config.date_format or None)

    if config.enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if config.log_file:
        file_handler = logging.FileHandler(config.log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    for noisy in config.quiet_loggers:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _configured[service_name] = logger
    return logger
