# ABOUTME: Log file setup for the exporter and its packet pipeline
# ABOUTME: One daily-rotated file shared by the bthome_exporter logger tree, at the configured level
import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from bthome_exporter.config import AppConfig

LOGGER_NAME = 'bthome_exporter'

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_BACKUP_DAYS = 30


def get_logger(app_config: AppConfig) -> logging.Logger:
    """
    Configure the root logger of the exporter and return it.

    The packet handler, channel reconciler and projector log through child
    loggers ('bthome_exporter.handler', ...) unless handed a logger, so one
    handler on the parent catches them all. A repeated call returns the
    already configured logger unchanged.

    Args:
        app_config: Application configuration (log_file and log_level are used)

    Returns:
        The 'bthome_exporter' logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.getLevelName(app_config.log_level))

    log_path = Path(app_config.log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = TimedRotatingFileHandler(
        log_path,
        when='midnight',
        backupCount=LOG_BACKUP_DAYS
    )
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
    logger.addHandler(file_handler)

    logger.debug(f"Logging to {log_path} at level {app_config.log_level}")
    return logger
