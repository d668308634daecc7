# budgetflow/utils/logger.py
import logging
import os
from logging.handlers import TimedRotatingFileHandler

from budgetflow.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _parse_level(value, default=logging.INFO) -> int:
    return getattr(logging, str(value).upper(), default) if value else default


def setup_logger(name: str, log_settings: dict) -> logging.Logger:
    """
    Build a logger from the `logging` section of the active environment

    Recognised keys: file, level, when, backup_count, console.
    The file handler rotates on `when` (midnight by default) and keeps
    `backup_count` old files; `console: false` silences stderr output.
    """
    log_file = log_settings.get('file', "logs/app.log")
    level = _parse_level(log_settings.get('level'))

    log_dir = os.path.dirname(log_file)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(level)

    # handlers are only attached once per process
    if logger.handlers:
        return logger

    formatter = logging.Formatter(LOG_FORMAT)

    file_handler = TimedRotatingFileHandler(
        log_file,
        when=log_settings.get('when', "midnight"),
        interval=1,
        backupCount=int(log_settings.get('backup_count', 30)),
        encoding='utf-8'
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if log_settings.get('console', True):
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


app_logger = setup_logger("budgetflow", settings.get('logging', {}))
