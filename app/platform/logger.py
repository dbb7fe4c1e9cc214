import logging
import os
from logging.handlers import RotatingFileHandler

from app.platform.config import settings

# 1. Create the logs directory if it doesn't exist
log_dir = os.path.join(os.getcwd(), settings.LOG_DIR)
if not os.path.exists(log_dir):
    os.makedirs(log_dir)

# 2. Define the path to the log file
log_file_path = os.path.join(log_dir, "a11y_crawl.log")


def get_logger(name: str):
    """
    Creates a logger instance that writes to console AND a file.
    """
    logger = logging.getLogger(name)

    if logger.handlers:
        return logger

    level = logging.getLevelName(settings.LOG_LEVEL.upper())
    if not isinstance(level, int):
        level = logging.INFO
    logger.setLevel(level)

    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    # Rotating file handler, 10 MB x 5
    file_handler = RotatingFileHandler(log_file_path, maxBytes=10_000_000, backupCount=5)
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    console_handler.setLevel(level)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger
