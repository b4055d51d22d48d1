"""Logging configuration."""
import logging
from datetime import datetime
from pathlib import Path
from typing import Union


def setup_logging(log_dir: str = "logs", level: Union[int, str] = logging.INFO) -> Path:
    """
    Set up logging configuration.

    Args:
        log_dir: Directory to store log files
        level: Logging level, as a number or a name such as "INFO"

    Returns:
        Path of the log file that was opened
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    # Create logs directory
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    # Create log filename with timestamp
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_path / f"slidecite_{timestamp}.log"

    log_format = '%(asctime)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    file_handler = logging.FileHandler(log_file, encoding="utf-8")
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(log_format, date_format)
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)

    logging.info("Logging initialized")
    logging.info(f"Log file: {log_file}")
    return log_file


def log_operation(operation: str, details: str, level: int = logging.INFO) -> None:
    """Log an operation with details."""
    logging.log(level, f"{operation}: {details}")
