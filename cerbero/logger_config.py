import logging
import sys
from pathlib import Path
from typing import Optional

LOGGER_NAME = "cerbero"


def setup_logger(logs_dir: Optional[str] = None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)

    # Called again by tests and by main(); handlers are attached only once
    if logger.handlers:
        return logger

    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s'
    )

    # Console handler (for basic logging)
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if logs_dir:
        # Create logs directory if it doesn't exist
        logs_path = Path(logs_dir)
        logs_path.mkdir(exist_ok=True, parents=True)

        file_formatter = logging.Formatter(
            '%(asctime)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s'
        )

        # File handler (for detailed logging)
        file_handler = logging.FileHandler(logs_path / "cerbero.log")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    return logger
