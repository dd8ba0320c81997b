"""
logging_config.py — Root logger setup for the order edit service.

`create_app()` calls `setup_logging()` once, after the settings are resolved,
so the log file location comes from `LOG_FILE`. Workflow modules only ask for
named loggers; every record ends up in the log file and on stdout with the
worker PID, which keeps lines from several uvicorn workers apart.
"""

import logging
import sys

LOG_FORMAT = '%(asctime)s - %(levelname)s - [PID:%(process)d] - %(message)s'

# Log each request at INFO and would drown the [Order: ...] lines
NOISY_LOGGERS = ("httpx", "httpcore")


def setup_logging(log_file: str = "order_edit.log", level: int = logging.INFO):
    """
    Replaces the root handlers with a file handler and a stdout handler.

    Args:
        log_file (str): Target of the file handler, usually `Settings.log_file`.
        level (int): Root level, INFO unless a caller asks for more detail.
    """
    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        handlers=[logging.FileHandler(log_file), logging.StreamHandler(sys.stdout)],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name):
    """Named logger; `name` is normally the calling module's `__name__`."""
    return logging.getLogger(name)
