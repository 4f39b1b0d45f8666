# linear_cli/logger.py

import logging
import sys

from tqdm import tqdm

LOGGER_NAME = "linear_cli"


class TqdmLoggingHandler(logging.Handler):
    """Write records through tqdm so they do not break active progress bars."""

    def __init__(self, level=logging.NOTSET):
        super().__init__(level)

    def emit(self, record):
        try:
            msg = self.format(record)
            tqdm.write(msg, file=sys.stderr)
            self.flush()
        except Exception:
            self.handleError(record)


class CustomFormatter(logging.Formatter):
    """Custom formatter adding color to the log output"""

    grey = "\x1b[38;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    def __init__(self, fmt="%(message)s"):
        super().__init__(fmt)
        self.FORMATS = {
            logging.DEBUG: self.grey + fmt + self.reset,
            logging.INFO: self.grey + fmt + self.reset,
            logging.WARNING: self.yellow + "Warning: " + fmt + self.reset,
            logging.ERROR: self.red + fmt + self.reset,
            logging.CRITICAL: self.bold_red + fmt + self.reset,
        }

    def format(self, record):
        log_fmt = self.FORMATS.get(record.levelno)
        formatter = logging.Formatter(log_fmt)
        return formatter.format(record)


def setup_logger(name=LOGGER_NAME, log_file=None, level=logging.WARNING):
    """
    Configure the CLI logger.

    Console output goes to stderr through tqdm; ``log_file`` adds a plain,
    timestamped file handler that always records DEBUG.
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    verbose_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    c_handler = TqdmLoggingHandler(level)
    c_handler.setFormatter(
        CustomFormatter(verbose_format if level <= logging.DEBUG else "%(message)s")
    )
    logger.addHandler(c_handler)

    if log_file:
        f_handler = logging.FileHandler(log_file)
        f_handler.setLevel(logging.DEBUG)
        f_handler.setFormatter(logging.Formatter(verbose_format))
        logger.addHandler(f_handler)

    return logger


logger = logging.getLogger(LOGGER_NAME)
