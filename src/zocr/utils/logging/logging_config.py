"""
Centralized logging configuration for suppressing verbose third-party logs.
"""

import logging
import os
import warnings


NOISY_LIBRARIES = [
    "easyocr",
    "PIL",
    "httpx",
    "httpcore",
    "torch",
    "urllib3",
]

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"


class NullHandler(logging.Handler):
    """Handler that discards all log records."""

    def emit(self, record):
        pass


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """
    Configure logging for the CLI and silence noisy third-party libraries.

    Args:
        verbose: If True, show debug logs from zocr and let library warnings through
        quiet: If True, hide zocr warnings and errors as well
    """
    if not verbose:
        warnings.filterwarnings("ignore")
    os.environ.setdefault("OMP_THREAD_LIMIT", "1")

    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(format=LOG_FORMAT, datefmt=LOG_DATEFMT)
    root_logger.setLevel(logging.INFO if verbose else logging.WARNING)

    if verbose:
        zocr_level = logging.DEBUG
    elif quiet:
        zocr_level = logging.CRITICAL
    else:
        zocr_level = logging.WARNING
    logging.getLogger("zocr").setLevel(zocr_level)

    library_level = logging.WARNING if verbose else logging.CRITICAL
    for logger_name in NOISY_LIBRARIES:
        logger = logging.getLogger(logger_name)
        logger.setLevel(library_level)
        if not verbose:
            logger.propagate = False
            logger.handlers = [NullHandler()]
