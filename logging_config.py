import logging
import os
import sys

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logger(name: str = "assignment_grader") -> logging.Logger:
    """Configure the shared application logger once and return it."""
    log = logging.getLogger(name)
    if log.handlers:
        return log

    level = os.getenv("LOG_LEVEL", "INFO").upper()
    log.setLevel(getattr(logging, level, logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
    log.addHandler(handler)
    log.propagate = False

    # Third-party clients are chatty at INFO
    for noisy in ("pymongo", "httpx", "openai", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return log


logger = setup_logger()
