import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger for the whole service.

    Safe to call more than once; handlers installed by an earlier call are
    replaced rather than duplicated.
    """
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)

    # python-socketio / engineio are chatty at DEBUG
    logging.getLogger("engineio").setLevel(max(level, logging.WARNING))
    logging.getLogger("socketio").setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
