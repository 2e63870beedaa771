"""Process-wide logging setup."""

import logging

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_HANDLER_NAME = "capacity_planner.console"


def configure_logging(level: str = "INFO") -> None:
    """Attach a single console handler to the package logger."""

    package_logger = logging.getLogger("capacity_planner")
    package_logger.setLevel(level.upper())

    # Avoid duplicate handlers when the app factory runs more than once.
    if any(handler.get_name() == _HANDLER_NAME for handler in package_logger.handlers):
        return

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    package_logger.addHandler(handler)
