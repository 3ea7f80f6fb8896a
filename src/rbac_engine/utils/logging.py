"""
Logging helpers shared by the library and the CLI.

The library only creates loggers; handlers are installed by the CLI
(setup_cli_logging) or by the embedding application.
"""

import logging
from typing import Optional

ROOT_LOGGER_NAME = "rbac_engine"

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"

# verbosity (0-4) -> logging level
VERBOSITY_LEVELS = {
    0: logging.CRITICAL,
    1: logging.ERROR,
    2: logging.WARNING,
    3: logging.INFO,
    4: logging.DEBUG,
}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger inside the rbac_engine hierarchy.

    Names that already start with the package name (module __name__) are used
    as-is; anything else (e.g. 'rbac.audit') is nested under it so one
    handler configuration covers every logger we emit on.
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def setup_cli_logging(verbosity: int = 2, stream: Optional[object] = None) -> None:
    """
    Configure console logging for command line use.

    Args:
        verbosity: 0 (critical only) to 4 (debug). Out-of-range values are clamped.
        stream: Optional stream for the handler (defaults to stderr)
    """
    level = VERBOSITY_LEVELS[max(0, min(4, verbosity))]

    root = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(level)
