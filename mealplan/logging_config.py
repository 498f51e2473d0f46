"""
Centralised logging configuration.

Call `configure_logging()` once at process startup (the Flask app factory
and the command-line scripts both do). Each module should then use:

    import logging
    logger = logging.getLogger(__name__)

and pass structured context through ``extra={...}`` rather than string
formatting, so records stay machine-readable.
"""

import logging
import sys

from mealplan import config

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers held at WARNING whatever the app level is
NOISY_LOGGERS = ("werkzeug", "urllib3", "flask_limiter")

_HANDLER_NAME = "mealplan.stdout"


def configure_logging(level: str | None = None) -> None:
    """Install the stdout handler on the root logger.

    Calling it again swaps the handler rather than stacking a second one.
    Handlers installed by anything else are left alone.
    """
    root = logging.getLogger()
    root.handlers = [h for h in root.handlers if h.get_name() != _HANDLER_NAME]

    handler = logging.StreamHandler(sys.stdout)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)

    level = level or config.LOG_LEVEL
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
