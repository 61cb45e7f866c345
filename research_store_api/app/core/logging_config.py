"""
Logging setup for the Research Store API.

Everything logs through the standard ``logging`` module under the
package's module names.  ``setup_logging`` attaches a console handler
and, when ``LOG_FILE`` is set, a size-rotated file handler to the root
logger.  Chatty third-party loggers are held at WARNING so outbound
gateway URLs and multipart parser internals stay out of the log.
"""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
QUIET_LOGGERS = ("urllib3", "multipart")

LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
LOG_FILE_BACKUPS = 5


def _handlers(logfile: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if logfile:
        handlers.append(
            RotatingFileHandler(
                Path(logfile).resolve(),
                maxBytes=LOG_FILE_MAX_BYTES,
                backupCount=LOG_FILE_BACKUPS,
                encoding="utf-8",
            )
        )
    return handlers


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger once.

    Parameters
    ----------
    level : str
        Level name such as ``"DEBUG"`` or ``"info"``.  Unknown names
        mean INFO.
    logfile : Optional[str]
        File to log to in addition to the console.
    """
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root = logging.getLogger()
    if root.handlers:
        # Already configured (uvicorn reload, tests building the app again).
        return

    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    for handler in _handlers(logfile):
        handler.setFormatter(formatter)
        root.addHandler(handler)
