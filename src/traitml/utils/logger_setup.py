"""
Logging configuration.

Logging is mostly useful to developers, but users can turn on more
verbose output with::

    traitml.set_log_level("DEBUG")
"""

import io
import sys
from pathlib import Path
from typing import Optional

from loguru import logger


LOGFORMAT = (
    "<level>{level: <7}</level> <white>|</white> "
    "<cyan>{file: <14}</cyan> <white>|</white> "
    "<level>{message}</level>"
)

LOGGERS = [0]


def _only_traitml(record) -> bool:
    return record["extra"].get("name") == "traitml"


def set_log_level(
    log_level: str = "INFO",
    log_out: Optional[io.TextIOBase] = sys.stderr,
    log_file: Optional[Path] = None,
) -> None:
    """
    Set the log level for the loguru logger.

    Removes the handlers previously installed by this function (and the
    loguru default), leaving any others, then adds sinks that only print
    records from traitml modules, which bind ``name="traitml"``.

    Parameters
    ----------
    log_level : str
        DEBUG, INFO, WARNING or ERROR.
    log_out : io.TextIOBase, optional
        Stream to log to, or None to disable stream logging.
    log_file : Path, optional
        File to log to, or None.
    """
    while LOGGERS:
        idx = LOGGERS.pop()
        try:
            logger.remove(idx)
        except ValueError:
            pass

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        LOGGERS.append(logger.add(
            sink=log_file,
            level=log_level,
            colorize=False,
            format=LOGFORMAT,
            filter=_only_traitml,
            enqueue=True,
        ))
    if log_out:
        LOGGERS.append(logger.add(
            sink=log_out,
            level=log_level,
            colorize=bool(getattr(log_out, "isatty", lambda: False)()),
            format=LOGFORMAT,
            filter=_only_traitml,
        ))
    logger.enable("traitml")
    logger.bind(name="traitml").debug(f"logging enabled at level {log_level}")
