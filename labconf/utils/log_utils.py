# labconf/utils/log_utils.py
"""
Logging setup for labconf.

All components log under the ``LabConf`` logger namespace
(``LabConf.BlockEditor``, ``LabConf.Proxy``...). Output goes to stderr as

    [LEVEL][Component] 2024-01-31 12:00:00 - message

so it never mixes with diff previews printed on stdout.
"""

import logging
import sys
from typing import Optional, TextIO, Union

from labconf.ui.colors import LOG_DEBUG_FG, LOG_ERROR_FG, LOG_INFO_FG, LOG_WARNING_FG, RESET

ROOT_LOGGER_NAME = "LabConf"

_LEVEL_NAMES = {
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}

# Numeric verbosity: 0 = ERROR ... 3 = DEBUG
_LEVEL_NUMBERS = {
    0: logging.ERROR,
    1: logging.WARNING,
    2: logging.INFO,
    3: logging.DEBUG,
}

_LEVEL_COLORS = {
    logging.ERROR: LOG_ERROR_FG,
    logging.CRITICAL: LOG_ERROR_FG,
    logging.WARNING: LOG_WARNING_FG,
    logging.INFO: LOG_INFO_FG,
    logging.DEBUG: LOG_DEBUG_FG,
}


def parse_log_level(value: Union[str, int]) -> int:
    """
    Convert ``ERROR|WARNING|INFO|DEBUG`` (any case) or ``0..3`` into a
    logging level. Raises ValueError for anything else.
    """
    if isinstance(value, int) and not isinstance(value, bool):
        if value in _LEVEL_NUMBERS:
            return _LEVEL_NUMBERS[value]
        raise ValueError(f"Invalid log level {value!r}. Must be ERROR, WARNING, INFO, or DEBUG")

    text = str(value).strip()
    if text.isdigit() and int(text) in _LEVEL_NUMBERS:
        return _LEVEL_NUMBERS[int(text)]
    level = _LEVEL_NAMES.get(text.upper())
    if level is None:
        raise ValueError(f"Invalid log level {value!r}. Must be ERROR, WARNING, INFO, or DEBUG")
    return level


class LevelColorFormatter(logging.Formatter):
    """Formats records as ``[LEVEL][Component] timestamp - message``."""

    def __init__(self, use_color: bool = True):
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        component = record.name.rsplit(".", 1)[-1]
        tag = f"[{record.levelname}]"
        if component and record.name != ROOT_LOGGER_NAME:
            tag += f"[{component}]"
        if self.use_color:
            tag = f"{_LEVEL_COLORS.get(record.levelno, '')}{tag}{RESET}"

        line = f"{tag} {self.formatTime(record, self.datefmt)} - {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: Union[str, int] = "INFO",
    stream: Optional[TextIO] = None,
    use_color: Optional[bool] = None,
) -> logging.Logger:
    """
    Configure the ``LabConf`` logger once per process.

    Calling it again replaces the handler, so the CLI can re-apply a level
    given on the command line after the config file was read.
    """
    stream = stream or sys.stderr
    if use_color is None:
        use_color = hasattr(stream, "isatty") and stream.isatty()

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(LevelColorFormatter(use_color=use_color))
    logger.addHandler(handler)
    logger.setLevel(parse_log_level(level))
    return logger
