"""
Logging for txscope.

Everything logs under the ``txscope`` logger: core modules use
``get_logger('<module>')`` children, and the CLI calls ``setup_logging``
once per command. Console output goes to stderr so that ``--json`` output
on stdout stays parseable.

Levels used by the analysis pipeline:
- TRACE: one line per flattened call frame (``--verbose``)
- DEBUG: stage summaries such as call counts and efficiency (``--debug``)
- WARNING: recoverable input problems (unknown call types, missing traces)
- ERROR: resource limits hit while walking a trace
"""

import logging
import os
import sys
from typing import Optional

from txscope.utils.colors import Colors

ROOT_LOGGER_NAME = 'txscope'

# Below DEBUG; per-call detail that is too noisy for --debug
TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

CONSOLE_FORMAT = '%(levelname)s: %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Formatter that colors the level name of console records."""

    LEVEL_COLORS = {
        TRACE: Colors.DIM,
        logging.DEBUG: Colors.DIM,
        logging.INFO: Colors.BRIGHT_CYAN,
        logging.WARNING: Colors.BRIGHT_YELLOW,
        logging.ERROR: Colors.BRIGHT_RED,
        logging.CRITICAL: Colors.BOLD + Colors.BRIGHT_RED,
    }

    def __init__(self, fmt: str = None, datefmt: str = None, use_colors: bool = True):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, '') if self.use_colors else ''
        if color:
            # Work on a copy so other handlers see the plain level name
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = f"{color}{record.levelname}{Colors.RESET}"
        return super().format(record)


class TxScopeLogger(logging.Logger):
    """Logger with a trace() method for the TRACE level."""

    def trace(self, msg, *args, **kwargs):
        if self.isEnabledFor(TRACE):
            self._log(TRACE, msg, args, **kwargs)


logging.setLoggerClass(TxScopeLogger)


def _stderr_supports_color() -> bool:
    return (
        hasattr(sys.stderr, 'isatty')
        and sys.stderr.isatty()
        and 'NO_COLOR' not in os.environ
    )


def _console_handler(level: int, use_colors: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(
        fmt=CONSOLE_FORMAT,
        use_colors=use_colors and _stderr_supports_color(),
    ))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    handler = logging.FileHandler(log_file)
    # The file always gets the full debug log, whatever the console level
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(fmt=FILE_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


def setup_logging(
    level: int = logging.WARNING,
    quiet: bool = False,
    debug: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    Configure the txscope logger for one CLI run.

    Args:
        level: Console level when neither debug nor verbose is set
        quiet: Drop the console handler (a log file still receives records)
        debug: Console level DEBUG
        verbose: Console level TRACE; wins over debug
        log_file: Also write DEBUG and above to this file
        use_colors: Color level names when stderr is a terminal and
                    NO_COLOR is unset

    Returns:
        The configured ``txscope`` logger
    """
    if verbose:
        console_level = TRACE
    elif debug:
        console_level = logging.DEBUG
    else:
        console_level = level

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.handlers.clear()
    logger.propagate = False
    logger.setLevel(console_level)

    if not quiet:
        logger.addHandler(_console_handler(console_level, use_colors))

    if log_file:
        logger.addHandler(_file_handler(log_file))
        logger.setLevel(min(console_level, logging.DEBUG))

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Return the ``txscope`` logger, or its ``txscope.<name>`` child.
    """
    if name:
        return logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')
    return logging.getLogger(ROOT_LOGGER_NAME)


logger = get_logger()
