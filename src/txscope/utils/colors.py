"""
Terminal color helpers for txscope output.

ANSI escape codes are applied only when stdout is a TTY and NO_COLOR
is not set.
"""

import os
import sys


class Colors:
    """ANSI escape sequences."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'
    UNDERLINE = '\033[4m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    BLUE = '\033[34m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'

    BRIGHT_RED = '\033[91m'
    BRIGHT_GREEN = '\033[92m'
    BRIGHT_YELLOW = '\033[93m'
    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'


SUPPORTS_COLOR = (
    hasattr(sys.stdout, 'isatty')
    and sys.stdout.isatty()
    and 'NO_COLOR' not in os.environ
)


def _wrap(text, code: str) -> str:
    if not SUPPORTS_COLOR:
        return str(text)
    return f"{code}{text}{Colors.RESET}"


def red(text) -> str:
    return _wrap(text, Colors.RED)


def green(text) -> str:
    return _wrap(text, Colors.GREEN)


def yellow(text) -> str:
    return _wrap(text, Colors.YELLOW)


def blue(text) -> str:
    return _wrap(text, Colors.BLUE)


def magenta(text) -> str:
    return _wrap(text, Colors.MAGENTA)


def cyan(text) -> str:
    return _wrap(text, Colors.CYAN)


def bold(text) -> str:
    return _wrap(text, Colors.BOLD)


def dim(text) -> str:
    return _wrap(text, Colors.DIM)


# Semantic helpers

def error(text) -> str:
    return _wrap(text, Colors.BRIGHT_RED)


def success(text) -> str:
    return _wrap(text, Colors.BRIGHT_GREEN)


def warning(text) -> str:
    return _wrap(text, Colors.BRIGHT_YELLOW)


def info(text) -> str:
    return _wrap(text, Colors.BRIGHT_CYAN)


def address(text) -> str:
    return _wrap(text, Colors.MAGENTA)


def gas_value(value) -> str:
    return _wrap(f"{value:,}" if isinstance(value, int) else value, Colors.YELLOW)


def function_name(text) -> str:
    return _wrap(text, Colors.BRIGHT_BLUE)


def severity(level: str) -> str:
    """Color a severity label by how bad it is."""
    level = str(level)
    if level in ('CRITICAL', 'HIGH'):
        return _wrap(level, Colors.BOLD + Colors.BRIGHT_RED)
    if level == 'MEDIUM':
        return _wrap(level, Colors.BRIGHT_YELLOW)
    return _wrap(level, Colors.DIM)


def bullet_point(text) -> str:
    return f"  • {text}"
