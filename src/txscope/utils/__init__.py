"""
Utilities module for txscope.

Provides exception handling, logging and terminal colors.
"""

from .exceptions import (
    TxScopeError,
    RPCConnectionError,
    TransactionError,
    InvalidTransactionHashError,
    TransactionNotFoundError,
    DebugTraceUnavailableError,
    TraceError,
    TraceTooDeepError,
    TooManyCallsError,
    UnknownCallTypeError,
    ConfigError,
    format_error,
    format_error_json,
    format_exception_message,
)
from .logging import setup_logging, get_logger, logger
from .colors import (
    Colors,
    SUPPORTS_COLOR,
    red, green, yellow, blue, magenta, cyan,
    bold, dim,
    error, success, warning, info,
    address, gas_value, function_name, severity,
    bullet_point,
)

__all__ = [
    # Exceptions
    'TxScopeError',
    'RPCConnectionError',
    'TransactionError',
    'InvalidTransactionHashError',
    'TransactionNotFoundError',
    'DebugTraceUnavailableError',
    'TraceError',
    'TraceTooDeepError',
    'TooManyCallsError',
    'UnknownCallTypeError',
    'ConfigError',
    # Formatting
    'format_error',
    'format_error_json',
    'format_exception_message',
    # Logging
    'setup_logging',
    'get_logger',
    'logger',
    # Colors
    'Colors',
    'SUPPORTS_COLOR',
    'red', 'green', 'yellow', 'blue', 'magenta', 'cyan',
    'bold', 'dim',
    'error', 'success', 'warning', 'info',
    'address', 'gas_value', 'function_name', 'severity',
    'bullet_point',
]
