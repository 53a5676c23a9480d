"""
Custom exceptions for txscope.

This module provides a hierarchy of exceptions for the few failure cases
of transaction analysis, along with utilities for formatting errors
consistently.
"""

import json
from typing import Any, Dict, Optional


class TxScopeError(Exception):
    """
    Base exception for all txscope errors.

    Attributes:
        message: Human-readable error message
        details: Additional context as key-value pairs
        error_code: Optional error code for programmatic handling
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.__class__.__name__
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "error": True,
            "type": self.error_code,
            "message": self.message,
            **self.details
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert exception to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)


# ============================================================================
# Connection Errors
# ============================================================================

class RPCConnectionError(TxScopeError):
    """Raised when RPC connection fails."""

    def __init__(self, message: str, rpc_url: Optional[str] = None, **kwargs):
        details = {"rpc_url": rpc_url} if rpc_url else {}
        details.update(kwargs)
        super().__init__(message, details, "RPCConnectionError")


# ============================================================================
# Transaction Errors
# ============================================================================

class TransactionError(TxScopeError):
    """Raised when transaction operations fail."""

    def __init__(
        self,
        message: str,
        tx_hash: Optional[str] = None,
        **kwargs
    ):
        details = {}
        if tx_hash:
            details["tx_hash"] = tx_hash
        details.update(kwargs)
        super().__init__(message, details, "TransactionError")


class InvalidTransactionHashError(TransactionError):
    """Raised when a transaction hash is not 0x followed by 64 hex digits."""

    def __init__(self, tx_hash: Any, **kwargs):
        super().__init__(
            f"Invalid transaction hash: {tx_hash}",
            tx_hash=str(tx_hash),
            **kwargs
        )
        self.error_code = "InvalidTransactionHashError"


class TransactionNotFoundError(TransactionError):
    """Raised when transaction or its receipt is not found."""

    def __init__(self, tx_hash: str, reason: Optional[str] = None, **kwargs):
        message = f"Transaction not found: {tx_hash}"
        if reason:
            message += f" ({reason})"
        super().__init__(message, tx_hash=tx_hash, **kwargs)
        self.error_code = "TransactionNotFoundError"


class DebugTraceUnavailableError(TransactionError):
    """Raised when debug trace is not available for a transaction."""

    def __init__(
        self,
        tx_hash: str,
        reason: Optional[str] = None,
        **kwargs
    ):
        message = f"debug_traceTransaction unavailable for {tx_hash}"
        if reason:
            message += f": {reason}"
        super().__init__(message, tx_hash=tx_hash, **kwargs)
        self.error_code = "DebugTraceUnavailable"


# ============================================================================
# Trace Errors
# ============================================================================

class TraceError(TxScopeError):
    """Base class for errors raised while walking a call trace."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, dict(kwargs), "TraceError")


class TraceTooDeepError(TraceError):
    """Raised when call nesting exceeds the configured maximum depth."""

    def __init__(self, depth: int, max_depth: int, **kwargs):
        super().__init__(
            f"Trace too deep: depth {depth} exceeds maximum of {max_depth}",
            depth=depth,
            max_depth=max_depth,
            **kwargs
        )
        self.error_code = "TraceTooDeepError"


class TooManyCallsError(TraceError):
    """Raised when a trace holds more call frames than allowed."""

    def __init__(self, max_nodes: int, **kwargs):
        super().__init__(
            f"Too many calls: trace exceeds maximum of {max_nodes} call frames",
            max_nodes=max_nodes,
            **kwargs
        )
        self.error_code = "TooManyCallsError"


class UnknownCallTypeError(TraceError):
    """Raised in strict mode for a call type outside the known EVM set."""

    def __init__(self, call_type: str, **kwargs):
        super().__init__(
            f"Unknown call type: {call_type}",
            call_type=call_type,
            **kwargs
        )
        self.error_code = "UnknownCallTypeError"


# ============================================================================
# Configuration Errors
# ============================================================================

class ConfigError(TxScopeError):
    """Raised when a configuration file or value is invalid."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = {"path": path} if path else {}
        details.update(kwargs)
        super().__init__(message, details, "ConfigError")


# ============================================================================
# Error Formatting Utilities
# ============================================================================

def format_error(e: Exception, json_mode: bool = False) -> str:
    """
    Format an exception for display.

    Args:
        e: The exception to format
        json_mode: If True, output as JSON; otherwise use colored text

    Returns:
        Formatted error string
    """
    from txscope.utils.colors import error

    if isinstance(e, TxScopeError):
        if json_mode:
            return e.to_json()
        return error(e.message)
    if json_mode:
        return json.dumps(format_error_json(format_exception_message(e), type(e).__name__), indent=2)
    return error(format_exception_message(e))


def format_error_json(
    message: str,
    error_type: str = "Error",
    **kwargs
) -> Dict[str, Any]:
    """
    Create a standardized error JSON structure.

    Args:
        message: Error message
        error_type: Error type/code
        **kwargs: Additional fields to include

    Returns:
        Dictionary suitable for JSON output
    """
    return {
        "error": True,
        "type": error_type,
        "message": message,
        **kwargs
    }


def format_exception_message(e: Exception) -> str:
    """
    Extract a clean, user-friendly error message from any exception.

    Args:
        e: Exception instance

    Returns:
        Clean error message string
    """
    # Web3RPCError and similar have args[0] as dict
    if hasattr(e, 'args') and e.args:
        first_arg = e.args[0]

        if isinstance(first_arg, dict):
            # RPC error format: {'code': -32003, 'message': '...'}
            return first_arg.get('message', str(e))
        elif isinstance(first_arg, str):
            return first_arg
        else:
            return str(first_arg)

    return str(e)
