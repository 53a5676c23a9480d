"""
Common utilities for CLI commands.

This module provides shared functionality used by the CLI commands
to keep error output and RPC setup consistent.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any

from txscope.core.fetcher import TransactionFetcher
from txscope.utils.colors import info
from txscope.utils.exceptions import RPCConnectionError, TxScopeError, format_error
from txscope.utils.logging import logger

DEFAULT_RPC_URL = "http://localhost:8545"


def default_rpc_url() -> str:
    """RPC URL from $RPC_URL, falling back to a local node."""
    return os.environ.get("RPC_URL") or DEFAULT_RPC_URL


def create_fetcher(rpc_url: str, timeout: int = 30) -> TransactionFetcher:
    """
    Create and return a TransactionFetcher instance.

    Args:
        rpc_url: RPC endpoint URL
        timeout: Request timeout in seconds

    Returns:
        Connected TransactionFetcher

    Raises:
        RPCConnectionError: If connection to RPC fails
    """
    logger.debug(f"Connecting to RPC: {rpc_url}")
    try:
        return TransactionFetcher(rpc_url, timeout=timeout)
    except TxScopeError:
        raise
    except Exception as e:
        raise RPCConnectionError(f"Failed to connect to RPC: {e}", rpc_url=rpc_url)


def load_json_file(path: str, what: str = "file") -> Any:
    """
    Read a JSON document.

    Raises:
        TxScopeError: If the file is missing or not valid JSON
    """
    if not Path(path).exists():
        raise TxScopeError(f"{what.capitalize()} not found: {path}", {"path": path}, "FileNotFound")
    try:
        with open(path) as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise TxScopeError(f"Invalid JSON in {what} {path}: {e}", {"path": path}, "InvalidJSON")


def handle_command_error(
    e: Exception,
    json_mode: bool = False,
    exit_code: int = 1
) -> int:
    """
    Handle command errors uniformly.

    Args:
        e: The exception that occurred
        json_mode: If True, output as JSON
        exit_code: Exit code to return

    Returns:
        Exit code
    """
    error_output = format_error(e, json_mode)
    if json_mode:
        print(error_output)
    else:
        print(error_output, file=sys.stderr)
    return exit_code


def print_connection_info(rpc_url: str, json_mode: bool = False) -> None:
    """
    Print RPC connection information.

    Args:
        rpc_url: RPC endpoint URL
        json_mode: If True, skip output (JSON mode handles differently)
    """
    if not json_mode:
        print(f"Connecting to RPC: {info(rpc_url)}")
