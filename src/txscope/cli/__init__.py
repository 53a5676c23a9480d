"""
CLI module for txscope commands.

This module provides the command-line interface for txscope,
currently the analyze command.
"""

from .main import main

__all__ = [
    'main',
    'analyze_command',
]

# Lazy imports to avoid circular dependencies
def analyze_command(args):
    """Execute the analyze command."""
    from .analyze import analyze_command as _analyze_command
    return _analyze_command(args)
