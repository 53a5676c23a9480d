#!/usr/bin/env python3
"""
Main entry point for txscope

This module serves as the CLI entry point, handling argument parsing
and routing to the appropriate command implementations in the cli/ module.
"""

import sys
import argparse

from txscope import __version__
from .analyze import analyze_command


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='txscope - Ethereum transaction gas and security analysis')
    parser.add_argument('--version', '-v', action='version', version=f'%(prog)s {__version__}')

    # Create subparsers for different commands
    subparsers = parser.add_subparsers(dest='command', help='Commands')
    subparsers.required = True

    # analyze command
    analyze_parser = subparsers.add_parser('analyze', help='Analyze gas usage and security of a transaction')
    analyze_parser.add_argument('tx_hash', help='Transaction hash to analyze')
    analyze_parser.add_argument('--rpc-url', '-r', default=None, help='RPC URL (default: $RPC_URL or http://localhost:8545)')
    analyze_parser.add_argument('--trace-file', '-t', default=None, help='Analyze a saved callTracer result instead of fetching over RPC')
    analyze_parser.add_argument('--gas-limit', type=int, default=None, help='Transaction gas limit (default: from the node, or the root frame of --trace-file)')
    analyze_parser.add_argument('--gas-used', type=int, default=None, help='Gas used by the transaction (default: from the receipt, or the root frame of --trace-file)')
    analyze_parser.add_argument('--state-diff', default=None, help='JSON file with a prestateTracer diffMode result or a state diff')
    analyze_parser.add_argument('--save-trace', default=None, help='Save the fetched callTracer result to a JSON file')
    analyze_parser.add_argument('--require-trace', action='store_true', help='Fail if the node cannot trace the transaction instead of reporting gas figures only')
    analyze_parser.add_argument('--config', '-c', default=None, help='Configuration file (default: txscope.config.yaml if present)')
    analyze_parser.add_argument('--top', '-n', type=int, default=5, help='Number of top gas consumers to show (default: 5)')
    analyze_parser.add_argument('--json', action='store_true', help='Output the analysis as JSON for web app consumption')
    log_group = analyze_parser.add_mutually_exclusive_group()
    log_group.add_argument('--debug', action='store_true', help='Enable debug logging')
    log_group.add_argument('--verbose', action='store_true', help='Enable trace-level logging (more detailed than --debug)')
    log_group.add_argument('--quiet', '-q', action='store_true', help='Suppress log output')
    analyze_parser.add_argument('--log-file', default=None, help='Also write debug logs to this file')

    return parser


def main(argv=None):
    """Main entry point for txscope CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Route commands to CLI modules
    if args.command == 'analyze':
        return analyze_command(args)

    return 0


if __name__ == '__main__':
    sys.exit(main())
