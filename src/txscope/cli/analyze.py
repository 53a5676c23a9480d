"""
Analyze command implementation.

Fetches a transaction's call trace over RPC (or reads a saved callTracer
result with --trace-file) and prints the gas profile, state changes and
heuristic security findings.
"""

import json
from typing import Any, Mapping, Optional, Tuple

from txscope.config import load_config
from txscope.core.analyzer import TransactionAnalyzer
from txscope.core.fetcher import validate_tx_hash
from txscope.core.gas_profiler import top_gas_consumers
from txscope.core.models import TransactionAnalysisResult
from txscope.core.raw_trace import parse_quantity
from txscope.core.state_diff import StateDiff
from txscope.utils.colors import (
    address, bold, bullet_point, dim, error, function_name, gas_value, info,
    severity, success, warning,
)
from txscope.utils.exceptions import TxScopeError
from txscope.utils.logging import logger, setup_logging
from txscope.cli.common import (
    create_fetcher,
    default_rpc_url,
    handle_command_error,
    load_json_file,
    print_connection_info,
)


def analyze_command(args) -> int:
    """
    Execute the analyze command.

    Args:
        args: Parsed command arguments

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    json_mode = getattr(args, 'json', False)
    setup_logging(
        debug=getattr(args, 'debug', False),
        verbose=getattr(args, 'verbose', False),
        quiet=getattr(args, 'quiet', False),
        log_file=getattr(args, 'log_file', None),
    )

    try:
        tx_hash = validate_tx_hash(args.tx_hash)
        config = load_config(getattr(args, 'config', None))
        analyzer = TransactionAnalyzer(config)
        state_diff = _load_state_diff(getattr(args, 'state_diff', None))

        if getattr(args, 'trace_file', None):
            result = _analyze_offline(analyzer, tx_hash, args, state_diff)
        else:
            result = _analyze_rpc(analyzer, tx_hash, args, state_diff, json_mode)
    except Exception as e:
        logger.debug("Analysis failed", exc_info=True)
        return handle_command_error(e, json_mode)

    if json_mode:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_report(result, top=args.top)
    return 0


def _load_state_diff(path: Optional[str]) -> Tuple[Optional[StateDiff], Optional[Mapping[str, Any]]]:
    """
    Read a --state-diff file.

    The file is either a prestateTracer diffMode result ({"pre", "post"})
    or a StateDiff in its JSON form.
    """
    if not path:
        return None, None
    data = load_json_file(path, "state diff file")
    if isinstance(data, dict) and 'result' in data:
        data = data['result']
    if isinstance(data, dict) and ('pre' in data or 'post' in data):
        return None, data
    return StateDiff.from_dict(data), None


def _analyze_offline(analyzer: TransactionAnalyzer, tx_hash: str, args, state_diff) -> TransactionAnalysisResult:
    raw_trace = load_json_file(args.trace_file, "trace file")
    # Accept a bare callTracer result or a full JSON-RPC response
    if isinstance(raw_trace, dict) and 'result' in raw_trace and 'type' not in raw_trace:
        raw_trace = raw_trace['result']
    if not isinstance(raw_trace, dict):
        raise TxScopeError(
            f"Trace file {args.trace_file} does not contain a callTracer result",
            {"path": args.trace_file},
            "InvalidTraceFile",
        )

    gas_used = args.gas_used
    if gas_used is None:
        gas_used = parse_quantity(raw_trace.get('gasUsed'))
    gas_limit = args.gas_limit
    if gas_limit is None:
        gas_limit = parse_quantity(raw_trace.get('gas')) or gas_used

    logger.info(f"Analyzing {tx_hash} from {args.trace_file}")
    diff, prestate = state_diff
    return analyzer.analyze(
        tx_hash, raw_trace,
        gas_limit=gas_limit,
        gas_used=gas_used,
        state_diff=diff,
        prestate_diff=prestate,
    )


def _analyze_rpc(analyzer: TransactionAnalyzer, tx_hash: str, args, state_diff, json_mode: bool) -> TransactionAnalysisResult:
    rpc_url = args.rpc_url or default_rpc_url()
    print_connection_info(rpc_url, json_mode)
    fetcher = create_fetcher(rpc_url)

    diff, prestate = state_diff
    fetched = fetcher.fetch(
        tx_hash,
        with_state_diff=diff is None and prestate is None,
        require_trace=getattr(args, 'require_trace', False),
    )

    if not fetched.debug_trace_available and not json_mode:
        print(warning("debug_traceTransaction is not available on this node; call analysis is empty."))

    save_path = getattr(args, 'save_trace', None)
    if save_path and fetched.debug_trace_available:
        fetched.save_trace(save_path)
        logger.info(f"Saved call trace to {save_path}")

    return analyzer.analyze(
        fetched.tx_hash,
        fetched.raw_trace,
        gas_limit=args.gas_limit if args.gas_limit is not None else fetched.gas_limit,
        gas_used=args.gas_used if args.gas_used is not None else fetched.gas_used,
        state_diff=diff,
        prestate_diff=prestate if prestate is not None else fetched.prestate_diff,
    )


def print_report(result: TransactionAnalysisResult, top: int = 5) -> None:
    """Print a human-readable analysis report."""
    trace = result.trace_analysis
    gas = result.gas_profile

    print(bold("Transaction Analysis"))
    print(f"Transaction: {info(result.tx_hash)}")
    print()

    print(bold("Calls"))
    print(f"Calls: {len(trace.calls)}")
    print(f"Max depth: {trace.depth}")
    print(f"Contracts involved: {len(trace.contracts_involved)}")
    for contract in sorted(trace.contracts_involved):
        print(bullet_point(address(contract)))
    failed = [c for c in trace.calls if not c.success]
    if failed:
        print(error(f"Failed calls: {len(failed)}"))
        for call in failed:
            reason = call.revert_reason or call.error
            print(bullet_point(f"{address(call.to_addr)} {function_name(call.function_name)}: {reason}"))
    print()

    print(bold("Gas"))
    print(f"Gas used: {gas_value(gas.gas_used)} / {gas_value(gas.gas_limit)} ({gas.efficiency}%)")
    print(f"Gas in trace: {gas_value(gas.total_gas)}")
    consumers = top_gas_consumers(gas.function_analyses, top)
    if consumers:
        print("Top gas consumers:")
        for rank, analysis in enumerate(consumers, 1):
            print(
                f"  {rank}. {function_name(analysis.function_name)} "
                f"{gas_value(analysis.total_gas)} gas in {analysis.call_count} call(s)"
            )
    hints = list(gas.global_hints)
    for analysis in gas.function_analyses:
        hints.extend(analysis.hints)
    if hints:
        print("Optimization hints:")
        for hint in hints:
            print(bullet_point(
                f"[{hint.category}] {hint.description} "
                f"{dim(f'(~{hint.estimated_savings:,} gas)')}"
            ))
    print()

    diff = result.state_diff
    print(bold("State Changes"))
    print(
        f"Storage: {diff.total_storage_changes}, balances: {diff.total_balance_changes}, "
        f"transfers: {diff.total_transfers}"
    )
    for transfer in diff.token_transfers:
        print(bullet_point(
            f"{transfer.token_type.value} {transfer.amount} "
            f"{address(transfer.from_addr)} -> {address(transfer.to_addr)}"
        ))
    print()

    report = result.vulnerability_report
    print(bold("Security"))
    if not report.total_issues:
        print(success("No issues found"))
        return
    print(
        f"Issues: {report.total_issues} (critical: {report.critical_count}, high: {report.high_count}, "
        f"medium: {report.medium_count}, low: {report.low_count})"
    )
    for vuln in report.vulnerabilities:
        print(f"{severity(vuln.severity.value)} {vuln.name}: {vuln.description}")
        print(bullet_point(vuln.recommendation))
