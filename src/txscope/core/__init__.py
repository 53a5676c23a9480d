"""
Core module for txscope.

This module contains the analysis engine:
- flattener: Flattens nested call traces
- gas_profiler: Aggregates gas by function selector
- vulnerability_scanner: Heuristic findings over the flattened calls
- state_diff: Storage, balance and transfer changes
- assembler / analyzer: Combine everything into one result
- fetcher: Retrieves traces over JSON-RPC
"""

from .types import (
    Address,
    Selector,
    CallType,
    Severity,
    ZERO_ADDRESS,
    EMPTY_SELECTOR,
)
from .raw_trace import RawTraceNode, RawLog, normalize
from .models import (
    CallRecord,
    TraceAnalysis,
    GasBreakdown,
    OptimizationHint,
    FunctionGasAnalysis,
    GasProfile,
    Vulnerability,
    VulnerabilityReport,
    TransactionAnalysisResult,
)
from .state_diff import (
    StateDiff,
    StorageChange,
    BalanceChange,
    TokenTransfer,
    TokenType,
    build_state_diff,
)
from .flattener import flatten, analyze_trace, FlattenResult
from .gas_profiler import (
    aggregate,
    compute_breakdown,
    compute_efficiency,
    efficiency_ratio,
    build_gas_profile,
    top_gas_consumers,
)
from .vulnerability_scanner import scan, RULES
from .assembler import assemble
from .fetcher import TransactionFetcher, FetchedTransaction, validate_tx_hash
from .analyzer import TransactionAnalyzer

__all__ = [
    'Address',
    'Selector',
    'CallType',
    'Severity',
    'ZERO_ADDRESS',
    'EMPTY_SELECTOR',
    'RawTraceNode',
    'RawLog',
    'normalize',
    'CallRecord',
    'TraceAnalysis',
    'GasBreakdown',
    'OptimizationHint',
    'FunctionGasAnalysis',
    'GasProfile',
    'Vulnerability',
    'VulnerabilityReport',
    'TransactionAnalysisResult',
    'StateDiff',
    'StorageChange',
    'BalanceChange',
    'TokenTransfer',
    'TokenType',
    'build_state_diff',
    'flatten',
    'analyze_trace',
    'FlattenResult',
    'aggregate',
    'compute_breakdown',
    'compute_efficiency',
    'efficiency_ratio',
    'build_gas_profile',
    'top_gas_consumers',
    'scan',
    'RULES',
    'assemble',
    'TransactionFetcher',
    'FetchedTransaction',
    'validate_tx_hash',
    'TransactionAnalyzer',
]
