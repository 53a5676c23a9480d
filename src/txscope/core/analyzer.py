"""
Transaction analysis pipeline.

Runs the flattener, then the gas aggregator and vulnerability scanner on
its output, and assembles the result. Pure given its inputs apart from the
timestamp, whose clock is injectable.
"""

from typing import Any, Mapping, Optional

from txscope.config import AnalyzerConfig
from txscope.utils.logging import get_logger
from .assembler import Clock, assemble
from .fetcher import FetchedTransaction
from .flattener import analyze_trace
from .gas_profiler import build_gas_profile
from .models import TraceAnalysis, TransactionAnalysisResult
from .state_diff import StateDiff, build_state_diff
from .vulnerability_scanner import scan

logger = get_logger('analyzer')

EMPTY_TRACE = TraceAnalysis(calls=(), total_gas_used=0, depth=0, contracts_involved=frozenset())


class TransactionAnalyzer:
    """
    Analyzes one transaction at a time. Holds configuration only; analyze()
    keeps no state between calls.
    """

    def __init__(self, config: Optional[AnalyzerConfig] = None, clock: Optional[Clock] = None):
        self.config = config or AnalyzerConfig()
        self.clock = clock

    def analyze(
        self,
        tx_hash: str,
        raw_trace: Optional[Any],
        gas_limit: int,
        gas_used: int,
        state_diff: Optional[StateDiff] = None,
        prestate_diff: Optional[Mapping[str, Any]] = None,
    ) -> TransactionAnalysisResult:
        """
        Analyze a transaction from already-fetched data.

        Args:
            tx_hash: Transaction hash
            raw_trace: callTracer result (mapping or RawTraceNode); None when
                       no trace is available
            gas_limit: Transaction gas limit
            gas_used: Gas used according to the receipt
            state_diff: StateDiff from an external collaborator, passed through
            prestate_diff: prestateTracer diffMode result, used to build a
                           StateDiff when state_diff is not given

        Returns:
            TransactionAnalysisResult
        """
        config = self.config
        logger.debug(f"Analyzing {tx_hash}")

        if raw_trace is None:
            logger.warning(f"No call trace for {tx_hash}; trace-based analysis will be empty")
            trace = EMPTY_TRACE
        else:
            trace = analyze_trace(raw_trace, config.limits, config.strict_call_types)

        gas_profile = build_gas_profile(
            trace.calls,
            gas_limit=gas_limit,
            gas_used=gas_used,
            policy=config.policy,
            include_function_hints=config.function_hints,
        )

        if state_diff is None:
            state_diff = build_state_diff(prestate_diff, trace)

        report = scan(trace.calls, state_diff.storage_contracts(), config.rules)

        return assemble(tx_hash, trace, gas_profile, state_diff, report, clock=self.clock)

    def analyze_fetched(self, fetched: FetchedTransaction) -> TransactionAnalysisResult:
        return self.analyze(
            fetched.tx_hash,
            fetched.raw_trace,
            gas_limit=fetched.gas_limit,
            gas_used=fetched.gas_used,
            prestate_diff=fetched.prestate_diff,
        )
