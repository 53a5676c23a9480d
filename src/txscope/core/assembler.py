"""
Result Assembler

Combines the stage outputs into one immutable TransactionAnalysisResult.
"""

import time
from typing import Callable, Optional

from .models import GasProfile, TraceAnalysis, TransactionAnalysisResult, VulnerabilityReport
from .state_diff import StateDiff

Clock = Callable[[], float]


def assemble(
    tx_hash: str,
    trace_analysis: TraceAnalysis,
    gas_profile: GasProfile,
    state_diff: Optional[StateDiff],
    vulnerability_report: VulnerabilityReport,
    clock: Optional[Clock] = None,
) -> TransactionAnalysisResult:
    """
    Stamp and combine the analysis parts.

    clock returns seconds since the epoch (time.time by default); the
    result timestamp is in milliseconds.
    """
    now = (clock or time.time)()
    return TransactionAnalysisResult(
        tx_hash=tx_hash,
        trace_analysis=trace_analysis,
        gas_profile=gas_profile,
        state_diff=state_diff if state_diff is not None else StateDiff(),
        vulnerability_report=vulnerability_report,
        timestamp=int(now * 1000),
    )
