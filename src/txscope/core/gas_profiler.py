"""
Gas Aggregator

Groups flattened calls by function selector, sums their gas, attaches a
synthetic category breakdown and optimization hints, and ranks groups by
total gas.

The breakdown is a presentation heuristic: the call trace carries no
per-opcode accounting, so fixed percentages of each group's total are used.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Sequence, Tuple, Union

from txscope.config import AnalysisPolicy
from txscope.utils.logging import get_logger
from .models import CallRecord, FunctionGasAnalysis, GasBreakdown, GasProfile, OptimizationHint
from .types import Selector

logger = get_logger('gas_profiler')

DEFAULT_POLICY = AnalysisPolicy()


@dataclass(frozen=True)
class GasAggregate:
    function_analyses: Tuple[FunctionGasAnalysis, ...]
    total_gas: int


def compute_breakdown(total_gas: int, policy: AnalysisPolicy = DEFAULT_POLICY) -> GasBreakdown:
    """
    Split total_gas by the policy percentages.

    Each share is floored with integer arithmetic; "other" takes the
    remainder so the five fields always sum to total_gas.
    """
    storage_pct, external_pct, memory_pct, computation_pct = policy.breakdown_split
    storage = total_gas * storage_pct // 100
    external = total_gas * external_pct // 100
    memory = total_gas * memory_pct // 100
    computation = total_gas * computation_pct // 100
    return GasBreakdown(
        storage_operations=storage,
        external_calls=external,
        memory_operations=memory,
        computation=computation,
        other=total_gas - (storage + external + memory + computation),
    )


def efficiency_ratio(gas_used: int, gas_limit: int) -> Decimal:
    """Unrounded percentage of the gas limit used; 0 when gas_limit is not positive."""
    if gas_limit <= 0:
        return Decimal(0)
    return Decimal(gas_used) * 100 / Decimal(gas_limit)


def compute_efficiency(gas_used: int, gas_limit: int) -> float:
    """
    Percentage of the gas limit actually used, rounded half-up to 2 decimals.

    Returns 0 when gas_limit is not positive.
    """
    ratio = efficiency_ratio(gas_used, gas_limit)
    return float(ratio.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))


def function_hints(analysis: FunctionGasAnalysis, policy: AnalysisPolicy = DEFAULT_POLICY) -> Tuple[OptimizationHint, ...]:
    """Per-function hints from call count and gas thresholds."""
    hints = []
    if analysis.call_count > policy.call_count_hint_threshold:
        hints.append(OptimizationHint(
            category="External Calls",
            description=(
                f"{analysis.function_name} was called {analysis.call_count} times "
                f"in this transaction."
            ),
            estimated_savings=analysis.call_count * policy.savings_per_call,
            recommendation="Batch repeated external calls or cache their results.",
        ))
    if analysis.total_gas > policy.gas_hint_threshold:
        hints.append(OptimizationHint(
            category="Gas Optimization",
            description=(
                f"{analysis.function_name} consumed {analysis.total_gas} gas "
                f"across {analysis.call_count} call(s)."
            ),
            estimated_savings=analysis.total_gas // policy.gas_savings_divisor,
            recommendation="Review storage access patterns and loops in this function.",
        ))
    return tuple(hints)


def aggregate(
    calls: Iterable[CallRecord],
    policy: AnalysisPolicy = DEFAULT_POLICY,
    include_function_hints: bool = False,
) -> GasAggregate:
    """
    Group calls by selector.

    Calls with the empty selector are counted in total_gas but belong to no
    group. Groups keep first-seen order.
    """
    totals: Dict[Selector, int] = {}
    counts: Dict[Selector, int] = {}
    names: Dict[Selector, str] = {}
    total_gas = 0

    for call in calls:
        total_gas += call.gas_used
        if call.selector.is_empty:
            continue
        totals[call.selector] = totals.get(call.selector, 0) + call.gas_used
        counts[call.selector] = counts.get(call.selector, 0) + 1
        names[call.selector] = call.function_name

    analyses = []
    for selector, group_gas in totals.items():
        analysis = FunctionGasAnalysis(
            selector=selector,
            function_name=names[selector],
            total_gas=group_gas,
            call_count=counts[selector],
            breakdown=compute_breakdown(group_gas, policy),
        )
        if include_function_hints:
            analysis = replace(analysis, hints=function_hints(analysis, policy))
        analyses.append(analysis)

    return GasAggregate(function_analyses=tuple(analyses), total_gas=total_gas)


def global_hints(
    gas_used: int,
    gas_limit: int,
    efficiency: Union[Decimal, float],
    policy: AnalysisPolicy = DEFAULT_POLICY,
) -> Tuple[OptimizationHint, ...]:
    """
    A single gas-limit hint for under-used limits, otherwise nothing.

    efficiency is compared as given; build_gas_profile passes the unrounded
    ratio so 79.996% still counts as below an 80% threshold.
    """
    if efficiency < policy.efficiency_hint_threshold and gas_limit > gas_used:
        return (OptimizationHint(
            category="Gas",
            description=(
                f"Gas efficiency {efficiency:.1f}%. Consider lowering gas limit "
                f"for similar transactions."
            ),
            estimated_savings=gas_limit - gas_used,
            recommendation="Set gas limit closer to actual usage when possible.",
        ),)
    return ()


def build_gas_profile(
    calls: Sequence[CallRecord],
    gas_limit: int,
    gas_used: int,
    policy: AnalysisPolicy = DEFAULT_POLICY,
    include_function_hints: bool = True,
) -> GasProfile:
    """Aggregate calls and combine them with the transaction's gas figures."""
    fragment = aggregate(calls, policy, include_function_hints)
    profile = GasProfile(
        total_gas=fragment.total_gas,
        gas_limit=gas_limit,
        gas_used=gas_used,
        efficiency=compute_efficiency(gas_used, gas_limit),
        function_analyses=fragment.function_analyses,
        global_hints=global_hints(gas_used, gas_limit, efficiency_ratio(gas_used, gas_limit), policy),
    )
    logger.debug(
        f"Gas profile: {len(profile.function_analyses)} functions, "
        f"efficiency {profile.efficiency}%"
    )
    return profile


def top_gas_consumers(
    analyses: Sequence[FunctionGasAnalysis],
    n: int,
) -> List[FunctionGasAnalysis]:
    """
    The n groups with the most gas, highest first.

    sorted() is stable, also with reverse=True, so ties keep their
    first-seen order.
    """
    if n <= 0 or not analyses:
        return []
    ranked = sorted(analyses, key=lambda a: a.total_gas, reverse=True)
    return ranked[:n]
