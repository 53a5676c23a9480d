"""
Call Flattener

Walks a nested call tree depth-first, pre-order, and produces the ordered
list of CallRecords, the maximum nesting depth and the set of contracts
touched.
"""

from dataclasses import dataclass
from typing import FrozenSet, List, Mapping, Optional, Tuple, Union

from txscope.config import TraceLimits
from txscope.utils.exceptions import TraceTooDeepError, TooManyCallsError
from txscope.utils.logging import get_logger
from .models import CallRecord, TraceAnalysis
from .raw_trace import RawLog, RawTraceNode, normalize
from .types import Address, CallType, Selector

logger = get_logger('flattener')


@dataclass(frozen=True)
class FlattenResult:
    calls: Tuple[CallRecord, ...]
    max_depth: int
    contracts: FrozenSet[Address]
    logs: Tuple[RawLog, ...] = ()


def to_call_record(node: RawTraceNode, depth: int = 0, strict_call_types: bool = False) -> CallRecord:
    """Convert one normalized frame into a CallRecord."""
    selector = Selector.from_input(node.input)
    return CallRecord(
        from_addr=node.from_addr,
        to_addr=node.to_addr,
        value=node.value,
        data=node.input,
        selector=selector,
        function_name=str(selector),
        call_type=CallType.parse(node.call_type_raw, strict=strict_call_types),
        gas_used=node.gas_used,
        success=node.success,
        depth=depth,
        error=node.error,
        revert_reason=node.revert_reason,
    )


def flatten(
    root: Union[RawTraceNode, Mapping],
    limits: Optional[TraceLimits] = None,
    strict_call_types: bool = False,
) -> FlattenResult:
    """
    Flatten a call tree.

    Args:
        root: Normalized root node, or a raw callTracer mapping
        limits: Depth and node-count guard (defaults to TraceLimits())
        strict_call_types: Raise on unknown call types instead of using CALL

    Returns:
        FlattenResult with calls in call-stack entry order

    Raises:
        TraceTooDeepError, TooManyCallsError: If the limits are exceeded
        UnknownCallTypeError: Only when strict_call_types is set
    """
    limits = limits or TraceLimits()
    if not isinstance(root, RawTraceNode):
        root = normalize(root, limits)

    calls: List[CallRecord] = []
    logs: List[RawLog] = []
    contracts = set()
    max_depth = 0

    stack = [(root, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > limits.max_depth:
            logger.error(f"Trace exceeds maximum depth of {limits.max_depth}")
            raise TraceTooDeepError(depth, limits.max_depth)
        if len(calls) >= limits.max_nodes:
            logger.error(f"Trace exceeds maximum of {limits.max_nodes} call frames")
            raise TooManyCallsError(limits.max_nodes)

        max_depth = max(max_depth, depth)
        record = to_call_record(node, depth, strict_call_types)
        logger.trace(f"{'  ' * depth}{record.call_type.value} {record.to_addr} {record.function_name} gas={record.gas_used}")
        calls.append(record)
        logs.extend(node.logs)
        for addr in (node.from_addr, node.to_addr):
            if not addr.is_zero:
                contracts.add(addr)

        # Reversed so the first child is popped (visited) first
        for child in reversed(node.calls):
            stack.append((child, depth + 1))

    logger.debug(f"Flattened {len(calls)} calls, max depth {max_depth}, {len(contracts)} contracts")
    return FlattenResult(
        calls=tuple(calls),
        max_depth=max_depth,
        contracts=frozenset(contracts),
        logs=tuple(logs),
    )


def analyze_trace(
    root: Union[RawTraceNode, Mapping],
    limits: Optional[TraceLimits] = None,
    strict_call_types: bool = False,
) -> TraceAnalysis:
    """Flatten a call tree into a TraceAnalysis."""
    result = flatten(root, limits, strict_call_types)
    return TraceAnalysis(
        calls=result.calls,
        total_gas_used=sum(c.gas_used for c in result.calls),
        depth=result.max_depth,
        contracts_involved=result.contracts,
        logs=result.logs,
    )
