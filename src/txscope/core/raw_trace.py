"""
Raw call-tracer input and its normalization.

The callTracer result is loosely typed JSON where any field may be
missing. normalize() applies every default once, up front, so the
later stages never have to null-check.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from eth_abi.abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import is_hexstr

from txscope.config import TraceLimits
from txscope.core.types import Address, ZERO_ADDRESS
from txscope.utils.exceptions import TraceTooDeepError, TooManyCallsError
from txscope.utils.logging import get_logger

logger = get_logger('raw_trace')

# Error(string)
ERROR_STRING_SELECTOR = "0x08c379a0"


@dataclass(frozen=True)
class RawLog:
    """Event log emitted inside a call frame (callTracer withLog)."""
    address: Address
    topics: Tuple[str, ...] = ()
    data: str = "0x"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": str(self.address),
            "topics": list(self.topics),
            "data": self.data,
        }


@dataclass(frozen=True)
class RawTraceNode:
    """One call frame with all defaults applied."""
    call_type_raw: Optional[str] = None
    from_addr: Address = ZERO_ADDRESS
    to_addr: Address = ZERO_ADDRESS
    value: str = "0"
    gas_used: int = 0
    input: str = "0x"
    output: str = "0x"
    error: Optional[str] = None
    revert_reason: Optional[str] = None
    logs: Tuple[RawLog, ...] = ()
    calls: List["RawTraceNode"] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.error is None

    def node_count(self) -> int:
        """Number of frames in this subtree, including this one."""
        count = 0
        stack = [self]
        while stack:
            node = stack.pop()
            count += 1
            stack.extend(node.calls)
        return count


def parse_quantity(raw: Any) -> int:
    """
    Parse a gas quantity given as int, decimal string or 0x-hex string.

    Unparseable or negative values become 0.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    text = str(raw).strip()
    if not text:
        return 0
    try:
        if text.lower().startswith('0x'):
            return int(text, 16) if len(text) > 2 else 0
        return max(int(text, 10), 0)
    except ValueError:
        logger.debug(f"Unparseable gas quantity {raw!r}, using 0")
        return 0


def decode_revert_reason(output: Optional[str]) -> Optional[str]:
    """Decode an ABI-encoded Error(string) payload, if that is what output holds."""
    if not output or not is_hexstr(output):
        return None
    if not output.lower().startswith(ERROR_STRING_SELECTOR):
        return None
    try:
        (reason,) = abi_decode(['string'], bytes.fromhex(output[10:]))
        return reason
    except (DecodingError, ValueError):
        logger.debug(f"Could not decode revert payload {output[:74]}...")
        return None


def _normalize_logs(raw_logs: Any) -> Tuple[RawLog, ...]:
    if not isinstance(raw_logs, (list, tuple)):
        return ()
    logs = []
    for entry in raw_logs:
        if not isinstance(entry, Mapping):
            continue
        topics = entry.get('topics') or []
        logs.append(RawLog(
            address=Address(entry.get('address') or ZERO_ADDRESS),
            topics=tuple(str(t).lower() for t in topics),
            data=str(entry.get('data') or '0x'),
        ))
    return tuple(logs)


def _normalize_frame(raw: Mapping) -> RawTraceNode:
    value = raw.get('value')
    if value is None or value == '':
        value = "0"
    output = raw.get('output') or '0x'
    error = raw.get('error')
    revert_reason = raw.get('revertReason')
    if error is not None and revert_reason is None:
        revert_reason = decode_revert_reason(output)

    return RawTraceNode(
        call_type_raw=raw.get('type'),
        from_addr=Address(raw.get('from') or ZERO_ADDRESS),
        to_addr=Address(raw.get('to') or ZERO_ADDRESS),
        value=str(value),
        gas_used=parse_quantity(raw.get('gasUsed')),
        input=str(raw.get('input') or '0x'),
        output=str(output),
        error=None if error is None else str(error),
        revert_reason=revert_reason,
        logs=_normalize_logs(raw.get('logs')),
    )


def normalize(raw: Mapping, limits: Optional[TraceLimits] = None) -> RawTraceNode:
    """
    Convert a raw callTracer result into a RawTraceNode tree.

    Args:
        raw: Root frame as returned by debug_traceTransaction with callTracer
        limits: Depth and node-count guard (defaults to TraceLimits())

    Returns:
        Normalized root node

    Raises:
        TraceTooDeepError: If nesting exceeds limits.max_depth
        TooManyCallsError: If the tree holds more than limits.max_nodes frames
    """
    if isinstance(raw, RawTraceNode):
        return raw
    limits = limits or TraceLimits()

    root = _normalize_frame(raw)
    count = 1
    # (raw frame, its normalized node, depth)
    stack = [(raw, root, 0)]
    while stack:
        raw_node, node, depth = stack.pop()
        children = raw_node.get('calls') or []
        if not isinstance(children, (list, tuple)):
            continue
        if children and depth + 1 > limits.max_depth:
            logger.error(f"Trace exceeds maximum depth of {limits.max_depth}")
            raise TraceTooDeepError(depth + 1, limits.max_depth)
        for child in children:
            if not isinstance(child, Mapping):
                continue
            count += 1
            if count > limits.max_nodes:
                logger.error(f"Trace exceeds maximum of {limits.max_nodes} call frames")
                raise TooManyCallsError(limits.max_nodes)
            child_node = _normalize_frame(child)
            node.calls.append(child_node)
            stack.append((child, child_node, depth + 1))

    return root
