"""
Analysis result data model.

Every entity here is created fresh per analysis and never mutated.
to_dict() produces the camelCase JSON shape consumed by the web app.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from .raw_trace import RawLog
from .state_diff import StateDiff
from .types import Address, CallType, Selector, Severity


def _sorted(values) -> List[str]:
    return sorted(str(v) for v in values)


@dataclass(frozen=True)
class CallRecord:
    """A single flattened call frame."""
    from_addr: Address
    to_addr: Address
    value: str
    data: str
    selector: Selector
    function_name: str
    call_type: CallType
    gas_used: int
    success: bool
    depth: int = 0
    error: Optional[str] = None
    revert_reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "from": str(self.from_addr),
            "to": str(self.to_addr),
            "value": self.value,
            "data": self.data,
            "selector": str(self.selector),
            "functionName": self.function_name,
            "callType": self.call_type.value,
            "gasUsed": self.gas_used,
            "success": self.success,
            "depth": self.depth,
        }
        if self.error is not None:
            result["error"] = self.error
        if self.revert_reason is not None:
            result["revertReason"] = self.revert_reason
        return result


@dataclass(frozen=True)
class TraceAnalysis:
    """Flattened view of a call tree."""
    calls: Tuple[CallRecord, ...]
    total_gas_used: int
    depth: int
    contracts_involved: FrozenSet[Address]
    logs: Tuple[RawLog, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "calls": [c.to_dict() for c in self.calls],
            "events": [log.to_dict() for log in self.logs],
            "totalGasUsed": self.total_gas_used,
            "depth": self.depth,
            "contractsInvolved": _sorted(self.contracts_involved),
        }


@dataclass(frozen=True)
class GasBreakdown:
    """Synthetic split of a group's gas; the five fields sum to the group total."""
    storage_operations: int
    external_calls: int
    memory_operations: int
    computation: int
    other: int

    @property
    def total(self) -> int:
        return (self.storage_operations + self.external_calls + self.memory_operations
                + self.computation + self.other)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storageOperations": self.storage_operations,
            "externalCalls": self.external_calls,
            "memoryOperations": self.memory_operations,
            "computation": self.computation,
            "other": self.other,
        }


@dataclass(frozen=True)
class OptimizationHint:
    category: str
    description: str
    estimated_savings: int
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "description": self.description,
            "estimatedSavings": self.estimated_savings,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class FunctionGasAnalysis:
    """Gas usage of all calls sharing one selector."""
    selector: Selector
    function_name: str
    total_gas: int
    call_count: int
    breakdown: GasBreakdown
    hints: Tuple[OptimizationHint, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "selector": str(self.selector),
            "functionName": self.function_name,
            "totalGas": self.total_gas,
            "callCount": self.call_count,
            "breakdown": self.breakdown.to_dict(),
            "hints": [h.to_dict() for h in self.hints],
        }


@dataclass(frozen=True)
class GasProfile:
    total_gas: int
    gas_limit: int
    gas_used: int
    efficiency: float
    function_analyses: Tuple[FunctionGasAnalysis, ...]
    global_hints: Tuple[OptimizationHint, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalGas": self.total_gas,
            "gasLimit": self.gas_limit,
            "gasUsed": self.gas_used,
            "efficiency": self.efficiency,
            "functionAnalyses": [f.to_dict() for f in self.function_analyses],
            "globalHints": [h.to_dict() for h in self.global_hints],
        }


@dataclass(frozen=True)
class Vulnerability:
    id: str
    name: str
    severity: Severity
    description: str
    recommendation: str
    affected_contracts: FrozenSet[Address] = frozenset()
    affected_functions: FrozenSet[Selector] = frozenset()
    occurrence_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
            "affectedContracts": _sorted(self.affected_contracts),
            "affectedFunctions": _sorted(self.affected_functions),
            "occurrenceCount": self.occurrence_count,
        }


@dataclass(frozen=True)
class VulnerabilityReport:
    """Findings plus severity tallies derived from them."""
    vulnerabilities: Tuple[Vulnerability, ...] = ()

    def _count(self, *levels: Severity) -> int:
        return sum(1 for v in self.vulnerabilities if v.severity in levels)

    @property
    def total_issues(self) -> int:
        return len(self.vulnerabilities)

    @property
    def critical_count(self) -> int:
        return self._count(Severity.CRITICAL)

    @property
    def high_count(self) -> int:
        return self._count(Severity.HIGH)

    @property
    def medium_count(self) -> int:
        return self._count(Severity.MEDIUM)

    @property
    def low_count(self) -> int:
        return self._count(Severity.LOW, Severity.INFO)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "vulnerabilities": [v.to_dict() for v in self.vulnerabilities],
            "totalIssues": self.total_issues,
            "criticalCount": self.critical_count,
            "highCount": self.high_count,
            "mediumCount": self.medium_count,
            "lowCount": self.low_count,
        }


@dataclass(frozen=True)
class TransactionAnalysisResult:
    tx_hash: str
    trace_analysis: TraceAnalysis
    gas_profile: GasProfile
    state_diff: StateDiff
    vulnerability_report: VulnerabilityReport
    timestamp: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "traceAnalysis": self.trace_analysis.to_dict(),
            "gasProfile": self.gas_profile.to_dict(),
            "stateDiff": self.state_diff.to_dict(),
            "vulnerabilityReport": self.vulnerability_report.to_dict(),
            "timestamp": self.timestamp,
        }
