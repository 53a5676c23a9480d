"""
Heuristic Vulnerability Scanner

Inspects the flattened call list for suspicious patterns. This works on
the call trace alone; it never looks at bytecode.

Each rule emits at most one Vulnerability that aggregates every matching
call. REENTRANCY runs by default; the other rules are opt-in.
"""

from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Type

from txscope.utils.exceptions import ConfigError
from txscope.utils.logging import get_logger
from .models import CallRecord, Vulnerability, VulnerabilityReport
from .types import Address, CallType, Severity, is_zero_value

logger = get_logger('vulnerability_scanner')


class Rule:
    """Base class for scanner rules."""
    id: str = ""
    name: str = ""
    severity: Severity = Severity.INFO
    description: str = ""
    recommendation: str = ""

    def matches(self, calls: Sequence[CallRecord]) -> List[CallRecord]:
        raise NotImplementedError

    def applies(self, calls: Sequence[CallRecord], flagged: Sequence[CallRecord]) -> bool:
        return len(flagged) > 0

    def describe(self, flagged: Sequence[CallRecord], storage_contracts: FrozenSet[Address]) -> str:
        return self.description

    def check(
        self,
        calls: Sequence[CallRecord],
        storage_contracts: FrozenSet[Address] = frozenset(),
    ) -> Optional[Vulnerability]:
        flagged = self.matches(calls)
        if not self.applies(calls, flagged):
            return None
        return Vulnerability(
            id=self.id,
            name=self.name,
            severity=self.severity,
            description=self.describe(flagged, storage_contracts),
            recommendation=self.recommendation,
            affected_contracts=frozenset(c.to_addr for c in flagged),
            affected_functions=frozenset(c.selector for c in flagged),
            occurrence_count=len(flagged),
        )


class ReentrancyRule(Rule):
    """Value-bearing external calls in a transaction with more than one call."""
    id = "REENTRANCY"
    name = "Potential Reentrancy"
    severity = Severity.HIGH
    description = (
        "External call(s) with value detected. Ensure state is updated before "
        "external calls (checks-effects-interactions)."
    )
    recommendation = "Apply checks-effects-interactions pattern. Update state before external calls."

    def matches(self, calls):
        return [c for c in calls if c.call_type == CallType.CALL and not is_zero_value(c.value)]

    def applies(self, calls, flagged):
        return len(flagged) > 0 and len(calls) > 1

    def describe(self, flagged, storage_contracts):
        touched = sorted({str(c.to_addr) for c in flagged if c.to_addr in storage_contracts})
        if not touched:
            return self.description
        return f"{self.description} Storage also changed on: {', '.join(touched)}."


class UncheckedCallRule(Rule):
    """Failed calls that carried value."""
    id = "UNCHECKED_CALL"
    name = "Unchecked Call Return Value"
    severity = Severity.MEDIUM
    description = "Call(s) carrying value failed. The caller may not check the return value."
    recommendation = "Check the return value of low-level calls and revert or handle failure explicitly."

    def matches(self, calls):
        return [
            c for c in calls
            if c.call_type == CallType.CALL and not c.success and not is_zero_value(c.value)
        ]


class DangerousDelegatecallRule(Rule):
    """Any DELEGATECALL executes foreign code in the caller's storage context."""
    id = "DANGEROUS_DELEGATECALL"
    name = "Dangerous Delegatecall"
    severity = Severity.CRITICAL
    description = "DELEGATECALL detected. The callee runs with the caller's storage and balance."
    recommendation = "Only delegatecall to trusted, immutable implementations and validate the target."

    def matches(self, calls):
        return [c for c in calls if c.call_type == CallType.DELEGATECALL]


RULES: Dict[str, Type[Rule]] = {
    ReentrancyRule.id: ReentrancyRule,
    UncheckedCallRule.id: UncheckedCallRule,
    DangerousDelegatecallRule.id: DangerousDelegatecallRule,
}

DEFAULT_RULES = (ReentrancyRule.id,)


def scan(
    calls: Sequence[CallRecord],
    storage_changes: Optional[Iterable[str]] = None,
    rules: Optional[Iterable[str]] = None,
) -> VulnerabilityReport:
    """
    Run the enabled rules over a flattened call list.

    Args:
        calls: Flattened calls in call-stack order
        storage_changes: Addresses of contracts with recorded storage changes
        rules: Rule ids to run (defaults to REENTRANCY only)

    Returns:
        VulnerabilityReport; empty for an empty call list

    Raises:
        ConfigError: If a rule id is not registered
    """
    storage_contracts = frozenset(Address(a) for a in (storage_changes or ()))
    vulnerabilities = []
    for rule_id in (rules if rules is not None else DEFAULT_RULES):
        if rule_id not in RULES:
            raise ConfigError(f"Unknown vulnerability rule '{rule_id}'. Available: {', '.join(RULES)}")
        rule = RULES[rule_id]()
        finding = rule.check(calls, storage_contracts)
        if finding is not None:
            logger.debug(f"{rule_id}: {finding.occurrence_count} occurrence(s)")
            vulnerabilities.append(finding)
    return VulnerabilityReport(vulnerabilities=tuple(vulnerabilities))
