import pytest

from txscope.config import AnalysisPolicy
from txscope.core.gas_profiler import (
    aggregate,
    build_gas_profile,
    compute_breakdown,
    compute_efficiency,
    efficiency_ratio,
    function_hints,
    global_hints,
    top_gas_consumers,
)
from txscope.core.models import CallRecord, FunctionGasAnalysis
from txscope.core.types import Address, CallType, EMPTY_SELECTOR, Selector

from conftest import EOA, VAULT

TRANSFER = Selector("0xa9059cbb")
APPROVE = Selector("0x095ea7b3")
WITHDRAW = Selector("0x2e1a7d4d")


def call(selector, gas_used, to=VAULT):
    return CallRecord(
        from_addr=Address(EOA),
        to_addr=Address(to),
        value="0",
        data=str(selector),
        selector=Selector(selector),
        function_name=str(selector),
        call_type=CallType.CALL,
        gas_used=gas_used,
        success=True,
    )


@pytest.mark.parametrize("total", [0, 1, 7, 99, 100, 101, 12345, 999999, 10 ** 18 + 3])
def test_breakdown_sums_to_total(total):
    breakdown = compute_breakdown(total)
    assert breakdown.total == total
    assert min(breakdown.to_dict().values()) >= 0


def test_breakdown_split():
    breakdown = compute_breakdown(1000)
    assert breakdown.storage_operations == 300
    assert breakdown.external_calls == 350
    assert breakdown.memory_operations == 150
    assert breakdown.computation == 200
    assert breakdown.other == 0


def test_breakdown_remainder_goes_to_other():
    breakdown = compute_breakdown(7)
    # floor(2.1), floor(2.45), floor(1.05), floor(1.4)
    assert (breakdown.storage_operations, breakdown.external_calls,
            breakdown.memory_operations, breakdown.computation) == (2, 2, 1, 1)
    assert breakdown.other == 1


def test_breakdown_custom_split():
    breakdown = compute_breakdown(100, AnalysisPolicy(breakdown_split=(50, 0, 0, 0)))
    assert breakdown.storage_operations == 50
    assert breakdown.other == 50


@pytest.mark.parametrize("used,limit,expected", [
    (50, 100, 50.0),
    (123, 0, 0.0),
    (0, 0, 0.0),
    (5, -1, 0.0),
    (1, 3, 33.33),
    (2, 3, 66.67),
    (1, 8, 12.5),
    (1, 800, 0.13),
    (150, 100, 150.0),
])
def test_efficiency(used, limit, expected):
    assert compute_efficiency(used, limit) == expected


def test_aggregate_groups_in_first_seen_order():
    calls = [call(TRANSFER, 100), call(APPROVE, 50), call(TRANSFER, 30)]
    result = aggregate(calls)

    assert [a.selector for a in result.function_analyses] == [TRANSFER, APPROVE]
    transfer = result.function_analyses[0]
    assert transfer.total_gas == 130
    assert transfer.call_count == 2
    assert transfer.breakdown.total == 130
    assert result.total_gas == 180


def test_aggregate_skips_empty_selector_but_counts_its_gas():
    result = aggregate([call(EMPTY_SELECTOR, 21000), call(TRANSFER, 500)])
    assert [a.selector for a in result.function_analyses] == [TRANSFER]
    assert result.total_gas == 21500


def test_aggregate_case_insensitive_selectors():
    result = aggregate([call("0xA9059CBB", 1), call("0xa9059cbb", 2)])
    assert len(result.function_analyses) == 1
    assert result.function_analyses[0].call_count == 2


def test_aggregate_is_deterministic():
    calls = [call(TRANSFER, 100), call(APPROVE, 50), call(WITHDRAW, 70), call(APPROVE, 5)]
    assert aggregate(calls, include_function_hints=True) == aggregate(calls, include_function_hints=True)
    assert aggregate(calls).function_analyses[1].to_dict() == aggregate(calls).function_analyses[1].to_dict()


def test_aggregate_empty():
    result = aggregate([])
    assert result.function_analyses == ()
    assert result.total_gas == 0


def test_global_hint_below_threshold():
    hints = global_hints(gas_used=50000, gas_limit=100000, efficiency=50.0)
    assert len(hints) == 1
    hint = hints[0]
    assert hint.category == "Gas"
    assert hint.estimated_savings == 50000
    assert "50.0%" in hint.description


def test_no_global_hint_when_efficient():
    assert global_hints(gas_used=90000, gas_limit=100000, efficiency=90.0) == ()
    # 80 is not below the threshold
    assert global_hints(gas_used=80000, gas_limit=100000, efficiency=80.0) == ()


def test_no_global_hint_without_limit():
    assert global_hints(gas_used=0, gas_limit=0, efficiency=0.0) == ()


def test_global_hint_uses_unrounded_efficiency():
    profile = build_gas_profile((), gas_limit=100000, gas_used=79996)
    assert profile.efficiency == 80.0
    assert len(profile.global_hints) == 1
    assert profile.global_hints[0].estimated_savings == 4

    assert build_gas_profile((), gas_limit=100000, gas_used=80000).global_hints == ()


def test_efficiency_ratio():
    assert str(efficiency_ratio(79996, 100000)) == "79.996"
    assert efficiency_ratio(1, 0) == 0


def test_function_hints():
    busy = FunctionGasAnalysis(TRANSFER, "0xa9059cbb", 200000, 6, compute_breakdown(200000))
    hints = function_hints(busy)
    assert [h.category for h in hints] == ["External Calls", "Gas Optimization"]
    assert hints[0].estimated_savings == 6000
    assert hints[1].estimated_savings == 20000

    quiet = FunctionGasAnalysis(TRANSFER, "0xa9059cbb", 100000, 5, compute_breakdown(100000))
    assert function_hints(quiet) == ()


def test_build_gas_profile():
    calls = [call(TRANSFER, 60000), call(TRANSFER, 60000), call(EMPTY_SELECTOR, 21000)]
    profile = build_gas_profile(calls, gas_limit=300000, gas_used=141000)

    assert profile.total_gas == 141000
    assert profile.efficiency == 47.0
    assert len(profile.global_hints) == 1
    assert profile.function_analyses[0].hints[0].category == "Gas Optimization"

    bare = build_gas_profile(calls, gas_limit=300000, gas_used=141000, include_function_hints=False)
    assert bare.function_analyses[0].hints == ()


def test_gas_profile_to_dict():
    profile = build_gas_profile([call(TRANSFER, 100)], gas_limit=100, gas_used=100)
    assert profile.to_dict() == {
        "totalGas": 100,
        "gasLimit": 100,
        "gasUsed": 100,
        "efficiency": 100.0,
        "functionAnalyses": [{
            "selector": "0xa9059cbb",
            "functionName": "0xa9059cbb",
            "totalGas": 100,
            "callCount": 1,
            "breakdown": {
                "storageOperations": 30,
                "externalCalls": 35,
                "memoryOperations": 15,
                "computation": 20,
                "other": 0,
            },
            "hints": [],
        }],
        "globalHints": [],
    }


def test_top_gas_consumers_ranking():
    result = aggregate([call(TRANSFER, 10), call(APPROVE, 30), call(WITHDRAW, 20)])
    top = top_gas_consumers(result.function_analyses, 2)
    assert [a.selector for a in top] == [APPROVE, WITHDRAW]


def test_top_gas_consumers_ties_keep_first_seen_order():
    result = aggregate([call(TRANSFER, 10), call(APPROVE, 10), call(WITHDRAW, 10)])
    top = top_gas_consumers(result.function_analyses, 3)
    assert [a.selector for a in top] == [TRANSFER, APPROVE, WITHDRAW]


@pytest.mark.parametrize("n", [0, -1])
def test_top_gas_consumers_non_positive(n):
    result = aggregate([call(TRANSFER, 10)])
    assert top_gas_consumers(result.function_analyses, n) == []


def test_top_gas_consumers_n_larger_than_groups():
    result = aggregate([call(TRANSFER, 10)])
    assert len(top_gas_consumers(result.function_analyses, 10)) == 1
