import pytest

from txscope.config import TraceLimits
from txscope.core.flattener import analyze_trace, flatten
from txscope.core.raw_trace import normalize
from txscope.core.types import CallType, EMPTY_SELECTOR
from txscope.utils.exceptions import TooManyCallsError, TraceTooDeepError, UnknownCallTypeError
from txscope.utils.logging import TRACE

from conftest import ATTACKER, EOA, ONE_ETH, RECIPIENT, TOKEN, VAULT, WITHDRAW_INPUT, frame


def chain(depth):
    root = frame(gasUsed=1)
    node = root
    for _ in range(depth):
        child = frame(gasUsed=1)
        node["calls"] = [child]
        node = child
    return root


def test_simple_transfer():
    raw = {"from": EOA, "to": RECIPIENT, "value": ONE_ETH, "input": "0x"}
    result = flatten(raw)

    assert len(result.calls) == 1
    call = result.calls[0]
    assert call.call_type is CallType.CALL
    assert call.selector == EMPTY_SELECTOR
    assert call.function_name == "0x00000000"
    assert call.depth == 0
    assert call.value == ONE_ETH
    assert call.success
    assert result.max_depth == 0
    assert result.contracts == {EOA, RECIPIENT}


def test_zero_address_not_a_contract():
    result = flatten({"to": RECIPIENT})
    assert result.contracts == {RECIPIENT}


def test_contracts_deduplicated_across_casing():
    raw = frame(to="0x" + EOA[2:].upper(), from_=VAULT, calls=[frame(to=EOA, from_=VAULT)])
    assert flatten(raw).contracts == {EOA, VAULT}


def test_nested_call_with_failure():
    raw = frame(type="CALL", calls=[frame(to=ATTACKER, from_=VAULT, error="execution reverted")])
    result = flatten(raw)

    root, child = result.calls
    assert root.success
    assert not child.success
    assert child.error == "execution reverted"
    assert result.max_depth == 1


def test_pre_order():
    raw = frame(to="0x01", calls=[
        frame(to="0x02", calls=[frame(to="0x03"), frame(to="0x04")]),
        frame(to="0x05", calls=[frame(to="0x06")]),
    ])
    result = flatten(raw)
    assert [c.to_addr for c in result.calls] == ["0x01", "0x02", "0x03", "0x04", "0x05", "0x06"]
    assert [c.depth for c in result.calls] == [0, 1, 2, 2, 1, 2]
    assert len(result.calls) == normalize(raw).node_count()


@pytest.mark.parametrize("depth", [0, 1, 2, 10, 50])
def test_uniform_depth(depth):
    assert flatten(chain(depth)).max_depth == depth


def test_gas_conservation(reentrancy_trace):
    analysis = analyze_trace(reentrancy_trace)
    assert analysis.total_gas_used == sum(c.gas_used for c in analysis.calls)
    assert analysis.total_gas_used == 100000 + 21000 + 10000


def test_selector_and_call_type(reentrancy_trace):
    calls = analyze_trace(reentrancy_trace).calls
    assert calls[0].selector == "0x2e1a7d4d"
    assert calls[0].data == WITHDRAW_INPUT
    assert calls[1].selector == EMPTY_SELECTOR
    assert {c.call_type for c in calls} == {CallType.CALL}


def test_unknown_call_type_strict():
    raw = frame(calls=[frame(type="SELFDESTRUCT")])
    assert flatten(raw).calls[1].call_type is CallType.CALL
    with pytest.raises(UnknownCallTypeError):
        flatten(raw, strict_call_types=True)


def test_logs_collected_in_call_order():
    raw = frame(
        logs=[{"address": VAULT, "topics": ["0x01"]}],
        calls=[frame(to=TOKEN, logs=[{"address": TOKEN, "topics": ["0x02"]}])],
    )
    analysis = analyze_trace(raw)
    assert [log.address for log in analysis.logs] == [VAULT, TOKEN]


def test_limits():
    with pytest.raises(TraceTooDeepError):
        flatten(chain(5), TraceLimits(max_depth=4))
    with pytest.raises(TooManyCallsError):
        flatten(frame(calls=[frame(), frame()]), TraceLimits(max_nodes=2))


def test_limits_checked_for_normalized_input():
    root = normalize(chain(5))
    with pytest.raises(TraceTooDeepError):
        flatten(root, TraceLimits(max_depth=4))


def test_very_deep_trace():
    result = flatten(chain(3000), TraceLimits(max_depth=3000))
    assert result.max_depth == 3000
    assert len(result.calls) == 3001


def test_analysis_to_dict(reentrancy_trace):
    data = analyze_trace(reentrancy_trace).to_dict()
    assert data["totalGasUsed"] == 131000
    assert data["depth"] == 2
    assert data["contractsInvolved"] == sorted([EOA, VAULT, ATTACKER])
    assert data["calls"][1] == {
        "from": VAULT,
        "to": ATTACKER,
        "value": "0xde0b6b3a7640000",
        "data": "0x",
        "selector": "0x00000000",
        "functionName": "0x00000000",
        "callType": "CALL",
        "gasUsed": 21000,
        "success": True,
        "depth": 1,
    }


def test_calls_logged_at_trace_level(reentrancy_trace, caplog):
    with caplog.at_level(TRACE, logger="txscope"):
        flatten(reentrancy_trace)
    trace_records = [r for r in caplog.records if r.levelno == TRACE]
    assert len(trace_records) == 3
    assert trace_records[1].getMessage().startswith("  CALL")
