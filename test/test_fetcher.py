import json
import logging
from unittest.mock import MagicMock, PropertyMock

import pytest
from hexbytes import HexBytes
from web3.datastructures import AttributeDict
from web3.exceptions import TransactionNotFound

from txscope.core.fetcher import (
    CALL_TRACER_CONFIG,
    PRESTATE_TRACER_CONFIG,
    FetchedTransaction,
    TransactionFetcher,
    validate_tx_hash,
)
from txscope.utils.exceptions import (
    DebugTraceUnavailableError,
    InvalidTransactionHashError,
    RPCConnectionError,
    TransactionNotFoundError,
)

TX_HASH = "0x" + "ab" * 32
RPC_URL = "http://localhost:8545"


@pytest.fixture
def mock_web3(reentrancy_trace):
    w3 = MagicMock()
    w3.eth.get_transaction.return_value = AttributeDict({"gas": 200000, "hash": HexBytes(TX_HASH)})
    w3.eth.get_transaction_receipt.return_value = AttributeDict({"gasUsed": 100000, "status": 1})

    def request_blocking(method, params):
        assert method == "debug_traceTransaction"
        if params[1]["tracer"] == "callTracer":
            return reentrancy_trace
        return {"pre": {}, "post": {}}

    w3.manager.request_blocking.side_effect = request_blocking
    return w3


@pytest.mark.parametrize("tx_hash", [TX_HASH, TX_HASH.upper().replace("0X", "0x"), "0X" + "cd" * 32])
def test_validate_tx_hash(tx_hash):
    assert validate_tx_hash(tx_hash) == tx_hash.lower()


@pytest.mark.parametrize("tx_hash", [None, "", "0x1234", "ab" * 33, "0x" + "zz" * 32, "0x" + "ab" * 33, 1234])
def test_validate_tx_hash_rejects(tx_hash):
    with pytest.raises(InvalidTransactionHashError):
        validate_tx_hash(tx_hash)


def test_fetch(mock_web3):
    fetcher = TransactionFetcher(RPC_URL, w3=mock_web3)
    fetched = fetcher.fetch(TX_HASH.upper().replace("0X", "0x"))

    assert fetched.tx_hash == TX_HASH
    assert fetched.gas_limit == 200000
    assert fetched.gas_used == 100000
    assert fetched.success
    assert fetched.debug_trace_available
    assert fetched.prestate_diff == {"pre": {}, "post": {}}
    mock_web3.manager.request_blocking.assert_any_call("debug_traceTransaction", [TX_HASH, CALL_TRACER_CONFIG])
    mock_web3.manager.request_blocking.assert_any_call("debug_traceTransaction", [TX_HASH, PRESTATE_TRACER_CONFIG])


def test_fetch_without_state_diff(mock_web3):
    fetched = TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH, with_state_diff=False)
    assert fetched.prestate_diff is None
    assert mock_web3.manager.request_blocking.call_count == 1


def test_tracer_configs():
    assert CALL_TRACER_CONFIG["tracerConfig"] == {"onlyTopCall": False, "withLog": True}
    assert PRESTATE_TRACER_CONFIG["tracerConfig"] == {"diffMode": True}


def test_debug_namespace_unavailable(mock_web3):
    mock_web3.manager.request_blocking.side_effect = ValueError({"code": -32601, "message": "method not found"})
    fetched = TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH)
    assert not fetched.debug_trace_available
    assert fetched.prestate_diff is None
    assert fetched.gas_used == 100000


def test_failed_transaction_status(mock_web3):
    mock_web3.eth.get_transaction_receipt.return_value = AttributeDict({"gasUsed": 30000, "status": 0})
    assert not TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH).success


def test_transaction_not_found(mock_web3):
    mock_web3.eth.get_transaction.side_effect = TransactionNotFound("not found")
    with pytest.raises(TransactionNotFoundError) as exc_info:
        TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH)
    assert exc_info.value.details["tx_hash"] == TX_HASH


def test_receipt_missing(mock_web3):
    mock_web3.eth.get_transaction_receipt.return_value = None
    with pytest.raises(TransactionNotFoundError) as exc_info:
        TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH)
    assert "pending" in exc_info.value.message


def test_invalid_hash_never_reaches_node(mock_web3):
    with pytest.raises(InvalidTransactionHashError):
        TransactionFetcher(RPC_URL, w3=mock_web3).fetch("0x1234")
    mock_web3.eth.get_transaction.assert_not_called()


def test_connection_error():
    w3 = MagicMock()
    type(w3.eth).block_number = PropertyMock(side_effect=ConnectionError("refused"))
    with pytest.raises(RPCConnectionError) as exc_info:
        TransactionFetcher(RPC_URL, w3=w3)
    assert exc_info.value.details["rpc_url"] == RPC_URL


def test_save_trace(tmp_path):
    trace = AttributeDict({"type": "CALL", "output": HexBytes("0x01"), "calls": [AttributeDict({"to": "0x01"})]})
    fetched = FetchedTransaction(TX_HASH, 1, 1, True, raw_trace=trace)
    path = tmp_path / "trace.json"
    fetched.save_trace(str(path))
    assert json.loads(path.read_text()) == {"type": "CALL", "output": "0x01", "calls": [{"to": "0x01"}]}


def test_require_trace(mock_web3):
    mock_web3.manager.request_blocking.side_effect = ValueError({"code": -32601, "message": "method not found"})
    with pytest.raises(DebugTraceUnavailableError) as exc_info:
        TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH, require_trace=True)
    assert exc_info.value.details["tx_hash"] == TX_HASH
    assert "callTracer: method not found" in exc_info.value.message


def test_missing_trace_logged(mock_web3, caplog):
    mock_web3.manager.request_blocking.side_effect = ValueError({"code": -32601, "message": "method not found"})
    with caplog.at_level(logging.WARNING, logger="txscope"):
        TransactionFetcher(RPC_URL, w3=mock_web3).fetch(TX_HASH, with_state_diff=False)
    assert f"debug_traceTransaction unavailable for {TX_HASH}" in caplog.text
