"""
RPC fetching of transaction data for analysis.

Retrieves a transaction's gas figures, its callTracer call tree and,
optionally, a prestateTracer diff. Nodes without the debug namespace
still yield gas figures; the trace parts are then None.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from eth_utils import is_hexstr, to_hex
from hexbytes import HexBytes
from web3 import Web3
from web3.datastructures import AttributeDict
from web3.exceptions import TransactionNotFound

from txscope.utils.exceptions import (
    DebugTraceUnavailableError,
    InvalidTransactionHashError,
    RPCConnectionError,
    TransactionNotFoundError,
    format_exception_message,
)
from txscope.utils.logging import get_logger

logger = get_logger('fetcher')

CALL_TRACER_CONFIG = {
    "tracer": "callTracer",
    "tracerConfig": {"onlyTopCall": False, "withLog": True},
}
PRESTATE_TRACER_CONFIG = {
    "tracer": "prestateTracer",
    "tracerConfig": {"diffMode": True},
}


def validate_tx_hash(tx_hash: Any) -> str:
    """
    Check that tx_hash is 0x followed by 64 hex digits (any case).

    Returns:
        The hash in lower case

    Raises:
        InvalidTransactionHashError
    """
    if not isinstance(tx_hash, str) or len(tx_hash) != 66 or not tx_hash[:2].lower() == '0x':
        raise InvalidTransactionHashError(tx_hash)
    if not is_hexstr(tx_hash):
        raise InvalidTransactionHashError(tx_hash)
    return tx_hash.lower()


def _json_default(obj: Any) -> Any:
    if isinstance(obj, AttributeDict):
        return dict(obj)
    if isinstance(obj, (HexBytes, bytes)):
        return to_hex(obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


@dataclass(frozen=True)
class FetchedTransaction:
    """Everything the analyzer needs from the node for one transaction."""
    tx_hash: str
    gas_limit: int
    gas_used: int
    success: bool
    raw_trace: Optional[Mapping[str, Any]] = None
    prestate_diff: Optional[Mapping[str, Any]] = None

    @property
    def debug_trace_available(self) -> bool:
        return self.raw_trace is not None

    def save_trace(self, path: str) -> None:
        """Write the raw call trace as JSON."""
        with open(path, 'w') as f:
            json.dump(self.raw_trace, f, indent=2, default=_json_default)


class TransactionFetcher:
    """
    Fetches transactions and their debug traces over JSON-RPC.
    """

    def __init__(self, rpc_url: str = "http://localhost:8545", timeout: int = 30, w3: Optional[Web3] = None):
        self.rpc_url = rpc_url
        self.w3 = w3 or Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))

        try:
            # A direct RPC call is a more reliable connection check than is_connected()
            self.w3.eth.block_number
        except Exception as e:
            raise RPCConnectionError(
                f"Failed to connect to {rpc_url}: {format_exception_message(e)}",
                rpc_url=rpc_url,
            )

    def _debug_trace(self, tx_hash: str, config: Dict[str, Any]) -> Mapping[str, Any]:
        try:
            return self.w3.manager.request_blocking("debug_traceTransaction", [tx_hash, config])
        except Exception as e:
            raise DebugTraceUnavailableError(
                tx_hash,
                reason=f"{config['tracer']}: {format_exception_message(e)}",
                rpc_url=self.rpc_url,
            )

    def _optional_debug_trace(self, tx_hash: str, config: Dict[str, Any]) -> Optional[Mapping[str, Any]]:
        try:
            return self._debug_trace(tx_hash, config)
        except DebugTraceUnavailableError as e:
            logger.warning(e.message)
            return None

    def fetch(
        self,
        tx_hash: str,
        with_state_diff: bool = True,
        require_trace: bool = False,
    ) -> FetchedTransaction:
        """
        Fetch a transaction, its receipt and its traces.

        Args:
            tx_hash: Transaction hash
            with_state_diff: Also request a prestateTracer diff
            require_trace: Fail when the callTracer result is unavailable
                           instead of returning raw_trace=None

        Raises:
            InvalidTransactionHashError: If tx_hash is malformed
            TransactionNotFoundError: If the transaction or receipt is missing
            DebugTraceUnavailableError: If require_trace is set and the node
                                        cannot trace the transaction
        """
        tx_hash = validate_tx_hash(tx_hash)

        try:
            tx = self.w3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            raise TransactionNotFoundError(tx_hash, rpc_url=self.rpc_url)
        if tx is None:
            raise TransactionNotFoundError(tx_hash, rpc_url=self.rpc_url)

        try:
            receipt = self.w3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            receipt = None
        # Some RPC nodes return None instead of raising
        if receipt is None:
            raise TransactionNotFoundError(
                tx_hash, reason="receipt not available, transaction may be pending", rpc_url=self.rpc_url
            )

        logger.info(f"Fetched transaction {tx_hash}")
        if require_trace:
            raw_trace = self._debug_trace(tx_hash, CALL_TRACER_CONFIG)
        else:
            raw_trace = self._optional_debug_trace(tx_hash, CALL_TRACER_CONFIG)
        prestate_diff = self._optional_debug_trace(tx_hash, PRESTATE_TRACER_CONFIG) if with_state_diff else None

        return FetchedTransaction(
            tx_hash=tx_hash,
            gas_limit=int(tx['gas']),
            gas_used=int(receipt['gasUsed']),
            success=receipt.get('status', 1) == 1,
            raw_trace=raw_trace,
            prestate_diff=prestate_diff,
        )
