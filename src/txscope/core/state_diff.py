"""
State diff model and builder.

A StateDiff can be handed in by an external collaborator, in which case it
is passed through untouched, or built here from a prestateTracer diffMode
result plus the logs and value transfers of the flattened trace.
"""

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, FrozenSet, List, Mapping, Optional, Tuple

from eth_abi.abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex, keccak

from .raw_trace import parse_quantity
from .types import Address, CallType, ZERO_ADDRESS, is_zero_value
from txscope.utils.logging import get_logger

if TYPE_CHECKING:
    from .models import TraceAnalysis

logger = get_logger('state_diff')

ZERO_WORD = "0x" + "0" * 64

TRANSFER_TOPIC = encode_hex(keccak(text="Transfer(address,address,uint256)"))
TRANSFER_SINGLE_TOPIC = encode_hex(
    keccak(text="TransferSingle(address,address,address,uint256,uint256)")
)


class TokenType(str, Enum):
    ETH = "ETH"
    ERC20 = "ERC20"
    ERC721 = "ERC721"
    ERC1155 = "ERC1155"


@dataclass(frozen=True)
class StorageChange:
    contract_address: Address
    slot: str
    before: str
    after: str
    description: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractAddress": str(self.contract_address),
            "slot": self.slot,
            "before": self.before,
            "after": self.after,
            "description": self.description,
        }


@dataclass(frozen=True)
class BalanceChange:
    account: Address
    before: str
    after: str
    delta: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": str(self.account),
            "before": self.before,
            "after": self.after,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class TokenTransfer:
    token: Address
    from_addr: Address
    to_addr: Address
    amount: str
    token_type: TokenType

    def to_dict(self) -> Dict[str, Any]:
        return {
            "token": str(self.token),
            "from": str(self.from_addr),
            "to": str(self.to_addr),
            "amount": self.amount,
            "tokenType": self.token_type.value,
        }


@dataclass(frozen=True)
class StateDiff:
    storage_changes: Tuple[StorageChange, ...] = ()
    balance_changes: Tuple[BalanceChange, ...] = ()
    token_transfers: Tuple[TokenTransfer, ...] = ()

    @property
    def total_storage_changes(self) -> int:
        return len(self.storage_changes)

    @property
    def total_balance_changes(self) -> int:
        return len(self.balance_changes)

    @property
    def total_transfers(self) -> int:
        return len(self.token_transfers)

    def storage_contracts(self) -> FrozenSet[Address]:
        """Contracts with at least one recorded storage change."""
        return frozenset(c.contract_address for c in self.storage_changes)

    def filter_by_contract(self, contract: str) -> "StateDiff":
        """Storage changes of, and transfers of tokens issued by, one contract."""
        target = Address(contract)
        return StateDiff(
            storage_changes=tuple(c for c in self.storage_changes if c.contract_address == target),
            balance_changes=tuple(b for b in self.balance_changes if b.account == target),
            token_transfers=tuple(t for t in self.token_transfers if t.token == target),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "storageChanges": [c.to_dict() for c in self.storage_changes],
            "balanceChanges": [b.to_dict() for b in self.balance_changes],
            "tokenTransfers": [t.to_dict() for t in self.token_transfers],
            "totalStorageChanges": self.total_storage_changes,
            "totalBalanceChanges": self.total_balance_changes,
            "totalTransfers": self.total_transfers,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "StateDiff":
        """Create from the camelCase dictionary produced by to_dict()."""
        data = data or {}
        storage = [
            StorageChange(
                contract_address=Address(c.get("contractAddress")),
                slot=c.get("slot", ZERO_WORD),
                before=c.get("before", ZERO_WORD),
                after=c.get("after", ZERO_WORD),
                description=c.get("description") or describe_storage_change(
                    c.get("before", ZERO_WORD), c.get("after", ZERO_WORD)
                ),
            )
            for c in data.get("storageChanges", [])
        ]
        balances = [
            BalanceChange(
                account=Address(b.get("account")),
                before=str(b.get("before", "0")),
                after=str(b.get("after", "0")),
                delta=str(b.get("delta", "0")),
            )
            for b in data.get("balanceChanges", [])
        ]
        transfers = [
            TokenTransfer(
                token=Address(t.get("token")),
                from_addr=Address(t.get("from")),
                to_addr=Address(t.get("to")),
                amount=str(t.get("amount", "0")),
                token_type=TokenType(t.get("tokenType", "ETH")),
            )
            for t in data.get("tokenTransfers", [])
        ]
        return cls(tuple(storage), tuple(balances), tuple(transfers))


def _is_zero_word(value: Optional[str]) -> bool:
    if not value:
        return True
    try:
        return int(value, 16) == 0
    except ValueError:
        return False


def describe_storage_change(before: str, after: str) -> str:
    if _is_zero_word(before) and not _is_zero_word(after):
        return "Storage slot initialized"
    if not _is_zero_word(before) and _is_zero_word(after):
        return "Storage slot cleared"
    return "Storage slot updated"


def storage_change(contract: str, slot: str, before: str, after: str) -> StorageChange:
    return StorageChange(
        contract_address=Address(contract),
        slot=slot,
        before=before,
        after=after,
        description=describe_storage_change(before, after),
    )


def balance_change(account: str, before: int, after: int) -> BalanceChange:
    """Balances are wei; delta is signed."""
    return BalanceChange(
        account=Address(account),
        before=str(before),
        after=str(after),
        delta=str(after - before),
    )


def _diff_storage(pre: Mapping, post: Mapping) -> List[StorageChange]:
    changes = []
    for raw_addr in sorted(set(pre) | set(post), key=lambda a: str(a).lower()):
        pre_storage = (pre.get(raw_addr) or {}).get('storage') or {}
        post_storage = (post.get(raw_addr) or {}).get('storage') or {}
        for slot in sorted(set(pre_storage) | set(post_storage)):
            before = pre_storage.get(slot, ZERO_WORD)
            # diffMode omits slots that were zeroed from "post"
            after = post_storage.get(slot, ZERO_WORD)
            if before == after:
                continue
            changes.append(storage_change(raw_addr, slot, before, after))
    return changes


def _diff_balances(pre: Mapping, post: Mapping) -> List[BalanceChange]:
    changes = []
    for raw_addr in sorted(set(pre) | set(post), key=lambda a: str(a).lower()):
        pre_account = pre.get(raw_addr) or {}
        post_account = post.get(raw_addr) or {}
        if 'balance' not in pre_account and 'balance' not in post_account:
            continue
        before = parse_quantity(pre_account.get('balance'))
        after = parse_quantity(post_account['balance']) if 'balance' in post_account else before
        if before != after:
            changes.append(balance_change(raw_addr, before, after))
    return changes


def _topic_address(topic: str) -> Address:
    return Address("0x" + topic[-40:])


def _transfers_from_logs(trace: "TraceAnalysis") -> List[TokenTransfer]:
    transfers = []
    for log in trace.logs:
        if not log.topics:
            continue
        topic0 = log.topics[0]
        try:
            if topic0 == TRANSFER_TOPIC and len(log.topics) == 4:
                transfers.append(TokenTransfer(
                    token=log.address,
                    from_addr=_topic_address(log.topics[1]),
                    to_addr=_topic_address(log.topics[2]),
                    amount=str(int(log.topics[3], 16)),
                    token_type=TokenType.ERC721,
                ))
            elif topic0 == TRANSFER_TOPIC and len(log.topics) == 3:
                (amount,) = abi_decode(['uint256'], bytes.fromhex(log.data[2:]))
                transfers.append(TokenTransfer(
                    token=log.address,
                    from_addr=_topic_address(log.topics[1]),
                    to_addr=_topic_address(log.topics[2]),
                    amount=str(amount),
                    token_type=TokenType.ERC20,
                ))
            elif topic0 == TRANSFER_SINGLE_TOPIC and len(log.topics) == 4:
                _token_id, amount = abi_decode(['uint256', 'uint256'], bytes.fromhex(log.data[2:]))
                transfers.append(TokenTransfer(
                    token=log.address,
                    from_addr=_topic_address(log.topics[2]),
                    to_addr=_topic_address(log.topics[3]),
                    amount=str(amount),
                    token_type=TokenType.ERC1155,
                ))
        except (ValueError, TypeError, DecodingError) as e:
            logger.debug(f"Skipping undecodable transfer log from {log.address}: {e}")
    return transfers


def _eth_transfers(trace: "TraceAnalysis") -> List[TokenTransfer]:
    transfers = []
    for call in trace.calls:
        if call.call_type != CallType.CALL or not call.success or is_zero_value(call.value):
            continue
        amount = parse_quantity(call.value)
        if amount == 0:
            continue
        transfers.append(TokenTransfer(
            token=ZERO_ADDRESS,
            from_addr=call.from_addr,
            to_addr=call.to_addr,
            amount=str(amount),
            token_type=TokenType.ETH,
        ))
    return transfers


def build_state_diff(
    prestate_diff: Optional[Mapping[str, Any]] = None,
    trace: Optional["TraceAnalysis"] = None,
) -> StateDiff:
    """
    Build a StateDiff.

    Args:
        prestate_diff: Result of debug_traceTransaction with prestateTracer
                       in diffMode ({"pre": {...}, "post": {...}})
        trace: Flattened trace, source of ETH and token transfers

    Returns:
        StateDiff (empty when neither input is given)
    """
    storage: List[StorageChange] = []
    balances: List[BalanceChange] = []
    transfers: List[TokenTransfer] = []

    if prestate_diff:
        pre = prestate_diff.get('pre') or {}
        post = prestate_diff.get('post') or {}
        storage = _diff_storage(pre, post)
        balances = _diff_balances(pre, post)

    if trace is not None:
        transfers = _eth_transfers(trace) + _transfers_from_logs(trace)

    logger.debug(
        f"State diff: {len(storage)} storage, {len(balances)} balance, {len(transfers)} transfers"
    )
    return StateDiff(tuple(storage), tuple(balances), tuple(transfers))

