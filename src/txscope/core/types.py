"""
Value types shared by the analysis stages.

Addresses and selectors are compared case-insensitively, so both are
stored in canonical lower-case form.
"""

from enum import Enum
from typing import Any, Optional

from eth_utils import is_address, to_checksum_address

from txscope.utils.exceptions import UnknownCallTypeError
from txscope.utils.logging import get_logger

logger = get_logger('types')


class Address(str):
    """Ethereum address in canonical lower-case form."""

    def __new__(cls, value: Any = None):
        if value is None or value == '':
            value = ZERO_ADDRESS_HEX
        return super().__new__(cls, str(value).strip().lower())

    @property
    def is_zero(self) -> bool:
        return self == ZERO_ADDRESS_HEX

    @property
    def checksum(self) -> str:
        """EIP-55 form, or the canonical form if this is not a valid address."""
        if is_address(str(self)):
            return to_checksum_address(str(self))
        return str(self)


ZERO_ADDRESS_HEX = "0x0000000000000000000000000000000000000000"
ZERO_ADDRESS = Address(ZERO_ADDRESS_HEX)


class Selector(str):
    """4-byte function selector, lower-case with 0x prefix."""

    def __new__(cls, value: Any = None):
        if value is None or value == '':
            value = EMPTY_SELECTOR_HEX
        return super().__new__(cls, str(value).strip().lower())

    @classmethod
    def from_input(cls, data: Optional[str]) -> "Selector":
        """First 4 bytes of call data, or the empty selector for short input."""
        if data and len(data) >= 10:
            return cls(data[:10])
        return EMPTY_SELECTOR

    @property
    def is_empty(self) -> bool:
        return self == EMPTY_SELECTOR_HEX


EMPTY_SELECTOR_HEX = "0x00000000"
EMPTY_SELECTOR = Selector(EMPTY_SELECTOR_HEX)


class CallType(str, Enum):
    """EVM call mechanism."""
    CALL = "CALL"
    DELEGATECALL = "DELEGATECALL"
    STATICCALL = "STATICCALL"
    CREATE = "CREATE"
    CREATE2 = "CREATE2"

    @classmethod
    def parse(cls, raw: Optional[str], strict: bool = False) -> "CallType":
        """
        Normalize a tracer call type.

        Matching is case-insensitive. Missing values are CALL. Other
        unrecognized values are CALL too unless strict is set, in which
        case UnknownCallTypeError is raised.
        """
        if raw is None or str(raw).strip() == '':
            return cls.CALL
        name = str(raw).strip().upper()
        if name in cls.__members__:
            return cls[name]
        if strict:
            raise UnknownCallTypeError(str(raw))
        logger.warning(f"Unknown call type '{raw}', treating as CALL")
        return cls.CALL


class Severity(str, Enum):
    """Finding severity, lowest first."""
    INFO = "INFO"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


def is_zero_value(value: str) -> bool:
    """
    Textual zero check for call values.

    Only the literal strings "0" and "0x0" count as zero; "00" or "0x00"
    are treated as value-bearing.
    """
    return value in ("0", "0x0")
