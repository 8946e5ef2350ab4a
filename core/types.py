"""Core types for the bridge gateway."""

from dataclasses import dataclass
from enum import IntEnum
from typing import NewType, Tuple, Optional

from eth_utils import is_address, to_checksum_address

from core.errors import ValidationError

# Type aliases
Address = NewType("Address", str)  # EIP-55 checksummed hex address
Identifier = NewType("Identifier", str)  # 0x-prefixed queue message id

ZERO_ADDRESS = Address("0x0000000000000000000000000000000000000000")
MAX_UINT256 = 2**256 - 1


class OperationTag(IntEnum):
    """Transfer kinds carried in the leading word of every record.

    Values are part of the wire format: add new members, never renumber.
    """
    NATIVE_COIN = 0
    FUNGIBLE_TOKEN = 1


def normalize_address(value: str) -> Address:
    """Checksum an address, raising ValidationError if it is not one."""
    if not isinstance(value, str) or not is_address(value):
        raise ValidationError(f"Invalid address: {value!r}")
    return Address(to_checksum_address(value))


@dataclass(frozen=True)
class CallContext:
    """Authenticated caller of a gateway operation.

    `value` is the native coin attached to the call.
    """
    caller: Address
    value: int = 0

    def __post_init__(self):
        object.__setattr__(self, "caller", normalize_address(self.caller))
        if self.value < 0:
            raise ValidationError("Attached value cannot be negative")


@dataclass(frozen=True)
class NativeDepositRecord:
    """Deposit-bound record for the native coin."""
    recipients: Tuple[Address, ...]
    amounts: Tuple[int, ...]
    aux_data: bytes

    tag = OperationTag.NATIVE_COIN


@dataclass(frozen=True)
class TokenDepositRecord:
    """Deposit-bound record for a fungible token."""
    token: Address
    sender: Address
    recipients: Tuple[Address, ...]
    amounts: Tuple[int, ...]
    aux_data: bytes

    tag = OperationTag.FUNGIBLE_TOKEN


@dataclass(frozen=True)
class SettlementRecord:
    """Flattened single-recipient instruction produced by the settlement authority.

    `tag` is kept as a raw int so that unknown kinds survive decoding.
    """
    tag: int
    token: Optional[Address]
    recipient: Address
    amount: int

    @property
    def operation(self) -> Optional[OperationTag]:
        try:
            return OperationTag(self.tag)
        except ValueError:
            return None
