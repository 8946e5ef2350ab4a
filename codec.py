"""ABI encoding of bridge operation records.

Every record starts with a 32-byte word holding the operation tag. The tag
alone selects the layout of the remaining fields, so L2 consumers never
need an external schema.
"""

from typing import Union

from eth_abi import encode, decode
from eth_abi.exceptions import DecodingError as AbiDecodingError
from eth_utils import to_checksum_address

from core.errors import DecodingError
from core.types import (
    Address,
    OperationTag,
    NativeDepositRecord,
    TokenDepositRecord,
    SettlementRecord,
    ZERO_ADDRESS,
)


WORD_SIZE = 32

DEPOSIT_LAYOUTS = {
    OperationTag.NATIVE_COIN: ["uint8", "address[]", "uint256[]", "bytes"],
    OperationTag.FUNGIBLE_TOKEN: [
        "uint8", "address", "address", "address[]", "uint256[]", "bytes"
    ],
}

# The tag word is read as uint256 so that unknown kinds still decode
SETTLEMENT_LAYOUT = ["uint256", "address", "address", "uint256"]

DepositRecord = Union[NativeDepositRecord, TokenDepositRecord]


def read_tag(data: bytes) -> int:
    """Read the leading operation tag word.

    Raises:
        DecodingError: If the data is shorter than one word
    """
    if len(data) < WORD_SIZE:
        raise DecodingError(f"Record too short: {len(data)} bytes")
    return int.from_bytes(data[:WORD_SIZE], "big")


def encode_deposit_record(record: DepositRecord) -> bytes:
    """Encode a deposit-bound record for the ingestion queue."""
    if isinstance(record, NativeDepositRecord):
        values = [
            int(record.tag),
            list(record.recipients),
            list(record.amounts),
            record.aux_data,
        ]
    elif isinstance(record, TokenDepositRecord):
        values = [
            int(record.tag),
            record.token,
            record.sender,
            list(record.recipients),
            list(record.amounts),
            record.aux_data,
        ]
    else:
        raise TypeError(f"Not a deposit record: {type(record).__name__}")

    return encode(DEPOSIT_LAYOUTS[record.tag], values)


def decode_deposit_record(data: bytes) -> DepositRecord:
    """Reference decoder for deposit-bound records, as L2 would run it.

    Raises:
        DecodingError: If the tag is unknown or the body is malformed
    """
    tag = read_tag(data)
    if tag not in DEPOSIT_LAYOUTS:
        raise DecodingError(f"Unknown deposit operation tag {tag}")
    operation = OperationTag(tag)

    try:
        fields = decode(DEPOSIT_LAYOUTS[operation], data)
    except AbiDecodingError as e:
        raise DecodingError(f"Malformed {operation.name} record: {e}") from e

    if operation is OperationTag.NATIVE_COIN:
        _, recipients, amounts, aux_data = fields
        return NativeDepositRecord(
            recipients=tuple(_checksum(r) for r in recipients),
            amounts=tuple(amounts),
            aux_data=aux_data,
        )

    _, token, sender, recipients, amounts, aux_data = fields
    return TokenDepositRecord(
        token=_checksum(token),
        sender=_checksum(sender),
        recipients=tuple(_checksum(r) for r in recipients),
        amounts=tuple(amounts),
        aux_data=aux_data,
    )


def encode_settlement_record(record: SettlementRecord) -> bytes:
    """Encode a settlement instruction (the authority side of the contract)."""
    return encode(
        SETTLEMENT_LAYOUT,
        [record.tag, record.token or ZERO_ADDRESS, record.recipient, record.amount],
    )


def decode_settlement_record(data: bytes) -> SettlementRecord:
    """Decode a settlement instruction.

    The zero token address decodes to None.

    Raises:
        DecodingError: If the payload does not match the settlement layout
    """
    try:
        tag, token, recipient, amount = decode(SETTLEMENT_LAYOUT, data)
    except AbiDecodingError as e:
        raise DecodingError(f"Malformed settlement record: {e}") from e

    token = _checksum(token)
    return SettlementRecord(
        tag=tag,
        token=None if token == ZERO_ADDRESS else token,
        recipient=_checksum(recipient),
        amount=amount,
    )


def _checksum(value: str) -> Address:
    return Address(to_checksum_address(value))
