"""Core types and errors for the bridge gateway."""

from core.errors import (
    BridgeError,
    ValidationError,
    ArithmeticOverflowError,
    InsufficientFundingError,
    TransferFailure,
    AuthorizationError,
    ReentrancyError,
    DecodingError,
    QueueError,
    ConfigurationError,
)
from core.types import (
    Address,
    Identifier,
    OperationTag,
    CallContext,
    NativeDepositRecord,
    TokenDepositRecord,
    SettlementRecord,
    ZERO_ADDRESS,
    MAX_UINT256,
    normalize_address,
)

__all__ = [
    "BridgeError",
    "ValidationError",
    "ArithmeticOverflowError",
    "InsufficientFundingError",
    "TransferFailure",
    "AuthorizationError",
    "ReentrancyError",
    "DecodingError",
    "QueueError",
    "ConfigurationError",
    "Address",
    "Identifier",
    "OperationTag",
    "CallContext",
    "NativeDepositRecord",
    "TokenDepositRecord",
    "SettlementRecord",
    "ZERO_ADDRESS",
    "MAX_UINT256",
    "normalize_address",
]
