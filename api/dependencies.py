"""Shared dependencies for API routes."""

from typing import NoReturn, Optional

from fastapi import Header, HTTPException

from bridge import BridgeService
from core.errors import (
    ArithmeticOverflowError,
    AuthorizationError,
    BridgeError,
    DecodingError,
    InsufficientFundingError,
    QueueError,
    ReentrancyError,
    TransferFailure,
    ValidationError,
)

# Global service instance
_service: Optional[BridgeService] = None

ERROR_STATUS = {
    AuthorizationError: 403,
    ValidationError: 400,
    DecodingError: 400,
    ArithmeticOverflowError: 422,
    InsufficientFundingError: 422,
    TransferFailure: 422,
    ReentrancyError: 409,
    QueueError: 502,
}


def set_service(service: Optional[BridgeService]) -> None:
    """Set the global service instance."""
    global _service
    _service = service


def get_service() -> BridgeService:
    """Get the service instance dependency."""
    if not _service:
        raise HTTPException(status_code=503, detail="Bridge not initialized")
    return _service


def get_caller(x_caller_address: str = Header(...)) -> str:
    """Caller identity, set by the authenticating proxy in front of the API."""
    return x_caller_address


def raise_for_bridge_error(error: BridgeError) -> NoReturn:
    """Translate a bridge error into an HTTPException."""
    for error_type, status in ERROR_STATUS.items():
        if isinstance(error, error_type):
            raise HTTPException(status_code=status, detail=str(error)) from error
    raise HTTPException(status_code=500, detail=str(error)) from error
