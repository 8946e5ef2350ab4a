"""Deposit-related API endpoints."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_caller, get_service, raise_for_bridge_error
from api.models import (
    DepositResponse,
    NativeDepositRequest,
    TokenDepositRequest,
)
from bridge import BridgeService
from core.errors import BridgeError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/deposits", tags=["deposits"])


@router.post("/native", response_model=DepositResponse)
async def deposit_native(
    request: NativeDepositRequest,
    caller: str = Depends(get_caller),
    service: BridgeService = Depends(get_service)
):
    """Deposit native coin for L2 recipients.

    `value` is the coin attached to the call, at least the sum of `amounts`.
    """
    try:
        message_id = await service.deposit_native(
            caller=caller,
            value=request.value,
            recipients=request.recipients,
            amounts=request.amounts,
            aux_data=request.aux_bytes(),
        )
        return DepositResponse(message_id=message_id)
    except BridgeError as e:
        logger.error(f"Native deposit from {caller[:10]}... failed: {e}")
        raise_for_bridge_error(e)


@router.post("/token", response_model=DepositResponse)
async def deposit_token(
    request: TokenDepositRequest,
    caller: str = Depends(get_caller),
    service: BridgeService = Depends(get_service)
):
    """Deposit tokens pulled from `sender`, who must have approved the bridge."""
    try:
        message_id = await service.deposit_token(
            caller=caller,
            token=request.token,
            sender=request.sender,
            recipients=request.recipients,
            amounts=request.amounts,
            aux_data=request.aux_bytes(),
        )
        return DepositResponse(message_id=message_id)
    except BridgeError as e:
        logger.error(f"Token deposit from {caller[:10]}... failed: {e}")
        raise_for_bridge_error(e)


@router.get("/{message_id}")
async def get_deposit(
    message_id: str,
    service: BridgeService = Depends(get_service)
):
    """Deposit event recorded for a queue identifier.

    Frontend polls this after submitting a deposit.
    """
    event = await service.store.get_event_by_message_id(message_id)
    if event is None:
        raise HTTPException(status_code=404, detail="Deposit not found")
    return event
