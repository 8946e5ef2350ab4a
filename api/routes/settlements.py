"""Settlement, balance and event history endpoints."""

import logging

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_caller, get_service, raise_for_bridge_error
from api.models import BalanceResponse, EventList, SettlementRequest, SettlementResponse
from bridge import BridgeService
from core.errors import BridgeError
from core.types import normalize_address

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["settlements"])


@router.post("/settlements", response_model=SettlementResponse)
async def settle(
    request: SettlementRequest,
    caller: str = Depends(get_caller),
    service: BridgeService = Depends(get_service)
):
    """Apply a settlement record; only the settlement authority may call this."""
    try:
        accepted = await service.settle(caller=caller, payload=request.payload_bytes())
        return SettlementResponse(accepted=accepted)
    except BridgeError as e:
        logger.error(f"Settlement from {caller[:10]}... failed: {e}")
        raise_for_bridge_error(e)


@router.get("/balances/{address}", response_model=BalanceResponse)
async def get_balance(
    address: str,
    service: BridgeService = Depends(get_service)
):
    """Native and token balances held by an address on the host ledger."""
    try:
        address = normalize_address(address)
    except BridgeError as e:
        raise_for_bridge_error(e)

    async with service.ledger.lock:
        tokens = {
            token.symbol: str(token.balance_of(address))
            for token in service.ledger.tokens()
        }
        native = str(service.ledger.native_balance(address))
    return BalanceResponse(address=address, native=native, tokens=tokens)


@router.get("/events", response_model=EventList)
async def get_events(
    limit: int = Query(100, ge=1, le=1000),
    service: BridgeService = Depends(get_service)
):
    """Recently published bridge events."""
    return EventList(events=await service.store.get_events(limit))


@router.get("/events/{address}", response_model=EventList)
async def get_events_for_address(
    address: str,
    limit: int = Query(100, ge=1, le=1000),
    service: BridgeService = Depends(get_service)
):
    """Events naming an address as token, sender or recipient."""
    return EventList(events=await service.store.get_events_for_address(address, limit))
