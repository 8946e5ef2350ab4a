"""Pydantic models for API requests and responses."""

from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


def _parse_hex(value: str) -> bytes:
    text = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        return bytes.fromhex(text)
    except ValueError as e:
        raise ValueError(f"Invalid hex string: {e}") from e


class NativeDepositRequest(BaseModel):
    """Deposit of native coin attached as `value`."""
    recipients: List[str]
    amounts: List[int]
    value: int = Field(ge=0)
    aux_data: str = "0x"

    @field_validator("aux_data")
    @classmethod
    def check_aux_data(cls, v: str) -> str:
        _parse_hex(v)
        return v

    def aux_bytes(self) -> bytes:
        return _parse_hex(self.aux_data)


class TokenDepositRequest(BaseModel):
    """Deposit pulled from `sender` on the `token` ledger."""
    token: str
    sender: str
    recipients: List[str]
    amounts: List[int]
    aux_data: str = "0x"

    @field_validator("aux_data")
    @classmethod
    def check_aux_data(cls, v: str) -> str:
        _parse_hex(v)
        return v

    def aux_bytes(self) -> bytes:
        return _parse_hex(self.aux_data)


class DepositResponse(BaseModel):
    """Queue identifier of an accepted deposit."""
    message_id: str


class SettlementRequest(BaseModel):
    """Hex-encoded settlement record."""
    payload: str

    @field_validator("payload")
    @classmethod
    def check_payload(cls, v: str) -> str:
        _parse_hex(v)
        return v

    def payload_bytes(self) -> bytes:
        return _parse_hex(self.payload)


class SettlementResponse(BaseModel):
    """False means the operation tag was not recognized."""
    accepted: bool


class BalanceResponse(BaseModel):
    """Native and token balances of an address."""
    address: str
    native: str
    tokens: Dict[str, str]


class EventList(BaseModel):
    """Published bridge events, most recent first."""
    events: List[Dict[str, Any]]


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    service: str
    version: str
