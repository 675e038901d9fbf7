"""
Pydantic schemas for API requests and responses
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field

from ..address import Address
from ..amount import validate_amount
from ..errors import InvalidAmount
from ..event_log import EventRecord


def parse_value(value: str) -> int:
    """Parse a base-unit amount sent as a decimal string"""
    text = value.strip()
    if not (text.isascii() and text.isdigit()):
        raise InvalidAmount(f"Amount must be a non-negative integer string, got {value!r}")
    return validate_amount(int(text))


class TransferRequest(BaseModel):
    caller: str = Field(..., description="Account sending the tokens")
    to: str = Field(..., description="Recipient account")
    value: str = Field(..., description="Amount in base units as a decimal string")

    def to_args(self):
        return Address.parse(self.caller), Address.parse(self.to), parse_value(self.value)


class TransferFromRequest(BaseModel):
    caller: str = Field(..., description="Spender executing the delegated transfer")
    from_account: str = Field(..., alias="from", description="Account the tokens are taken from")
    to: str = Field(..., description="Recipient account")
    value: str = Field(..., description="Amount in base units as a decimal string")

    model_config = {"populate_by_name": True}

    def to_args(self):
        return (
            Address.parse(self.caller), Address.parse(self.from_account),
            Address.parse(self.to), parse_value(self.value)
        )


class ApproveRequest(BaseModel):
    caller: str = Field(..., description="Owner granting the allowance")
    spender: str = Field(..., description="Account allowed to spend")
    value: str = Field(..., description="Allowance in base units as a decimal string")

    def to_args(self):
        return Address.parse(self.caller), Address.parse(self.spender), parse_value(self.value)


class BurnRequest(BaseModel):
    caller: str = Field(..., description="Account whose tokens are destroyed")
    value: str = Field(..., description="Amount in base units as a decimal string")

    def to_args(self):
        return Address.parse(self.caller), parse_value(self.value)


class OperationResponse(BaseModel):
    success: bool


class TokenInfoResponse(BaseModel):
    name: str
    symbol: str
    decimals: int
    total_supply: str
    total_supply_formatted: str
    creator: Optional[str] = None


class BalanceResponse(BaseModel):
    account: str
    balance: str
    formatted: str


class AllowanceResponse(BaseModel):
    owner: str
    spender: str
    allowance: str


class EventModel(BaseModel):
    sequence: int
    event_id: str
    event_type: str
    data: Dict[str, str]
    created_at: str
    previous_hash: str
    current_hash: str

    @classmethod
    def from_record(cls, record: EventRecord) -> 'EventModel':
        return cls(
            sequence=record.sequence,
            event_id=record.event_id,
            event_type=record.event_type.value,
            data=record.data,
            created_at=record.created_at.isoformat(),
            previous_hash=record.previous_hash,
            current_hash=record.current_hash
        )


class EventListResponse(BaseModel):
    events: List[EventModel]
    count: int


class IntegrityResponse(BaseModel):
    valid: bool
    total_events: int
    hash_errors: List[Dict[str, Any]]
    chain_breaks: List[Dict[str, Any]]
    sequence_gaps: List[Dict[str, Any]]
