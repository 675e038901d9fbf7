"""
Event log and audit endpoints
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from .schemas import EventModel, EventListResponse, IntegrityResponse
from .system import TokenSystem, get_token_system, http_error
from ..errors import LedgerError
from ..events import LedgerEventType


router = APIRouter()


@router.get("/events", response_model=EventListResponse)
async def list_events(
    event_type: Optional[str] = Query(None, description="Transfer, Approval or Burn"),
    account: Optional[str] = Query(None, description="Only events referencing this address"),
    since: Optional[int] = Query(None, ge=0, description="First sequence number to include"),
    limit: Optional[int] = Query(None, ge=1, le=1000),
    system: TokenSystem = Depends(get_token_system)
):
    """List committed events in emission order"""
    try:
        kind = LedgerEventType(event_type) if event_type else None
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Unknown event type: {event_type}")

    try:
        records = system.ledger.get_events(event_type=kind, account=account, since=since, limit=limit)
    except LedgerError as e:
        raise http_error(e)

    events = [EventModel.from_record(record) for record in records]
    return EventListResponse(events=events, count=len(events))


@router.get("/events/verify", response_model=IntegrityResponse)
async def verify_events(system: TokenSystem = Depends(get_token_system)):
    """Verify the hash chain of the event log"""
    return IntegrityResponse(**system.event_log.verify_integrity())


@router.get("/supply/verify")
async def verify_supply(system: TokenSystem = Depends(get_token_system)):
    """Check that balances add up to the total supply"""
    report = system.ledger.verify_supply()
    report['total_supply'] = str(report['total_supply'])
    report['sum_of_balances'] = str(report['sum_of_balances'])
    return report
