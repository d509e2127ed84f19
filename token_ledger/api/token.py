"""
Token, balance and event query endpoints
"""

from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query

from .dependencies import TokenSystem, get_token_system
from .schemas import event_to_response
from ..errors import TokenLedgerError
from ..events import TokenEvent


router = APIRouter()


@router.get("/token")
async def get_token(system: TokenSystem = Depends(get_token_system)):
    """Get token metadata and supply"""
    ledger = system.ledger
    return {
        "name": ledger.name,
        "symbol": ledger.symbol,
        "decimals": ledger.decimals,
        "total_supply": str(ledger.total_supply()),
        "base_percent": ledger.base_percent
    }


@router.get("/token/tax/{value}")
async def preview_tax(value: int, system: TokenSystem = Depends(get_token_system)):
    """Preview the burn a transfer of value would incur"""
    try:
        tax = system.ledger.half_percent_tax(value)
    except TokenLedgerError as e:
        raise HTTPException(status_code=400, detail={"error": type(e).__name__, "message": str(e)})
    return {"value": str(value), "tax": str(tax), "net": str(value - tax)}


@router.get("/accounts/{account}/balance")
async def get_balance(account: str, system: TokenSystem = Depends(get_token_system)):
    """Get an account balance (zero for unseen accounts)"""
    return {"account": account, "balance": str(system.ledger.balance_of(account))}


@router.get("/events")
async def get_events(
    limit: Optional[int] = Query(None, ge=1),
    account: Optional[str] = None,
    event_type: Optional[TokenEvent] = None,
    system: TokenSystem = Depends(get_token_system)
):
    """Get emitted events in order, optionally filtered by party account and event type"""
    if account:
        events = system.event_log.get_events_for_account(account)
    else:
        events = system.event_log.get_events()
    if event_type:
        events = [e for e in events if e.event_type == event_type]
    if limit:
        events = events[-limit:]
    return {
        "total": system.event_log.count_events(),
        "events": [event_to_response(e) for e in events]
    }


@router.get("/events/verify")
async def verify_events(system: TokenSystem = Depends(get_token_system)):
    """Verify the event hash chain and the supply invariant"""
    result = system.event_log.verify_integrity()
    result["supply_consistent"] = system.ledger.verify_supply_invariant()
    result["latest_hash"] = system.event_log.get_latest_hash()
    return result
