"""
Burn endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import TokenSystem, get_token_system, get_acting_account, rejected
from .schemas import BurnRequest, DelegatedBurnRequest
from ..errors import TokenLedgerError


router = APIRouter()


@router.post("")
async def burn(
    request: BurnRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Burn tokens from the acting account"""
    amount = int(request.amount)
    try:
        system.ledger.burn(account, amount)
    except TokenLedgerError as e:
        raise rejected(e, "burn", account)
    return {
        "success": True,
        "account": account,
        "amount": str(amount),
        "total_supply": str(system.ledger.total_supply())
    }


@router.post("/delegated")
async def delegated_burn(
    request: DelegatedBurnRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Burn another account's tokens using the acting account's allowance"""
    amount = int(request.amount)
    try:
        system.ledger.burn_from(account, request.account, amount)
    except TokenLedgerError as e:
        raise rejected(e, "burn_from", account)
    return {
        "success": True,
        "account": request.account,
        "spender": account,
        "amount": str(amount),
        "total_supply": str(system.ledger.total_supply())
    }
