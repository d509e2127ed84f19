"""
Allowance endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import TokenSystem, get_token_system, get_acting_account, rejected
from .schemas import ApproveRequest, AllowanceChangeRequest
from ..errors import TokenLedgerError


router = APIRouter()


@router.get("/{owner}/{spender}")
async def get_allowance(owner: str, spender: str, system: TokenSystem = Depends(get_token_system)):
    """Get the amount spender may still move from owner"""
    return {
        "owner": owner,
        "spender": spender,
        "allowance": str(system.ledger.allowance(owner, spender))
    }


@router.post("")
async def approve(
    request: ApproveRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Set the spender's allowance to an absolute value"""
    try:
        system.ledger.approve(account, request.spender, int(request.value))
    except TokenLedgerError as e:
        raise rejected(e, "approve", account)
    return _allowance_response(system, account, request.spender)


@router.post("/increase")
async def increase_allowance(
    request: AllowanceChangeRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Raise the spender's allowance by delta"""
    try:
        system.ledger.increase_allowance(account, request.spender, int(request.delta))
    except TokenLedgerError as e:
        raise rejected(e, "increase_allowance", account)
    return _allowance_response(system, account, request.spender)


@router.post("/decrease")
async def decrease_allowance(
    request: AllowanceChangeRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Lower the spender's allowance by delta"""
    try:
        system.ledger.decrease_allowance(account, request.spender, int(request.delta))
    except TokenLedgerError as e:
        raise rejected(e, "decrease_allowance", account)
    return _allowance_response(system, account, request.spender)


def _allowance_response(system: TokenSystem, owner: str, spender: str) -> dict:
    return {
        "success": True,
        "owner": owner,
        "spender": spender,
        "allowance": str(system.ledger.allowance(owner, spender))
    }
