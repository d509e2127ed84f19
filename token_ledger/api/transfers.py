"""
Transfer endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import TokenSystem, get_token_system, get_acting_account, rejected
from .schemas import (
    TransferRequest, BatchTransferRequest, DelegatedTransferRequest, TransferResultModel
)
from ..errors import TokenLedgerError


router = APIRouter()


@router.post("")
async def transfer(
    request: TransferRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Transfer from the acting account, burning the transfer tax"""
    value = int(request.value)
    try:
        system.ledger.transfer(account, request.to, value)
        tax = system.ledger.half_percent_tax(value)
    except TokenLedgerError as e:
        raise rejected(e, "transfer", account)

    return {
        "success": True,
        "from": account,
        "to": request.to,
        "value": str(value),
        "tax": str(tax),
        "net": str(value - tax)
    }


@router.post("/batch")
async def batch_transfer(
    request: BatchTransferRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Transfer to several recipients; stops at the first failing entry"""
    try:
        results = system.ledger.multi_transfer(
            account, request.recipients, [int(a) for a in request.amounts]
        )
    except TokenLedgerError as e:
        raise rejected(e, "multi_transfer", account)

    return {
        "success": all(r.ok for r in results),
        "results": [TransferResultModel.from_result(r).model_dump() for r in results]
    }


@router.post("/delegated")
async def delegated_transfer(
    request: DelegatedTransferRequest,
    account: str = Depends(get_acting_account),
    system: TokenSystem = Depends(get_token_system)
):
    """Transfer from another account using the acting account's allowance"""
    value = int(request.value)
    try:
        system.ledger.transfer_from(account, request.from_account, request.to, value)
        tax = system.ledger.half_percent_tax(value)
    except TokenLedgerError as e:
        raise rejected(e, "transfer_from", account)

    return {
        "success": True,
        "from": request.from_account,
        "to": request.to,
        "spender": account,
        "value": str(value),
        "tax": str(tax),
        "net": str(value - tax),
        "remaining_allowance": str(system.ledger.allowance(request.from_account, account))
    }
