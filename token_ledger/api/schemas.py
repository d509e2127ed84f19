"""
Pydantic schemas for API requests and responses

Amounts travel as decimal strings: 256-bit values do not fit JSON numbers.
"""

from typing import Annotated, List, Optional

from pydantic import BaseModel, Field

from ..events import LedgerEvent
from ..ledger import TransferResult
from ..safe_math import UINT256_MAX


Amount = Annotated[str, Field(
    pattern=r"^[0-9]+$",
    max_length=len(str(UINT256_MAX)),
    description="Unsigned integer amount as decimal string"
)]


class TransferRequest(BaseModel):
    to: str
    value: Amount


class BatchTransferRequest(BaseModel):
    recipients: List[str]
    amounts: List[Amount]


class DelegatedTransferRequest(BaseModel):
    from_account: str
    to: str
    value: Amount


class ApproveRequest(BaseModel):
    spender: str
    value: Amount


class AllowanceChangeRequest(BaseModel):
    spender: str
    delta: Amount


class BurnRequest(BaseModel):
    amount: Amount


class DelegatedBurnRequest(BaseModel):
    account: str
    amount: Amount


class TransferResultModel(BaseModel):
    index: int
    recipient: str
    amount: str
    status: str
    tax: str
    net: str
    error: Optional[str] = None

    @classmethod
    def from_result(cls, result: TransferResult) -> 'TransferResultModel':
        return cls(
            index=result.index,
            recipient=result.recipient,
            amount=str(result.amount),
            status=result.status.value,
            tax=str(result.tax),
            net=str(result.net),
            error=type(result.error).__name__ if result.error else None
        )


def event_to_response(event: LedgerEvent) -> dict:
    data = event.to_dict()
    data.pop('previous_hash')
    return data
