"""
Deflationary Ledger Engine

Owns balance, allowance and total-supply state and implements every state
transition on it. Each transfer burns a tax derived from the transferred
amount, so total supply only ever shrinks after issuance.

Every mutation stages its writes first and commits them in one storage
transaction together with the events it emits; any failure before the commit
leaves the ledger untouched. The supply invariant holds after every commit:

    total_supply() == sum of all balances
"""

import json
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple, Any

from .errors import (
    TokenLedgerError, InsufficientBalance, InsufficientAllowance,
    InvalidRecipient, InvalidAmount, IndexMismatch
)
from .events import (
    EventDispatcher, LedgerEvent, TokenEvent, approval_args, transfer_args
)
from .event_log import EventLog
from .logging_config import get_logger, log_action
from .metadata import TokenMetadata
from .safe_math import add, sub, mul, div, ceil, require_uint
from .storage import StorageInterface


NULL_ACCOUNT = "0x0000000000000000000000000000000000000000"

BASE_PERCENT = 100
# Fixed divisor giving a ~0.5% burn with BASE_PERCENT; never derived from live supply
TAX_DIVISOR = 10450

BALANCES_TABLE = "balances"
ALLOWANCES_TABLE = "allowances"
STATE_TABLE = "ledger_state"
SUPPLY_RECORD_ID = "total_supply"
TOKEN_RECORD_ID = "token"


class TransferStatus(Enum):
    """Outcome of one entry in a batch transfer"""
    COMMITTED = "committed"
    FAILED = "failed"
    SKIPPED = "skipped"  # not attempted because an earlier entry failed


@dataclass(frozen=True)
class TransferResult:
    """Per-entry result of multi_transfer"""
    index: int
    recipient: str
    amount: Any
    status: TransferStatus
    tax: int = 0
    net: int = 0
    error: Optional[TokenLedgerError] = None

    @property
    def ok(self) -> bool:
        return self.status == TransferStatus.COMMITTED


def _allowance_key(owner: str, spender: str) -> str:
    return json.dumps([owner, spender])


class _PendingWrites:
    """
    Writes staged by a single mutation

    Reads fall through to committed ledger state for anything not yet staged,
    so a sequence of staged steps sees its own earlier writes.
    """

    def __init__(self, ledger: 'TokenLedger'):
        self._ledger = ledger
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        self.total_supply: Optional[int] = None
        self.records: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self.events: List[Tuple[TokenEvent, Dict[str, Any]]] = []

    def balance(self, account: str) -> int:
        if account in self.balances:
            return self.balances[account]
        return self._ledger.balance_of(account)

    def allowance(self, owner: str, spender: str) -> int:
        key = (owner, spender)
        if key in self.allowances:
            return self.allowances[key]
        return self._ledger.allowance(owner, spender)

    def supply(self) -> int:
        if self.total_supply is not None:
            return self.total_supply
        return self._ledger.total_supply()

    def set_balance(self, account: str, amount: int) -> None:
        self.balances[account] = amount

    def set_allowance(self, owner: str, spender: str, amount: int) -> None:
        self.allowances[(owner, spender)] = amount

    def set_supply(self, amount: int) -> None:
        self.total_supply = amount

    def emit(self, event_type: TokenEvent, args: Dict[str, Any]) -> None:
        self.events.append((event_type, args))


class TokenLedger:
    """
    Token ledger with a deflationary transfer tax

    Constructing a ledger over empty storage performs the one-time issuance
    of initial_supply to issuer. Constructing over storage that already holds
    a ledger reopens it; issuance arguments are then ignored and the stored
    base percent applies.
    """

    def __init__(
        self,
        storage: StorageInterface,
        issuer: Optional[str] = None,
        initial_supply: Optional[int] = None,
        metadata: Optional[TokenMetadata] = None,
        base_percent: int = BASE_PERCENT,
        dispatcher: Optional[EventDispatcher] = None,
        event_log: Optional[EventLog] = None
    ):
        self.storage = storage
        self.dispatcher = dispatcher or EventDispatcher()
        self.event_log = event_log or EventLog(storage)
        self.logger = get_logger("token_ledger.ledger")
        self._lock = threading.RLock()

        state = self.storage.load(STATE_TABLE, TOKEN_RECORD_ID)
        if state is None:
            if issuer is None or initial_supply is None:
                raise ValueError("issuer and initial_supply are required to issue a new ledger")
            self._issue(issuer, initial_supply, metadata or TokenMetadata(), base_percent)
        else:
            self._base_percent = int(state["base_percent"])
            self.metadata = TokenMetadata.from_dict(state["metadata"])
            self.logger.info(f"Reopened ledger {self.metadata.symbol} with total supply {self.total_supply()}")

    # ------------------------------------------------------------------
    # Issuance
    # ------------------------------------------------------------------

    def _issue(self, issuer: str, initial_supply: int, metadata: TokenMetadata, base_percent: int) -> None:
        """Set the fixed supply and credit it to the issuer"""
        require_uint(initial_supply, "initial_supply")
        require_uint(base_percent, "base_percent")
        if base_percent == 0:
            raise InvalidAmount("base_percent must be non-zero")

        self._base_percent = base_percent
        self.metadata = metadata

        with self._lock:
            pending = _PendingWrites(self)
            pending.set_supply(initial_supply)
            self._mint(pending, issuer, initial_supply)
            pending.records[(STATE_TABLE, TOKEN_RECORD_ID)] = {
                "base_percent": base_percent,
                "metadata": metadata.to_dict(),
                "issuer": issuer,
            }
            self._commit(pending, "issue", issuer, extra={"initial_supply": str(initial_supply)})

    def _mint(self, pending: _PendingWrites, account: str, amount: int) -> None:
        if amount == 0:
            raise InvalidAmount("Mint amount must be non-zero")
        if account == NULL_ACCOUNT:
            raise InvalidRecipient("Cannot mint to the null account")
        pending.set_balance(account, add(pending.balance(account), amount))
        pending.emit(TokenEvent.TRANSFER, transfer_args(NULL_ACCOUNT, account, amount))

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def symbol(self) -> str:
        return self.metadata.symbol

    @property
    def decimals(self) -> int:
        return self.metadata.decimals

    @property
    def base_percent(self) -> int:
        return self._base_percent

    def total_supply(self) -> int:
        record = self.storage.load(STATE_TABLE, SUPPLY_RECORD_ID)
        return int(record["amount"]) if record else 0

    def balance_of(self, account: str) -> int:
        record = self.storage.load(BALANCES_TABLE, account)
        return int(record["amount"]) if record else 0

    def allowance(self, owner: str, spender: str) -> int:
        record = self.storage.load(ALLOWANCES_TABLE, _allowance_key(owner, spender))
        return int(record["amount"]) if record else 0

    def balances(self) -> Dict[str, int]:
        """All accounts ever referenced by a balance write"""
        return {r["account"]: int(r["amount"]) for r in self.storage.load_all(BALANCES_TABLE)}

    def events(self, limit: Optional[int] = None) -> List[LedgerEvent]:
        return self.event_log.get_events(limit)

    def verify_supply_invariant(self) -> bool:
        """Check that stored balances add up to total supply"""
        return sum(self.balances().values()) == self.total_supply()

    def half_percent_tax(self, value: int) -> int:
        """
        Amount burned when value is transferred

        value is first rounded up to a multiple of base_percent and then
        scaled by base_percent / TAX_DIVISOR with truncation, so small
        transfers can burn nothing.

        With base_percent=100: 1 -> 0, 50 -> 0, 1000 -> 9.
        """
        require_uint(value, "value")
        round_value = ceil(value, self._base_percent)
        return div(mul(round_value, self._base_percent), TAX_DIVISOR)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer(self, caller: str, to: str, value: int) -> bool:
        """
        Move value from caller to to, burning the transfer tax

        The sender is debited the full value; the recipient receives
        value - tax and total supply shrinks by tax.

        Raises:
            InsufficientBalance: value exceeds the caller's balance
            InvalidRecipient: to is the null account
        """
        self._transfer(caller, to, value)
        return True

    def _transfer(self, caller: str, to: str, value: int) -> Tuple[int, int]:
        require_uint(value, "value")
        with self._lock:
            pending = _PendingWrites(self)
            tax, net = self._move_taxed(pending, caller, to, value)
            self._commit(
                pending, "transfer", caller, resource=f"account:{to}",
                extra={"value": str(value), "tax": str(tax), "net": str(net)}
            )
        return tax, net

    def multi_transfer(self, caller: str, recipients: Sequence[str], amounts: Sequence[int]) -> List[TransferResult]:
        """
        Apply one transfer per (recipient, amount) pair, in order

        Each entry commits on its own. The first failing entry stops the
        batch: it is reported FAILED, later entries are reported SKIPPED and
        earlier entries stay committed.

        Raises:
            IndexMismatch: recipients and amounts differ in length
        """
        if len(recipients) != len(amounts):
            raise IndexMismatch(
                f"{len(recipients)} recipients but {len(amounts)} amounts"
            )

        results: List[TransferResult] = []
        failed = False
        for index, (recipient, amount) in enumerate(zip(recipients, amounts)):
            if failed:
                results.append(TransferResult(index, recipient, amount, TransferStatus.SKIPPED))
                continue
            try:
                tax, net = self._transfer(caller, recipient, amount)
            except TokenLedgerError as e:
                failed = True
                log_action(
                    self.logger, "warning", f"Batch transfer stopped at entry {index}: {e}",
                    user_id=caller, action="multi_transfer", resource=f"account:{recipient}",
                    extra={"index": index, "error": type(e).__name__}
                )
                results.append(TransferResult(index, recipient, amount, TransferStatus.FAILED, error=e))
                continue
            results.append(TransferResult(index, recipient, amount, TransferStatus.COMMITTED, tax=tax, net=net))

        return results

    def transfer_from(self, spender: str, from_account: str, to: str, value: int) -> bool:
        """
        Move value out of from_account on the spender's allowance

        The allowance is debited the gross value even though only
        value - tax reaches the recipient.

        Raises:
            InsufficientBalance: value exceeds from_account's balance
            InsufficientAllowance: value exceeds the spender's allowance
            InvalidRecipient: to is the null account
        """
        require_uint(value, "value")
        with self._lock:
            pending = _PendingWrites(self)

            balance = pending.balance(from_account)
            if value > balance:
                raise InsufficientBalance(f"Transfer of {value} exceeds balance {balance} of {from_account}")
            allowed = pending.allowance(from_account, spender)
            if value > allowed:
                raise InsufficientAllowance(
                    f"Transfer of {value} exceeds allowance {allowed} granted by {from_account} to {spender}"
                )

            tax, net = self._move_taxed(pending, from_account, to, value)
            pending.set_allowance(from_account, spender, sub(allowed, value))

            self._commit(
                pending, "transfer_from", spender, resource=f"account:{from_account}",
                extra={"to": to, "value": str(value), "tax": str(tax), "net": str(net)}
            )
        return True

    def _move_taxed(self, pending: _PendingWrites, source: str, to: str, value: int) -> Tuple[int, int]:
        balance = pending.balance(source)
        if value > balance:
            raise InsufficientBalance(f"Transfer of {value} exceeds balance {balance} of {source}")
        if to == NULL_ACCOUNT:
            raise InvalidRecipient("Cannot transfer to the null account")

        tax = self.half_percent_tax(value)
        net = sub(value, tax)

        pending.set_balance(source, sub(balance, value))
        # Read after the debit so a self-transfer sees the debited balance
        pending.set_balance(to, add(pending.balance(to), net))
        pending.set_supply(sub(pending.supply(), tax))

        pending.emit(TokenEvent.TRANSFER, transfer_args(source, to, net))
        pending.emit(TokenEvent.TRANSFER, transfer_args(source, NULL_ACCOUNT, tax))
        return tax, net

    # ------------------------------------------------------------------
    # Allowances
    # ------------------------------------------------------------------

    def approve(self, caller: str, spender: str, value: int) -> bool:
        """Set the spender's allowance over caller's balance to exactly value"""
        require_uint(value, "value")
        with self._lock:
            pending = _PendingWrites(self)
            self._set_allowance(pending, caller, spender, value)
            self._commit(pending, "approve", caller, resource=f"allowance:{spender}",
                         extra={"value": str(value)})
        return True

    def increase_allowance(self, caller: str, spender: str, delta: int) -> bool:
        """Raise the allowance by delta; fails with ArithmeticOverflow past uint256"""
        require_uint(delta, "delta")
        with self._lock:
            pending = _PendingWrites(self)
            self._require_spender(spender)
            new_value = add(pending.allowance(caller, spender), delta)
            self._set_allowance(pending, caller, spender, new_value)
            self._commit(pending, "increase_allowance", caller, resource=f"allowance:{spender}",
                         extra={"delta": str(delta), "value": str(new_value)})
        return True

    def decrease_allowance(self, caller: str, spender: str, delta: int) -> bool:
        """Lower the allowance by delta; fails with ArithmeticUnderflow below zero"""
        require_uint(delta, "delta")
        with self._lock:
            pending = _PendingWrites(self)
            self._require_spender(spender)
            new_value = sub(pending.allowance(caller, spender), delta)
            self._set_allowance(pending, caller, spender, new_value)
            self._commit(pending, "decrease_allowance", caller, resource=f"allowance:{spender}",
                         extra={"delta": str(delta), "value": str(new_value)})
        return True

    def _require_spender(self, spender: str) -> None:
        if spender == NULL_ACCOUNT:
            raise InvalidRecipient("Spender cannot be the null account")

    def _set_allowance(self, pending: _PendingWrites, owner: str, spender: str, value: int) -> None:
        self._require_spender(spender)
        pending.set_allowance(owner, spender, value)
        pending.emit(TokenEvent.APPROVAL, approval_args(owner, spender, value))

    # ------------------------------------------------------------------
    # Burning
    # ------------------------------------------------------------------

    def burn(self, caller: str, amount: int) -> bool:
        """
        Destroy amount of caller's tokens

        Raises:
            InvalidAmount: amount is zero
            InsufficientBalance: amount exceeds the caller's balance
        """
        require_uint(amount, "amount")
        with self._lock:
            pending = _PendingWrites(self)
            self._burn(pending, caller, amount)
            self._commit(pending, "burn", caller, resource=f"account:{caller}",
                         extra={"amount": str(amount)})
        return True

    def burn_from(self, spender: str, account: str, amount: int) -> bool:
        """
        Destroy amount of account's tokens on the spender's allowance

        Raises:
            InsufficientAllowance: amount exceeds the spender's allowance
            InvalidAmount: amount is zero
            InsufficientBalance: amount exceeds the account's balance
        """
        require_uint(amount, "amount")
        with self._lock:
            pending = _PendingWrites(self)
            allowed = pending.allowance(account, spender)
            if amount > allowed:
                raise InsufficientAllowance(
                    f"Burn of {amount} exceeds allowance {allowed} granted by {account} to {spender}"
                )
            pending.set_allowance(account, spender, sub(allowed, amount))
            self._burn(pending, account, amount)
            self._commit(pending, "burn_from", spender, resource=f"account:{account}",
                         extra={"amount": str(amount)})
        return True

    def _burn(self, pending: _PendingWrites, account: str, amount: int) -> None:
        if amount == 0:
            raise InvalidAmount("Burn amount must be non-zero")
        balance = pending.balance(account)
        if amount > balance:
            raise InsufficientBalance(f"Burn of {amount} exceeds balance {balance} of {account}")
        pending.set_balance(account, sub(balance, amount))
        pending.set_supply(sub(pending.supply(), amount))
        pending.emit(TokenEvent.TRANSFER, transfer_args(account, NULL_ACCOUNT, amount))

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------

    def _commit(
        self,
        pending: _PendingWrites,
        action: str,
        actor: str,
        resource: Optional[str] = None,
        extra: Optional[Dict[str, Any]] = None
    ) -> List[LedgerEvent]:
        """Write staged state and events in one transaction, then notify subscribers"""
        with self.storage.atomic():
            for account, amount in pending.balances.items():
                self.storage.save(BALANCES_TABLE, account, {"account": account, "amount": str(amount)})
            for (owner, spender), amount in pending.allowances.items():
                self.storage.save(ALLOWANCES_TABLE, _allowance_key(owner, spender), {
                    "owner": owner, "spender": spender, "amount": str(amount)
                })
            if pending.total_supply is not None:
                self.storage.save(STATE_TABLE, SUPPLY_RECORD_ID, {"amount": str(pending.total_supply)})
            for (table, record_id), data in pending.records.items():
                self.storage.save(table, record_id, data)
            events = [self.event_log.append(event_type, args) for event_type, args in pending.events]

        log_action(
            self.logger, "info", f"Ledger {action} committed",
            user_id=actor, action=action, resource=resource, extra=extra
        )

        for event in events:
            self.dispatcher.publish(event)
        return events
