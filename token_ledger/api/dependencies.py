"""
Ledger wiring and request dependencies
"""

from typing import Optional

from fastapi import Header, HTTPException

from ..config import TokenLedgerConfig, get_config
from ..errors import TokenLedgerError
from ..event_log import EventLog
from ..events import EventDispatcher, LedgerEvent
from ..ledger import TokenLedger
from ..logging_config import get_logger, log_action
from ..metadata import TokenMetadata
from ..storage import StorageInterface, create_storage


logger = get_logger("token_ledger.api")


class TokenSystem:
    """Token ledger with storage, event log and dispatcher initialized"""

    def __init__(self, config: Optional[TokenLedgerConfig] = None, storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.storage_backend, self.config.database_path)
        self.dispatcher = EventDispatcher()
        self.event_log = EventLog(self.storage)
        self.ledger = TokenLedger(
            self.storage,
            issuer=self.config.issuer_account,
            initial_supply=self.config.initial_supply,
            metadata=TokenMetadata(
                name=self.config.token_name,
                symbol=self.config.token_symbol,
                decimals=self.config.token_decimals
            ),
            base_percent=self.config.base_percent,
            dispatcher=self.dispatcher,
            event_log=self.event_log
        )
        self.dispatcher.subscribe_all(_log_committed_event)

    def close(self) -> None:
        self.dispatcher.clear()
        self.storage.close()


def _log_committed_event(event: LedgerEvent) -> None:
    logger.debug(f"Committed {event.event_type.value} #{event.sequence}: {event.to_dict()['args']}")


# Global token system instance, created on first request
_token_system: Optional[TokenSystem] = None


def get_token_system() -> TokenSystem:
    global _token_system
    if _token_system is None:
        _token_system = TokenSystem()
    return _token_system


def set_token_system(system: Optional[TokenSystem]) -> None:
    """Replace the global token system (None resets to lazy creation)"""
    global _token_system
    _token_system = system


def get_acting_account(x_account: str = Header(..., alias="X-Account", min_length=1)) -> str:
    """Acting account supplied by the trusted identity layer in front of the API"""
    return x_account


def rejected(error: TokenLedgerError, action: str, account: str) -> HTTPException:
    """Log a rejected ledger operation and build the 400 response for it"""
    log_action(
        logger, "warning", f"Rejected {action}: {error}",
        user_id=account, action=action, extra={"error": type(error).__name__}
    )
    return HTTPException(
        status_code=400,
        detail={"error": type(error).__name__, "message": str(error)}
    )
