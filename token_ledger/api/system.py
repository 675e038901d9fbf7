"""
Token system wiring and request dependencies
"""

from typing import Optional

from fastapi import HTTPException

from ..amount import TokenMetadata
from ..config import TokenLedgerConfig, get_config
from ..errors import LedgerError, InvalidAddress, InvalidAmount
from ..event_log import EventLog
from ..events import EventDispatcher
from ..ledger import TokenLedger
from ..logging_config import get_logger
from ..storage import StorageInterface, create_storage


class TokenSystem:
    """Token ledger with its storage, event log and dispatcher initialized"""

    def __init__(self, config: Optional[TokenLedgerConfig] = None,
                 storage: Optional[StorageInterface] = None):
        self.config = config or get_config()
        self.storage = storage or create_storage(self.config.storage_url)
        self.event_log = EventLog(self.storage)
        self.event_dispatcher = EventDispatcher()
        self.logger = get_logger("token_ledger.api")

        if TokenLedger.is_deployed(self.storage):
            self.ledger = TokenLedger.load(
                self.storage, event_log=self.event_log, event_dispatcher=self.event_dispatcher
            )
            self.logger.info(f"Loaded token ledger {self.ledger.symbol()} from storage")
        else:
            self.ledger = TokenLedger.deploy(
                self.config.creator_address,
                metadata=TokenMetadata.from_config(self.config),
                storage=self.storage,
                event_log=self.event_log,
                event_dispatcher=self.event_dispatcher
            )


_token_system: Optional[TokenSystem] = None


def get_token_system() -> TokenSystem:
    """Dependency returning the process-wide token system, created on first use"""
    global _token_system
    if _token_system is None:
        _token_system = TokenSystem()
    return _token_system


def set_token_system(system: Optional[TokenSystem]) -> None:
    global _token_system
    _token_system = system


def http_error(error: LedgerError) -> HTTPException:
    """Map a ledger error to an HTTP error"""
    if isinstance(error, (InvalidAddress, InvalidAmount)):
        return HTTPException(status_code=422, detail=error.to_dict())
    return HTTPException(status_code=400, detail=error.to_dict())
