"""
Token Ledger Engine

Core accounting engine for a fixed-supply fungible token. Tracks balances
and delegated-transfer allowances, and applies transfers, delegated
transfers, approvals and burns. Every operation is a single check-then-apply
step: all preconditions are checked before anything is written, the state
change and its event are persisted in one atomic storage block, and a
rejected operation leaves no trace.
"""

import threading
from collections import deque
from typing import Dict, List, Optional, Tuple, Union

from .address import Address, ZERO_ADDRESS
from .amount import (
    TokenMetadata, SIMPLE_TOKEN, validate_amount, checked_add, checked_sub
)
from .errors import (
    LedgerError, InsufficientBalance, InsufficientAllowance, Underflow,
    LedgerAlreadyDeployed, LedgerNotDeployed
)
from .events import (
    EventDispatcher, EventPayload, LedgerEventType,
    create_transfer_event, create_approval_event, create_burn_event
)
from .event_log import EventLog, EventRecord
from .logging_config import get_logger, log_action
from .state import LedgerState
from .storage import StorageInterface, InMemoryStorage

AccountLike = Union[Address, str, bytes]

TOKEN_TABLE = "token"
TOKEN_RECORD_ID = "token"
BALANCES_TABLE = "balances"
ALLOWANCES_TABLE = "allowances"


def _allowance_id(owner: Address, spender: Address) -> str:
    return f"{owner}:{spender}"


class TokenLedger:
    """
    Fixed-supply token ledger

    Use deploy() to create a new ledger (minting the whole supply to the
    creator) or load() to restore one from storage.
    """

    def __init__(
        self,
        state: LedgerState,
        metadata: TokenMetadata,
        storage: Optional[StorageInterface] = None,
        event_log: Optional[EventLog] = None,
        event_dispatcher: Optional[EventDispatcher] = None,
        creator: Optional[Address] = None
    ):
        self.state = state
        self.metadata = metadata
        self.storage = storage or InMemoryStorage()
        self.event_log = event_log or EventLog(self.storage)
        self.creator = creator
        self._event_dispatcher = event_dispatcher
        self._lock = threading.RLock()  # one mutator at a time
        self._unpublished = deque()
        self._publishing = False
        self.logger = get_logger("token_ledger.ledger")

    @classmethod
    def deploy(
        cls,
        creator: AccountLike,
        metadata: Optional[TokenMetadata] = None,
        storage: Optional[StorageInterface] = None,
        event_log: Optional[EventLog] = None,
        event_dispatcher: Optional[EventDispatcher] = None
    ) -> 'TokenLedger':
        """
        Create the ledger and credit the entire supply to the creator

        The crediting is recorded as a Transfer from the zero address.

        Raises:
            LedgerAlreadyDeployed: If storage already holds a ledger
        """
        creator = Address.coerce(creator)
        metadata = metadata or SIMPLE_TOKEN
        storage = storage or InMemoryStorage()

        if cls.is_deployed(storage):
            raise LedgerAlreadyDeployed("A token ledger is already deployed in this storage")

        ledger = cls(
            LedgerState(), metadata, storage, event_log, event_dispatcher, creator=creator
        )
        supply = metadata.max_supply

        with ledger._lock:
            ledger._commit(
                create_transfer_event(ZERO_ADDRESS, creator, supply),
                balances={creator: supply},
                total_supply=supply
            )

        log_action(
            ledger.logger, "info", f"Token ledger deployed: {metadata.symbol}",
            action="deploy", resource=f"token:{metadata.symbol}", account=str(creator),
            extra={"total_supply": str(supply), "decimals": metadata.decimals}
        )
        return ledger

    @classmethod
    def load(
        cls,
        storage: StorageInterface,
        event_log: Optional[EventLog] = None,
        event_dispatcher: Optional[EventDispatcher] = None
    ) -> 'TokenLedger':
        """
        Restore a previously deployed ledger from storage

        Raises:
            LedgerNotDeployed: If storage holds no ledger
        """
        token = storage.load(TOKEN_TABLE, TOKEN_RECORD_ID)
        if not token:
            raise LedgerNotDeployed("No token ledger found in storage")

        state = LedgerState(total_supply=int(token['total_supply']))
        for row in storage.load_all(BALANCES_TABLE):
            state.set_balance(Address.parse(row['account']), int(row['amount']))
        for row in storage.load_all(ALLOWANCES_TABLE):
            state.set_allowance(
                Address.parse(row['owner']), Address.parse(row['spender']), int(row['amount'])
            )

        creator = Address.parse(token['creator']) if token.get('creator') else None
        return cls(
            state, TokenMetadata.from_dict(token['metadata']), storage,
            event_log, event_dispatcher, creator=creator
        )

    @staticmethod
    def is_deployed(storage: StorageInterface) -> bool:
        return storage.exists(TOKEN_TABLE, TOKEN_RECORD_ID)

    def set_event_dispatcher(self, event_dispatcher: EventDispatcher) -> None:
        self._event_dispatcher = event_dispatcher

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    def name(self) -> str:
        return self.metadata.name

    def symbol(self) -> str:
        return self.metadata.symbol

    def decimals(self) -> int:
        return self.metadata.decimals

    def total_supply(self) -> int:
        return self.state.total_supply

    def balance_of(self, account: AccountLike) -> int:
        return self.state.balance_of(Address.coerce(account))

    def allowance(self, owner: AccountLike, spender: AccountLike) -> int:
        return self.state.allowance_of(Address.coerce(owner), Address.coerce(spender))

    # ------------------------------------------------------------------
    # Mutating operations
    # ------------------------------------------------------------------

    def transfer(self, caller: AccountLike, to: AccountLike, value: int) -> bool:
        """
        Move value from the caller's balance to another account

        Zero-value transfers are ordinary transfers and emit an event.

        Raises:
            InsufficientBalance: If the caller holds less than value
            Overflow: If the recipient's balance would exceed 2**256 - 1
        """
        caller = Address.coerce(caller)
        to = Address.coerce(to)
        value = validate_amount(value)

        with self._lock:
            try:
                balances = {caller: self._debit(caller, value)}
                balances[to] = self._credit(balances, to, value)
            except LedgerError as e:
                self._reject("transfer", caller, e, {"to": str(to), "value": str(value)})
                raise

            self._commit(create_transfer_event(caller, to, value), balances=balances)

        log_action(
            self.logger, "info", "Transfer applied",
            action="transfer", resource=f"account:{to}", account=str(caller),
            extra={"value": str(value)}
        )
        return True

    def transfer_from(
        self,
        caller: AccountLike,
        from_account: AccountLike,
        to: AccountLike,
        value: int
    ) -> bool:
        """
        Move value out of from_account on its owner's behalf

        The caller spends the allowance from_account granted it. The
        allowance decrease is silent: only a Transfer event is emitted.

        Raises:
            InsufficientBalance: If from_account holds less than value
            InsufficientAllowance: If the caller's allowance is less than value
            Overflow: If the recipient's balance would exceed 2**256 - 1
        """
        caller = Address.coerce(caller)
        from_account = Address.coerce(from_account)
        to = Address.coerce(to)
        value = validate_amount(value)

        with self._lock:
            try:
                balances = {from_account: self._debit(from_account, value)}

                current_allowance = self.state.allowance_of(from_account, caller)
                try:
                    remaining = checked_sub(current_allowance, value)
                except Underflow:
                    raise InsufficientAllowance(
                        f"Allowance of {caller} over {from_account} is {current_allowance}, "
                        f"cannot spend {value}"
                    )

                balances[to] = self._credit(balances, to, value)
            except LedgerError as e:
                self._reject("transfer_from", caller, e, {
                    "from": str(from_account), "to": str(to), "value": str(value)
                })
                raise

            self._commit(
                create_transfer_event(from_account, to, value),
                balances=balances,
                allowances={(from_account, caller): remaining}
            )

        log_action(
            self.logger, "info", "Delegated transfer applied",
            action="transfer_from", resource=f"account:{from_account}", account=str(caller),
            extra={"to": str(to), "value": str(value), "remaining_allowance": str(remaining)}
        )
        return True

    def approve(self, caller: AccountLike, spender: AccountLike, value: int) -> bool:
        """
        Set the amount spender may move out of the caller's balance

        The new value replaces any existing allowance; it does not add to it.
        Replacing a non-zero allowance lets a spender who races the change
        spend both the old and the new amount, as the token standard allows.
        """
        caller = Address.coerce(caller)
        spender = Address.coerce(spender)
        value = validate_amount(value)

        with self._lock:
            self._commit(
                create_approval_event(caller, spender, value),
                allowances={(caller, spender): value}
            )

        log_action(
            self.logger, "info", "Allowance set",
            action="approve", resource=f"account:{spender}", account=str(caller),
            extra={"value": str(value)}
        )
        return True

    def burn(self, caller: AccountLike, value: int) -> bool:
        """
        Destroy value from the caller's own balance, reducing total supply

        Raises:
            InsufficientBalance: If the caller holds less than value
        """
        caller = Address.coerce(caller)
        value = validate_amount(value)

        with self._lock:
            try:
                balances = {caller: self._debit(caller, value)}
                total_supply = checked_sub(self.state.total_supply, value)
            except LedgerError as e:
                self._reject("burn", caller, e, {"value": str(value)})
                raise

            self._commit(
                create_burn_event(caller, value),
                balances=balances,
                total_supply=total_supply
            )

        log_action(
            self.logger, "info", "Tokens burned",
            action="burn", resource=f"token:{self.metadata.symbol}", account=str(caller),
            extra={"value": str(value), "total_supply": str(total_supply)}
        )
        return True

    # ------------------------------------------------------------------
    # Queries and audits
    # ------------------------------------------------------------------

    def get_events(
        self,
        event_type: Optional[LedgerEventType] = None,
        account: Optional[AccountLike] = None,
        since: Optional[int] = None,
        limit: Optional[int] = None
    ) -> List[EventRecord]:
        """Get committed events in the order they were emitted"""
        return self.event_log.get_events(
            event_type=event_type,
            account=Address.coerce(account) if account is not None else None,
            since=since,
            limit=limit
        )

    def holders(self) -> List[Tuple[Address, int]]:
        """Accounts with a non-zero balance, largest first"""
        state = self.state
        return sorted(state.balances.items(), key=lambda item: (-item[1], str(item[0])))

    def verify_supply(self) -> Dict[str, object]:
        """
        Check that balances add up to the total supply and that the
        event log chain is intact
        """
        state = self.state
        sum_of_balances = state.sum_balances()
        log_report = self.event_log.verify_integrity()
        return {
            'valid': sum_of_balances == state.total_supply and log_report['valid'],
            'total_supply': state.total_supply,
            'sum_of_balances': sum_of_balances,
            'holder_count': len(state.balances),
            'event_log_valid': log_report['valid'],
            'event_count': log_report['total_events']
        }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _debit(self, account: Address, value: int) -> int:
        balance = self.state.balance_of(account)
        try:
            return checked_sub(balance, value)
        except Underflow:
            raise InsufficientBalance(
                f"Account {account} balance {balance} is less than {value}"
            )

    def _credit(self, pending: Dict[Address, int], account: Address, value: int) -> int:
        # A self-transfer credits the already debited balance
        balance = pending.get(account, self.state.balance_of(account))
        return checked_add(balance, value)

    def _commit(
        self,
        event: EventPayload,
        balances: Optional[Dict[Address, int]] = None,
        allowances: Optional[Dict[Tuple[Address, Address], int]] = None,
        total_supply: Optional[int] = None
    ) -> EventRecord:
        """
        Persist a checked state change together with its event, then
        make it visible and notify subscribers
        """
        balances = balances or {}
        allowances = allowances or {}

        with self.storage.atomic():
            for account, amount in balances.items():
                self._save_balance(account, amount)
            for (owner, spender), amount in allowances.items():
                self._save_allowance(owner, spender, amount)
            if total_supply is not None:
                self._save_token(total_supply)
            record = self.event_log.append(event)

        # Swap in a new state object so readers never see half an update
        state = self.state.copy()
        for account, amount in balances.items():
            state.set_balance(account, amount)
        for (owner, spender), amount in allowances.items():
            state.set_allowance(owner, spender, amount)
        if total_supply is not None:
            state.total_supply = total_supply
        self.state = state

        self._unpublished.append(event)
        self._publish_pending()
        return record

    def _publish_pending(self) -> None:
        # A subscriber that calls back into the ledger only queues its event;
        # the outermost commit delivers everything in log order
        if self._publishing:
            return
        self._publishing = True
        try:
            while self._unpublished:
                event = self._unpublished.popleft()
                if self._event_dispatcher:
                    self._event_dispatcher.publish(event)
        finally:
            self._publishing = False

    def _reject(self, action: str, caller: Address, error: LedgerError, details: Dict[str, str]) -> None:
        log_action(
            self.logger, "warning", f"{action} rejected: {error.message}",
            action=action, account=str(caller),
            extra={"error": error.code, **details}
        )

    def _save_balance(self, account: Address, amount: int) -> None:
        if amount:
            self.storage.save(BALANCES_TABLE, str(account), {
                'account': str(account), 'amount': str(amount)
            })
        else:
            self.storage.delete(BALANCES_TABLE, str(account))

    def _save_allowance(self, owner: Address, spender: Address, amount: int) -> None:
        record_id = _allowance_id(owner, spender)
        if amount:
            self.storage.save(ALLOWANCES_TABLE, record_id, {
                'owner': str(owner), 'spender': str(spender), 'amount': str(amount)
            })
        else:
            self.storage.delete(ALLOWANCES_TABLE, record_id)

    def _save_token(self, total_supply: int) -> None:
        self.storage.save(TOKEN_TABLE, TOKEN_RECORD_ID, {
            'id': TOKEN_RECORD_ID,
            'metadata': self.metadata.to_dict(),
            'total_supply': str(total_supply),
            'creator': str(self.creator) if self.creator else None
        })
