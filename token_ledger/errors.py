"""
Ledger Error Taxonomy

Every rejected ledger operation raises one of these. Each error carries a
stable machine-readable code alongside its message so API callers can act
on the kind of failure without parsing text.
"""

from typing import Any, Dict


class LedgerError(ValueError):
    """Base class for all ledger failures"""

    code = "ledger_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message}


class InsufficientBalance(LedgerError):
    """Attempted debit exceeds the account's current balance"""

    code = "insufficient_balance"


class InsufficientAllowance(LedgerError):
    """Attempted delegated debit exceeds the remaining allowance"""

    code = "insufficient_allowance"


class Overflow(LedgerError):
    """A credit would exceed the representable amount range"""

    code = "overflow"


class Underflow(LedgerError):
    """A checked subtraction would go below zero"""

    code = "underflow"


class InvalidAmount(LedgerError):
    """Value is not a valid 256-bit unsigned integer"""

    code = "invalid_amount"


class InvalidAddress(LedgerError):
    """Account identifier could not be parsed"""

    code = "invalid_address"


class LedgerAlreadyDeployed(LedgerError):
    """Storage already holds a deployed ledger"""

    code = "already_deployed"


class LedgerNotDeployed(LedgerError):
    """Storage holds no ledger to load"""

    code = "not_deployed"
