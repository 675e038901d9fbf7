"""
Ledger State

The explicit state object owned by a ledger: balances, allowances and
total supply. Absent entries read as zero and zero entries are pruned, so
a drained balance or allowance is indistinguishable from one never set.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Tuple

from .address import Address


@dataclass
class LedgerState:
    """Mutable accounting state of a token ledger"""
    total_supply: int = 0
    balances: Dict[Address, int] = field(default_factory=dict)
    allowances: Dict[Tuple[Address, Address], int] = field(default_factory=dict)

    def balance_of(self, account: Address) -> int:
        return self.balances.get(account, 0)

    def allowance_of(self, owner: Address, spender: Address) -> int:
        return self.allowances.get((owner, spender), 0)

    def set_balance(self, account: Address, amount: int) -> None:
        if amount:
            self.balances[account] = amount
        else:
            self.balances.pop(account, None)

    def set_allowance(self, owner: Address, spender: Address, amount: int) -> None:
        if amount:
            self.allowances[(owner, spender)] = amount
        else:
            self.allowances.pop((owner, spender), None)

    def sum_balances(self) -> int:
        return sum(self.balances.values())

    def copy(self) -> 'LedgerState':
        return LedgerState(
            total_supply=self.total_supply,
            balances=dict(self.balances),
            allowances=dict(self.allowances)
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with amounts as decimal strings"""
        return {
            'total_supply': str(self.total_supply),
            'balances': {str(account): str(amount) for account, amount in self.balances.items()},
            'allowances': [
                {'owner': str(owner), 'spender': str(spender), 'amount': str(amount)}
                for (owner, spender), amount in self.allowances.items()
            ]
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'LedgerState':
        state = cls(total_supply=int(data['total_supply']))
        for account, amount in data.get('balances', {}).items():
            state.set_balance(Address.parse(account), int(amount))
        for entry in data.get('allowances', []):
            state.set_allowance(
                Address.parse(entry['owner']),
                Address.parse(entry['spender']),
                int(entry['amount'])
            )
        return state
