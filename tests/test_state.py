"""
Test suite for ledger state
"""

from token_ledger.address import Address
from token_ledger.state import LedgerState


A = Address(bytes([1] * 20))
B = Address(bytes([2] * 20))


class TestLedgerState:
    """Test the explicit state object"""

    def test_absent_entries_read_zero(self):
        state = LedgerState()
        assert state.balance_of(A) == 0
        assert state.allowance_of(A, B) == 0
        assert state.total_supply == 0

    def test_zero_entries_pruned(self):
        state = LedgerState()
        state.set_balance(A, 10)
        state.set_allowance(A, B, 5)
        state.set_balance(A, 0)
        state.set_allowance(A, B, 0)

        assert state.balances == {}
        assert state.allowances == {}

    def test_allowance_direction_matters(self):
        state = LedgerState()
        state.set_allowance(A, B, 5)
        assert state.allowance_of(A, B) == 5
        assert state.allowance_of(B, A) == 0

    def test_copy_is_independent(self):
        state = LedgerState(total_supply=10)
        state.set_balance(A, 10)

        clone = state.copy()
        clone.set_balance(A, 3)
        clone.total_supply = 3

        assert state.balance_of(A) == 10
        assert state.total_supply == 10

    def test_sum_balances(self):
        state = LedgerState()
        state.set_balance(A, 10)
        state.set_balance(B, 32)
        assert state.sum_balances() == 42

    def test_dict_round_trip(self):
        state = LedgerState(total_supply=2 ** 200)
        state.set_balance(A, 2 ** 200)
        state.set_allowance(A, B, 7)

        data = state.to_dict()
        assert data['total_supply'] == str(2 ** 200)
        assert data['balances'] == {str(A): str(2 ** 200)}

        restored = LedgerState.from_dict(data)
        assert restored == state
