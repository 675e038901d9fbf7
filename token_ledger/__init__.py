"""
Token Ledger

A fixed-supply fungible token ledger with delegated transfers, checked
256-bit arithmetic, supply-reducing burns and a hash-chained event log.
"""

__version__ = "1.0.0"
