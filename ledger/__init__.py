"""
Tester Wallet Ledger

This module provides:
- Immutable ledger entries for earnings and withdrawals
- Non-negative balances enforced on every entry
- Withdrawal lifecycle: pending → settled, at most one pending per account
- Merged, newest-first transaction history
"""

from .models import (
    EntryType,
    LedgerEntry,
    AccountBalance,
    TransactionHistoryResponse,
)
from .service import WalletService

__all__ = [
    "EntryType",
    "LedgerEntry",
    "AccountBalance",
    "TransactionHistoryResponse",
    "WalletService",
]
