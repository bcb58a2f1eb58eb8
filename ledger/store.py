"""In-memory storage for account balances and the ledger entry log."""

import threading
from collections import defaultdict
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID

from .models import EntryType, LedgerEntry, to_cents

ZERO = Decimal("0.00")


class LedgerError(Exception):
    pass


class InsufficientFundsError(LedgerError):
    pass


class EntryNotFoundError(LedgerError):
    pass


class LedgerStorageError(LedgerError):
    pass


class BalanceOverflowError(LedgerError):
    pass


class AccountLocks:
    """Registry of one re-entrant lock per account."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[UUID, threading.RLock] = {}

    def for_account(self, account_id: UUID) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(account_id)
            if lock is None:
                lock = threading.RLock()
                self._locks[account_id] = lock
            return lock


class BalanceStore:
    def __init__(self):
        self._balances: dict[UUID, Decimal] = {}
        self._lock = threading.Lock()

    def has_account(self, account_id: UUID) -> bool:
        with self._lock:
            return account_id in self._balances

    def get_balance(self, account_id: UUID) -> Decimal:
        with self._lock:
            return self._balances.get(account_id, ZERO)

    def apply(self, account_id: UUID, signed_amount: Decimal) -> Decimal:
        """Adjust the balance by ``signed_amount`` and return the new balance.

        Raises:
            InsufficientFundsError: If the balance would drop below zero. The
                stored balance is left untouched.
        """
        with self._lock:
            current = self._balances.get(account_id, ZERO)
            try:
                new_balance = to_cents(current + signed_amount)
            except InvalidOperation:
                raise BalanceOverflowError(
                    f"Balance of account {account_id} cannot hold {current} + {signed_amount}"
                )
            if new_balance < ZERO:
                raise InsufficientFundsError(
                    f"Insufficient funds: balance {current}, requested {-signed_amount}"
                )
            self._balances[account_id] = new_balance
            return new_balance

    def snapshot(self, account_id: UUID) -> Optional[Decimal]:
        """Return the stored balance, or None if the account does not exist yet."""
        with self._lock:
            return self._balances.get(account_id)

    def revert(self, account_id: UUID, previous: Optional[Decimal]) -> None:
        """Restore a balance taken with :meth:`snapshot`."""
        with self._lock:
            if previous is None:
                self._balances.pop(account_id, None)
            else:
                self._balances[account_id] = previous


class LedgerLog:
    def __init__(self):
        self._entries: dict[UUID, LedgerEntry] = {}
        self._by_account: dict[UUID, list[UUID]] = defaultdict(list)
        self._sequence = 0
        self._lock = threading.Lock()

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        with self._lock:
            if entry.id in self._entries:
                raise LedgerStorageError(f"Ledger entry {entry.id} already exists")
            self._sequence += 1
            stored = entry.model_copy(update={"sequence": self._sequence})
            self._entries[stored.id] = stored
            self._by_account[stored.account_id].append(stored.id)
            return stored

    def get(self, entry_id: UUID) -> LedgerEntry:
        with self._lock:
            entry = self._entries.get(entry_id)
        if entry is None:
            raise EntryNotFoundError(f"Ledger entry {entry_id} not found")
        return entry

    def mark_paid(self, entry_id: UUID, paid_at: datetime) -> LedgerEntry:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                raise EntryNotFoundError(f"Ledger entry {entry_id} not found")
            settled = entry.model_copy(update={"is_paid": True, "paid_at": paid_at})
            self._entries[entry_id] = settled
            return settled

    def entries_for(self, account_id: UUID, entry_type: Optional[EntryType] = None) -> list[LedgerEntry]:
        with self._lock:
            entries = [self._entries[i] for i in self._by_account.get(account_id, [])]
        if entry_type is not None:
            entries = [e for e in entries if e.entry_type == entry_type]
        return entries

    def history(self, account_id: UUID) -> list[LedgerEntry]:
        # union of both streams, newest first; later insertion wins a timestamp tie
        earnings = self.entries_for(account_id, EntryType.EARNING)
        withdrawals = self.entries_for(account_id, EntryType.WITHDRAWAL)
        merged = earnings + withdrawals
        merged.sort(key=lambda e: (e.created_at, e.sequence), reverse=True)
        return merged


class InMemoryStorage:
    def __init__(self, balances: Optional[BalanceStore] = None, log: Optional[LedgerLog] = None):
        self.balances = balances or BalanceStore()
        self.log = log or LedgerLog()
        self.locks = AccountLocks()
