import logging
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Optional
from uuid import UUID, uuid4

from .config import Settings
from .models import (
    EntryType,
    LedgerEntry,
    AccountBalance,
    TransactionItem,
    TransactionHistoryResponse,
    to_cents,
)
from .store import (
    InMemoryStorage,
    LedgerError,
    InsufficientFundsError,
    EntryNotFoundError,
    LedgerStorageError,
    BalanceOverflowError,
)

logger = logging.getLogger(__name__)

__all__ = [
    "WalletService",
    "LedgerError",
    "LedgerServiceError",
    "InsufficientFundsError",
    "EntryNotFoundError",
    "LedgerStorageError",
    "BalanceOverflowError",
    "WithdrawalAlreadyPendingError",
    "AlreadySettledError",
    "NotAWithdrawalError",
    "InvalidAmountError",
]


class LedgerServiceError(LedgerError):
    pass


class WithdrawalAlreadyPendingError(LedgerServiceError):
    pass


class AlreadySettledError(LedgerServiceError):
    pass


class NotAWithdrawalError(LedgerServiceError):
    pass


class InvalidAmountError(LedgerServiceError, ValueError):
    pass


class WalletService:
    def __init__(self, storage: Optional[InMemoryStorage] = None, settings: Optional[Settings] = None):
        self.storage = storage or InMemoryStorage()
        self.settings = settings or Settings()

    def record_earning(self, account_id: UUID, amount: Decimal, note: Optional[str] = None) -> LedgerEntry:
        amount = self._validate_amount(amount)
        with self.storage.locks.for_account(account_id):
            entry = self._apply_and_append(
                account_id,
                amount,
                EntryType.EARNING,
                note if note is not None else f"Earning of ${amount}",
            )
        logger.info(f"Recorded earning {entry.id} of {amount} for account {account_id}")
        return entry

    def request_withdrawal(self, account_id: UUID, amount: Decimal, note: Optional[str] = None) -> LedgerEntry:
        amount = self._validate_amount(amount)
        with self.storage.locks.for_account(account_id):
            pending = self.get_pending_withdrawal(account_id)
            if pending is not None:
                logger.warning(
                    f"Rejected withdrawal for account {account_id}: {pending.id} is still pending"
                )
                raise WithdrawalAlreadyPendingError("Withdrawal request is already pending.")
            try:
                entry = self._apply_and_append(
                    account_id,
                    -amount,
                    EntryType.WITHDRAWAL,
                    note if note is not None else f"Withdrawal of ${amount}",
                )
            except InsufficientFundsError:
                logger.warning(f"Rejected withdrawal of {amount} for account {account_id}: insufficient funds")
                raise
        logger.info(f"Created withdrawal {entry.id} of {amount} for account {account_id}")
        return entry

    def settle(self, withdrawal_id: UUID) -> LedgerEntry:
        entry = self.storage.log.get(withdrawal_id)
        if not entry.is_withdrawal:
            raise NotAWithdrawalError(f"Ledger entry {withdrawal_id} is not a withdrawal")

        with self.storage.locks.for_account(entry.account_id):
            entry = self.storage.log.get(withdrawal_id)
            if entry.is_paid:
                raise AlreadySettledError(f"Withdrawal {withdrawal_id} is already settled")
            settled = self.storage.log.mark_paid(withdrawal_id, datetime.now(timezone.utc))
        logger.info(f"Settled withdrawal {withdrawal_id} for account {settled.account_id}")
        return settled

    def get_pending_withdrawal(self, account_id: UUID) -> Optional[LedgerEntry]:
        for entry in self.storage.log.entries_for(account_id, EntryType.WITHDRAWAL):
            if entry.is_pending():
                return entry
        return None

    def get_entry(self, entry_id: UUID) -> LedgerEntry:
        return self.storage.log.get(entry_id)

    def get_balance(self, account_id: UUID) -> AccountBalance:
        entries = self.storage.log.entries_for(account_id)
        last_entry = max(entries, key=lambda e: (e.created_at, e.sequence)) if entries else None

        return AccountBalance(
            account_id=account_id,
            currency=self.settings.currency,
            current_balance=self.storage.balances.get_balance(account_id),
            total_entries=len(entries),
            last_transaction_at=last_entry.created_at if last_entry else None,
        )

    def get_transaction_history(
        self, account_id: UUID, limit: Optional[int] = None, offset: int = 0
    ) -> TransactionHistoryResponse:
        if limit is None:
            limit = self.settings.history_limit
        limit = max(0, min(limit, self.settings.max_history_limit))
        offset = max(0, offset)

        history = self.storage.log.history(account_id)
        page = history[offset:offset + limit]

        return TransactionHistoryResponse(
            account_id=account_id,
            transactions=[TransactionItem.model_validate(e.model_dump()) for e in page],
            total_count=len(history),
            current_balance=self.storage.balances.get_balance(account_id),
        )

    def _apply_and_append(
        self, account_id: UUID, signed_amount: Decimal, entry_type: EntryType, note: str
    ) -> LedgerEntry:
        # caller holds the account lock
        previous = self.storage.balances.snapshot(account_id)
        balance_after = self.storage.balances.apply(account_id, signed_amount)
        try:
            entry = LedgerEntry(
                id=uuid4(),
                account_id=account_id,
                entry_type=entry_type,
                amount=signed_amount,
                balance_after=balance_after,
                note=note,
                created_at=datetime.now(timezone.utc),
                is_paid=False if entry_type == EntryType.WITHDRAWAL else None,
            )
            return self.storage.log.append(entry)
        except Exception:
            self.storage.balances.revert(account_id, previous)
            logger.error(
                f"Rolled back {entry_type.value.lower()} of {signed_amount} for account {account_id}",
                exc_info=True,
            )
            raise

    @staticmethod
    def _validate_amount(amount: Decimal) -> Decimal:
        try:
            amount = to_cents(amount)
        except InvalidOperation:
            raise InvalidAmountError(f"Amount {amount} is out of range")
        if amount <= 0:
            raise InvalidAmountError(f"Amount must be positive, got {amount}")
        return amount
