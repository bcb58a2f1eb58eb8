from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID
from pydantic import BaseModel, Field, ConfigDict

CENTS = Decimal("0.01")
MAX_AMOUNT_DIGITS = 12


def to_cents(amount: Decimal) -> Decimal:
    return Decimal(amount).quantize(CENTS)


class EntryType(str, Enum):
    EARNING = "EARNING"
    WITHDRAWAL = "WITHDRAWAL"


class CreateWithdrawalRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=MAX_AMOUNT_DIGITS, decimal_places=2, description="Amount to withdraw")

    model_config = ConfigDict(json_schema_extra={
        "example": {"amount": 30.00}
    })


class CreateEarningRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, max_digits=MAX_AMOUNT_DIGITS, decimal_places=2, description="Amount earned")
    note: Optional[str] = Field(default=None, max_length=255)

    model_config = ConfigDict(json_schema_extra={
        "example": {"amount": 50.00, "note": "Payout for project #42"}
    })


class LedgerEntry(BaseModel):
    id: UUID
    account_id: UUID
    entry_type: EntryType
    amount: Decimal
    balance_after: Decimal
    note: str
    created_at: datetime
    is_paid: Optional[bool] = None
    paid_at: Optional[datetime] = None
    sequence: int = Field(default=0, exclude=True)

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @property
    def is_withdrawal(self) -> bool:
        return self.entry_type == EntryType.WITHDRAWAL

    def is_pending(self) -> bool:
        return self.is_withdrawal and not self.is_paid


class TransactionItem(BaseModel):
    id: UUID
    entry_type: EntryType
    amount: Decimal
    balance_after: Decimal
    created_at: datetime
    note: str

    model_config = ConfigDict(from_attributes=True)


class AccountBalance(BaseModel):
    account_id: UUID
    currency: str
    current_balance: Decimal
    total_entries: int
    last_transaction_at: Optional[datetime] = None


class TransactionHistoryResponse(BaseModel):
    account_id: UUID
    transactions: list[TransactionItem]
    total_count: int
    current_balance: Decimal


class WithdrawalResponse(BaseModel):
    withdrawal: LedgerEntry
    message: str


class EarningResponse(BaseModel):
    earning: LedgerEntry
    message: str
