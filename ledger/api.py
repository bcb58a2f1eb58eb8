import logging
from typing import Optional
from uuid import UUID

from fastapi import Depends, FastAPI, Header, HTTPException, Query, status
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings
from .logging_config import configure_logging
from .models import (
    CreateWithdrawalRequest, CreateEarningRequest, WithdrawalResponse,
    EarningResponse, LedgerEntry, AccountBalance, TransactionHistoryResponse,
)
from .service import (
    WalletService, InsufficientFundsError, WithdrawalAlreadyPendingError,
    AlreadySettledError, EntryNotFoundError, NotAWithdrawalError, InvalidAmountError,
    BalanceOverflowError,
)

settings = Settings.from_env()
configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Tester Wallet API",
    description="Wallet ledger for tester earnings, withdrawals and transaction history",
    version="1.0.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_wallet_service: Optional[WalletService] = None


def get_wallet_service() -> WalletService:
    global _wallet_service
    if _wallet_service is None:
        _wallet_service = WalletService(settings=settings)
    return _wallet_service


def set_wallet_service(service: WalletService) -> None:
    """Replace the wallet service instance (for testing)."""
    global _wallet_service
    _wallet_service = service


def get_account_id(x_account_id: Optional[str] = Header(default=None)) -> UUID:
    """Resolve the calling account from the identity header set by the auth layer."""
    if not x_account_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing account identity")
    try:
        return UUID(x_account_id)
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid account identity")


@app.get("/health", tags=["System"])
def health_check():
    return {"status": "healthy", "service": "tester-wallet"}


@app.post("/withdrawals", response_model=WithdrawalResponse, status_code=status.HTTP_201_CREATED, tags=["Withdrawals"])
def create_withdrawal(
    request: CreateWithdrawalRequest,
    account_id: UUID = Depends(get_account_id),
    service: WalletService = Depends(get_wallet_service),
) -> WithdrawalResponse:
    try:
        withdrawal = service.request_withdrawal(account_id, request.amount)
    except (WithdrawalAlreadyPendingError, InsufficientFundsError, InvalidAmountError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return WithdrawalResponse(withdrawal=withdrawal, message="Withdrawal requested successfully")


@app.get("/withdrawals/pending", response_model=Optional[LedgerEntry], tags=["Withdrawals"])
def get_pending_withdrawal(
    account_id: UUID = Depends(get_account_id),
    service: WalletService = Depends(get_wallet_service),
) -> Optional[LedgerEntry]:
    return service.get_pending_withdrawal(account_id)


@app.post("/withdrawals/{withdrawal_id}/settle", response_model=WithdrawalResponse, tags=["Withdrawals"])
def settle_withdrawal(
    withdrawal_id: UUID,
    service: WalletService = Depends(get_wallet_service),
) -> WithdrawalResponse:
    try:
        withdrawal = service.settle(withdrawal_id)
    except EntryNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Withdrawal {withdrawal_id} not found")
    except AlreadySettledError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except NotAWithdrawalError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return WithdrawalResponse(withdrawal=withdrawal, message="Withdrawal settled successfully")


@app.post("/earnings", response_model=EarningResponse, status_code=status.HTTP_201_CREATED, tags=["Earnings"])
def create_earning(
    request: CreateEarningRequest,
    account_id: UUID = Depends(get_account_id),
    service: WalletService = Depends(get_wallet_service),
) -> EarningResponse:
    try:
        earning = service.record_earning(account_id, request.amount, request.note)
    except (InvalidAmountError, BalanceOverflowError) as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return EarningResponse(earning=earning, message="Earning recorded successfully")


@app.get("/wallet", response_model=AccountBalance, tags=["Wallet"])
def get_wallet(
    account_id: UUID = Depends(get_account_id),
    service: WalletService = Depends(get_wallet_service),
) -> AccountBalance:
    return service.get_balance(account_id)


@app.get("/transactions", response_model=TransactionHistoryResponse, tags=["Wallet"])
def get_transactions(
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    account_id: UUID = Depends(get_account_id),
    service: WalletService = Depends(get_wallet_service),
) -> TransactionHistoryResponse:
    return service.get_transaction_history(account_id, limit, offset)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
