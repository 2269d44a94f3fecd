"""
Financial account API endpoints.
"""

from typing import Any, List
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.common import MessageResponse, PaginationInfo
from ..schemas.finance import (
    FinanceDashboard,
    FinancialAccountCreate,
    FinancialAccountResponse,
    FinancialAccountUpdate,
    TransactionCreate,
    TransactionListResponse,
    TransactionResponse,
)
from ..services.finance_service import FinanceService
from ..utils.dependencies import get_current_user


router = APIRouter(prefix="/finance", tags=["finance"])


def get_finance_service(db: AsyncSession = Depends(get_db)) -> FinanceService:
    return FinanceService(db)


@router.get("/accounts", response_model=List[FinancialAccountResponse])
async def list_accounts(
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    """The caller's active financial accounts."""
    accounts = await service.list_accounts(current_user)
    return [FinancialAccountResponse.from_account(account) for account in accounts]


@router.post("/accounts", response_model=FinancialAccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    data: FinancialAccountCreate,
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    """
    Add a bank, card, PayPal, Stripe or wallet account.

    Setting ``is_default`` clears the flag on the caller's other accounts of
    the same type.
    """
    account = await service.create_account(current_user, data)
    return FinancialAccountResponse.from_account(account)


@router.get("/accounts/{account_id}", response_model=FinancialAccountResponse)
async def get_account(
    account_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    account = await service.get_account(account_id, current_user)
    return FinancialAccountResponse.from_account(account)


@router.put("/accounts/{account_id}", response_model=FinancialAccountResponse)
async def update_account(
    account_id: UUID,
    data: FinancialAccountUpdate,
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    account = await service.update_account(account_id, current_user, data)
    return FinancialAccountResponse.from_account(account)


@router.delete("/accounts/{account_id}", response_model=MessageResponse)
async def delete_account(
    account_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    await service.delete_account(account_id, current_user)
    return MessageResponse(message="Financial account deleted")


@router.get("/accounts/{account_id}/transactions", response_model=TransactionListResponse)
async def list_transactions(
    account_id: UUID,
    page: int = Query(1, ge=1),
    size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    transactions, total = await service.list_transactions(account_id, current_user, page, size)
    pagination = PaginationInfo.build(total, page, size)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(transaction) for transaction in transactions],
        has_more=page * size < total,
        **pagination.model_dump()
    )


@router.post(
    "/accounts/{account_id}/transactions",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_transaction(
    account_id: UUID,
    data: TransactionCreate,
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    """
    Record a transaction.

    Credits are held as pending until completed; debits are taken from the
    available balance straight away and fail when it is too low.
    """
    transaction = await service.add_transaction(account_id, current_user, data)
    return TransactionResponse.model_validate(transaction)


@router.post(
    "/accounts/{account_id}/transactions/{transaction_id}/complete",
    response_model=TransactionResponse,
)
async def complete_transaction(
    account_id: UUID,
    transaction_id: UUID,
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    transaction = await service.complete_transaction(account_id, transaction_id, current_user)
    return TransactionResponse.model_validate(transaction)


@router.get("/dashboard", response_model=FinanceDashboard)
async def finance_dashboard(
    current_user: User = Depends(get_current_user),
    service: FinanceService = Depends(get_finance_service)
) -> Any:
    """Balances across the caller's accounts and their ten latest transactions."""
    return await service.dashboard(current_user)
