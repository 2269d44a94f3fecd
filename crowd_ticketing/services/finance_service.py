"""
Finance service: payout/payment accounts, their transactions and balances.

Balances follow the transaction lifecycle: a credit lands in ``pending`` and
moves to ``available`` when completed, a debit leaves ``available`` as soon as
it is recorded. Balance changes go through conditional UPDATE statements so a
debit can never take ``available`` below zero.
"""

import logging
import time
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    AccountType,
    FinancialAccount,
    FinancialTransaction,
    TransactionStatus,
    TransactionType,
    User,
)
from ..models.base import utcnow
from ..schemas.finance import (
    FinanceDashboard,
    FinanceSummary,
    FinancialAccountCreate,
    FinancialAccountResponse,
    FinancialAccountUpdate,
    RecentTransaction,
    TransactionCreate,
    TransactionResponse,
)
from ..utils.exceptions import (
    FinancialAccountNotFoundError,
    InsufficientFundsError,
    InvalidStatusTransitionError,
    TransactionNotFoundError,
    ValidationError,
)
from ..utils.logging_config import log_business_event

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")
RECENT_TRANSACTIONS = 10

# Which request block carries the details for each account type.
DETAILS_FIELD: Dict[AccountType, str] = {
    AccountType.BANK: "bank_details",
    AccountType.CARD: "card_details",
    AccountType.PAYPAL: "paypal_details",
}


def generate_transaction_reference() -> str:
    """``txn_<epoch millis>_<9 hex chars>``"""
    return f"txn_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def account_details(account_type: AccountType, data: Any) -> Dict[str, Any]:
    """
    Reduce a details block to what may be stored and shown.

    Bank account and routing numbers are dropped, keeping only the last four
    digits of the account number.
    """
    field = DETAILS_FIELD.get(account_type)
    block = getattr(data, field) if field else None
    if block is None:
        return {}

    if account_type == AccountType.BANK:
        return {
            "bank_name": block.bank_name,
            "account_type": block.account_type,
            "account_last4": block.account_number[-4:],
        }
    return block.model_dump(exclude_none=True)


class FinanceService:
    """Service class for financial accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def _check_details(account_type: AccountType, data: Any, required: bool) -> None:
        field_errors: Dict[str, List[str]] = {}
        expected = DETAILS_FIELD.get(account_type)

        for field in DETAILS_FIELD.values():
            given = getattr(data, field, None) is not None
            if field == expected and required and not given:
                field_errors[field] = [f"{field} is required for {account_type.value} accounts"]
            elif field != expected and given:
                field_errors[field] = [f"{field} does not apply to {account_type.value} accounts"]

        if field_errors:
            raise ValidationError("Invalid account details", field_errors=field_errors)

    async def _clear_other_defaults(self, account: FinancialAccount) -> None:
        """Only one default account per user and account type."""
        await self.db.execute(
            update(FinancialAccount)
            .where(
                FinancialAccount.user_id == account.user_id,
                FinancialAccount.account_type == account.account_type,
                FinancialAccount.id != account.id,
            )
            .values(is_default=False)
            .execution_options(synchronize_session=False)
        )

    async def create_account(self, user: User, data: FinancialAccountCreate) -> FinancialAccount:
        """
        Add a financial account for the caller.

        Raises:
            ValidationError: Missing or mismatched details block
        """
        self._check_details(data.account_type, data, required=True)

        account = FinancialAccount(
            user_id=user.id,
            account_type=data.account_type,
            account_name=data.account_name,
            details=account_details(data.account_type, data),
            currency=data.currency,
            is_default=data.is_default,
            balance_available=ZERO,
            balance_pending=ZERO,
        )
        self.db.add(account)
        await self.db.flush()
        if account.is_default:
            await self._clear_other_defaults(account)
        await self.db.commit()

        log_business_event(
            "financial_account_created",
            {"account_id": str(account.id), "account_type": account.account_type.value},
            user_id=str(user.id),
        )
        return account

    async def list_accounts(self, user: User) -> List[FinancialAccount]:
        result = await self.db.execute(
            select(FinancialAccount)
            .where(FinancialAccount.user_id == user.id, FinancialAccount.is_active.is_(True))
            .order_by(FinancialAccount.created_at)
        )
        return list(result.scalars().all())

    async def get_account(self, account_id: UUID, user: User) -> FinancialAccount:
        """
        Get one of the caller's active accounts.

        Raises:
            FinancialAccountNotFoundError: Missing, deleted or owned by someone else
        """
        account = await self.db.get(FinancialAccount, account_id)
        if account is None or account.user_id != user.id or not account.is_active:
            raise FinancialAccountNotFoundError(str(account_id))
        return account

    async def update_account(
        self, account_id: UUID, user: User, data: FinancialAccountUpdate
    ) -> FinancialAccount:
        account = await self.get_account(account_id, user)
        self._check_details(account.account_type, data, required=False)

        if data.account_name is not None:
            account.account_name = data.account_name.strip()
        if data.currency is not None:
            account.currency = data.currency
        if DETAILS_FIELD.get(account.account_type) in data.model_fields_set:
            account.details = account_details(account.account_type, data)
        if data.is_default is not None:
            account.is_default = data.is_default
            if data.is_default:
                await self._clear_other_defaults(account)

        await self.db.commit()
        return account

    async def delete_account(self, account_id: UUID, user: User) -> None:
        """Soft delete; the account and its history stay in the database."""
        account = await self.get_account(account_id, user)
        account.is_active = False
        account.is_default = False
        await self.db.commit()
        logger.info(f"Deactivated financial account {account.id}")

    async def add_transaction(
        self, account_id: UUID, user: User, data: TransactionCreate
    ) -> FinancialTransaction:
        """
        Record a transaction and apply it to the balance.

        Raises:
            InsufficientFundsError: A debit larger than the available balance
        """
        account = await self.get_account(account_id, user)

        if data.transaction_type == TransactionType.CREDIT:
            await self.db.execute(
                update(FinancialAccount)
                .where(FinancialAccount.id == account.id)
                .values(balance_pending=FinancialAccount.balance_pending + data.amount)
                .execution_options(synchronize_session=False)
            )
        elif data.transaction_type == TransactionType.DEBIT:
            result = await self.db.execute(
                update(FinancialAccount)
                .where(
                    FinancialAccount.id == account.id,
                    FinancialAccount.balance_available >= data.amount,
                )
                .values(balance_available=FinancialAccount.balance_available - data.amount)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                error = InsufficientFundsError(str(account.id), str(data.amount), str(account.balance_available))
                await self.db.rollback()
                raise error

        transaction = FinancialTransaction(
            account_id=account.id,
            reference=generate_transaction_reference(),
            transaction_type=data.transaction_type,
            amount=data.amount,
            currency=data.currency or account.currency,
            description=data.description,
            related_event_id=data.related_event_id,
            status=TransactionStatus.PENDING,
            extra_data=data.metadata,
        )
        self.db.add(transaction)
        await self.db.commit()
        await self.db.refresh(account)

        log_business_event(
            "financial_transaction_added",
            {
                "account_id": str(account.id),
                "reference": transaction.reference,
                "type": transaction.transaction_type.value,
                "amount": str(transaction.amount),
            },
            user_id=str(user.id),
        )
        return transaction

    async def complete_transaction(
        self, account_id: UUID, transaction_id: UUID, user: User
    ) -> FinancialTransaction:
        """
        Mark a pending transaction completed; a completed credit becomes available.

        Raises:
            TransactionNotFoundError: Not a transaction of this account
            InvalidStatusTransitionError: Transaction is not pending
        """
        account = await self.get_account(account_id, user)
        transaction = await self.db.get(FinancialTransaction, transaction_id)
        if transaction is None or transaction.account_id != account.id:
            raise TransactionNotFoundError(str(transaction_id))
        if transaction.status != TransactionStatus.PENDING:
            raise InvalidStatusTransitionError(
                "transaction", transaction.status.value, TransactionStatus.COMPLETED.value
            )

        if transaction.transaction_type == TransactionType.CREDIT:
            await self.db.execute(
                update(FinancialAccount)
                .where(FinancialAccount.id == account.id)
                .values(
                    balance_pending=FinancialAccount.balance_pending - transaction.amount,
                    balance_available=FinancialAccount.balance_available + transaction.amount,
                )
                .execution_options(synchronize_session=False)
            )

        transaction.status = TransactionStatus.COMPLETED
        transaction.completed_at = utcnow()
        await self.db.commit()
        await self.db.refresh(account)
        return transaction

    async def list_transactions(
        self, account_id: UUID, user: User, page: int = 1, size: int = 20
    ) -> Tuple[List[FinancialTransaction], int]:
        """Newest first."""
        account = await self.get_account(account_id, user)
        condition = FinancialTransaction.account_id == account.id

        total = (
            await self.db.execute(select(func.count(FinancialTransaction.id)).where(condition))
        ).scalar() or 0
        result = await self.db.execute(
            select(FinancialTransaction)
            .where(condition)
            .order_by(FinancialTransaction.created_at.desc())
            .offset((page - 1) * size)
            .limit(size)
        )
        return list(result.scalars().all()), total

    async def dashboard(self, user: User) -> FinanceDashboard:
        """Totals over the caller's active accounts plus their latest transactions."""
        accounts = await self.list_accounts(user)
        names = {account.id: account.account_name for account in accounts}

        recent: List[FinancialTransaction] = []
        if accounts:
            result = await self.db.execute(
                select(FinancialTransaction)
                .where(FinancialTransaction.account_id.in_(list(names)))
                .order_by(FinancialTransaction.created_at.desc())
                .limit(RECENT_TRANSACTIONS)
            )
            recent = list(result.scalars().all())

        summary = FinanceSummary(
            total_balance=sum((account.total_balance for account in accounts), ZERO),
            total_pending=sum((account.balance_pending for account in accounts), ZERO),
            total_available=sum((account.balance_available for account in accounts), ZERO),
            total_accounts=len(accounts),
            verified_accounts=sum(1 for account in accounts if account.is_verified),
        )
        return FinanceDashboard(
            summary=summary,
            accounts=[FinancialAccountResponse.from_account(account) for account in accounts],
            recent_transactions=[
                RecentTransaction(
                    **TransactionResponse.model_validate(transaction).model_dump(),
                    account_id=transaction.account_id,
                    account_name=names[transaction.account_id],
                )
                for transaction in recent
            ],
        )
