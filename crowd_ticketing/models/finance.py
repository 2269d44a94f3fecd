"""
Financial account and transaction models.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, DateTime, Enum, ForeignKey, Numeric, String, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base

if TYPE_CHECKING:
    from .user import User


class AccountType(enum.Enum):
    BANK = "bank"
    CARD = "card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    WALLET = "wallet"


class VerificationStatus(enum.Enum):
    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class TransactionType(enum.Enum):
    CREDIT = "credit"
    DEBIT = "debit"
    TRANSFER = "transfer"
    REFUND = "refund"
    FEE = "fee"


class TransactionStatus(enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class FinancialAccount(Base):
    """
    A payout or payment account owned by a user.

    ``details`` only ever holds display data (bank name, last four digits,
    PayPal email); full account and card numbers are never stored.
    """

    __tablename__ = "financial_accounts"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    account_type: Mapped[AccountType] = mapped_column(Enum(AccountType), nullable=False, index=True)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    balance_available: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)
    balance_pending: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0.00"), nullable=False)

    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(VerificationStatus),
        default=VerificationStatus.UNVERIFIED,
        nullable=False
    )
    verified_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    user: Mapped["User"] = relationship("User")
    transactions: Mapped[List["FinancialTransaction"]] = relationship(
        "FinancialTransaction",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="FinancialTransaction.created_at.desc()"
    )

    __table_args__ = (
        CheckConstraint("balance_pending >= 0", name="ck_financial_accounts_pending_non_negative"),
    )

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED

    @property
    def total_balance(self) -> Decimal:
        return self.balance_available + self.balance_pending

    def __repr__(self) -> str:
        return f"<FinancialAccount(id={self.id}, type={self.account_type.value}, name='{self.account_name}')>"


class FinancialTransaction(Base):
    """One movement of money recorded against an account."""

    __tablename__ = "financial_transactions"

    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("financial_accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    reference: Mapped[str] = mapped_column(String(64), unique=True, nullable=False, index=True)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), default="USD", nullable=False)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    related_event_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("events.id", ondelete="SET NULL"),
        nullable=True
    )
    status: Mapped[TransactionStatus] = mapped_column(
        Enum(TransactionStatus),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    extra_data: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)

    account: Mapped["FinancialAccount"] = relationship("FinancialAccount", back_populates="transactions")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_financial_transactions_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<FinancialTransaction(reference='{self.reference}', type={self.transaction_type.value})>"
