"""
Financial account and transaction schemas.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..models.finance import (
    AccountType,
    FinancialAccount,
    TransactionStatus,
    TransactionType,
    VerificationStatus,
)


class BankDetails(BaseModel):
    """Bank details as entered; only the bank name, type and last four digits are kept."""
    account_number: str = Field(..., min_length=4, max_length=34)
    routing_number: Optional[str] = Field(None, max_length=34)
    bank_name: Optional[str] = Field(None, max_length=255)
    account_type: Optional[Literal["checking", "savings"]] = None

    @field_validator("account_number")
    @classmethod
    def digits_only(cls, v: str) -> str:
        digits = v.replace(" ", "").replace("-", "")
        if not digits.isdigit():
            raise ValueError("Account number must contain digits only")
        return digits


class CardDetails(BaseModel):
    last_four_digits: str = Field(..., pattern=r"^\d{4}$")
    expiry_month: Optional[int] = Field(None, ge=1, le=12)
    expiry_year: Optional[int] = None
    card_type: Optional[Literal["visa", "mastercard", "amex", "discover", "other"]] = None
    cardholder_name: Optional[str] = Field(None, max_length=255)

    @field_validator("expiry_year")
    @classmethod
    def not_expired(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < datetime.now(timezone.utc).year:
            raise ValueError("Card has expired")
        return v


class PaypalDetails(BaseModel):
    email: EmailStr
    merchant_id: Optional[str] = Field(None, max_length=100)

    @field_validator("email")
    @classmethod
    def lower_email(cls, v: str) -> str:
        return v.lower()


class FinancialAccountCreate(BaseModel):
    """
    New account. Bank, card and PayPal accounts need their matching details
    block; Stripe and wallet accounts need none.
    """
    account_type: AccountType
    account_name: str = Field(..., min_length=1, max_length=255)
    bank_details: Optional[BankDetails] = None
    card_details: Optional[CardDetails] = None
    paypal_details: Optional[PaypalDetails] = None
    currency: str = Field("USD", min_length=3, max_length=3)
    is_default: bool = False

    @field_validator("account_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Account name cannot be blank")
        return v

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class FinancialAccountUpdate(BaseModel):
    account_name: Optional[str] = Field(None, min_length=1, max_length=255)
    bank_details: Optional[BankDetails] = None
    card_details: Optional[CardDetails] = None
    paypal_details: Optional[PaypalDetails] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    is_default: Optional[bool] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class AccountBalance(BaseModel):
    available: Decimal
    pending: Decimal
    total: Decimal


class FinancialAccountResponse(BaseModel):
    id: UUID
    account_type: AccountType
    account_name: str
    details: Dict[str, Any]
    currency: str
    is_default: bool
    is_active: bool
    is_verified: bool
    verification_status: VerificationStatus
    verified_at: Optional[datetime] = None
    balance: AccountBalance
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: FinancialAccount) -> "FinancialAccountResponse":
        return cls(
            id=account.id,
            account_type=account.account_type,
            account_name=account.account_name,
            details=account.details,
            currency=account.currency,
            is_default=account.is_default,
            is_active=account.is_active,
            is_verified=account.is_verified,
            verification_status=account.verification_status,
            verified_at=account.verified_at,
            balance=AccountBalance(
                available=account.balance_available,
                pending=account.balance_pending,
                total=account.total_balance,
            ),
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class TransactionCreate(BaseModel):
    transaction_type: TransactionType
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    currency: Optional[str] = Field(None, min_length=3, max_length=3, description="Defaults to the account currency")
    description: str = Field(..., min_length=1, max_length=500)
    related_event_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> Optional[str]:
        return v.upper() if v else v


class TransactionResponse(BaseModel):
    id: UUID
    reference: str
    transaction_type: TransactionType
    amount: Decimal
    currency: str
    description: str
    related_event_id: Optional[UUID] = None
    status: TransactionStatus
    completed_at: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("extra_data", "metadata")
    )
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionListResponse(BaseModel):
    transactions: List[TransactionResponse]
    total: int
    page: int
    size: int
    pages: int
    has_more: bool


class RecentTransaction(TransactionResponse):
    account_id: UUID
    account_name: str


class FinanceSummary(BaseModel):
    total_balance: Decimal
    total_pending: Decimal
    total_available: Decimal
    total_accounts: int
    verified_accounts: int


class FinanceDashboard(BaseModel):
    summary: FinanceSummary
    accounts: List[FinancialAccountResponse]
    recent_transactions: List[RecentTransaction]
