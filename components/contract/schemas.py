"""Pydantic schemas for contract data validation."""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field

from components.contract.models import ContractStatus, FinancingType
from components.core.money import ZERO
from components.core.schemas import Money
from components.installment.schemas import InstallmentRead, ReadjustedInstallment
from components.ledger.schemas import LedgerEntryRead
from components.payment.schemas import PaymentRead


class ContractCreate(BaseModel):
    """Schema for contract creation (reservation)."""
    amount: Money
    reserve_amount: Money = ZERO
    down_payment: Money = ZERO
    financing_type: FinancingType
    payment_term: Optional[int] = None
    interest_rate: Decimal = Field(default=Decimal("0"), ge=0)
    start_date: date
    max_payment_date: Optional[date] = None


class ContractTermsUpdate(BaseModel):
    """Schema for an administrative edit of the financing terms."""
    payment_term: Optional[int] = None
    reserve_amount: Optional[Money] = None
    down_payment: Optional[Money] = None
    max_payment_date: Optional[date] = None


class ContractStatusUpdate(BaseModel):
    """Schema for a contract status transition."""
    status: ContractStatus


class ContractRead(BaseModel):
    """Schema for contract response."""
    id: int
    amount: Money
    reserve_amount: Money
    down_payment: Money
    financing_type: FinancingType
    payment_term: Optional[int] = None
    interest_rate: Decimal
    status: ContractStatus
    balance: Money
    start_date: date
    max_payment_date: Optional[date] = None
    version: int
    created_at: datetime
    can_edit_schedule: bool
    is_read_only: bool

    model_config = ConfigDict(from_attributes=True)


class ScheduleSummary(BaseModel):
    """Schema for aggregate figures over the active schedule."""
    financed_principal: Money
    pending_principal: Money
    pending_interest: Money
    total_paid: Money
    overdue_count: int
    next_due_date: Optional[date] = None


class ContractSnapshot(BaseModel):
    """Schema for the full contract aggregate: contract, schedule and ledger."""
    contract: ContractRead
    installments: List[InstallmentRead]
    ledger_entries: List[LedgerEntryRead]
    payments: List[PaymentRead]
    summary: ScheduleSummary
    as_of: date


class PaymentResult(BaseModel):
    """Schema for the result of applying or undoing a payment."""
    payment: PaymentRead
    installment: InstallmentRead
    contract: ContractRead


class CapitalRepaymentResult(BaseModel):
    """Schema for the result of a capital repayment."""
    contract: ContractRead
    payment: PaymentRead
    capital_installment: InstallmentRead
    readjusted: List[ReadjustedInstallment]
    affected_count: int
    generation: int
    pending_before: Money
    pending_after: Money


class MoratoryResult(BaseModel):
    """Schema for the result of a moratory override."""
    installment: InstallmentRead
    change: Money
    contract: ContractRead
