"""Pydantic schemas for installments."""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel

from components.core.schemas import Money
from components.installment.models import InstallmentStatus, PaymentType


class InstallmentRead(BaseModel):
    """Schema for one schedule row, with overdue days as of the snapshot date."""
    id: int
    number: int
    due_date: date
    amount: Money
    interest_amount: Money
    paid_amount: Money
    extra_amount: Money
    status: InstallmentStatus
    payment_type: PaymentType
    generation: int
    supersedes_id: Optional[int] = None
    payment_date: Optional[datetime] = None
    readjusted_at: Optional[datetime] = None
    overdue_days: int = 0
    is_overdue: bool = False


class MoratoryUpdate(BaseModel):
    """Schema for a manual moratory interest override."""
    interest_amount: Money


class ReadjustedInstallment(BaseModel):
    """Schema for a superseded row and the row that replaced it."""
    superseded: InstallmentRead
    replacement: InstallmentRead
