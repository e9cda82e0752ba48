"""Pydantic schemas for payments."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict

from components.core.money import ZERO
from components.core.schemas import Money
from components.installment.models import PaymentType
from components.payment.models import PaymentStatus


class PaymentApply(BaseModel):
    """Schema for applying a payment to an installment."""
    principal_amount: Money
    interest_amount: Money = ZERO


class CapitalRepaymentCreate(BaseModel):
    """Schema for a capital repayment request."""
    capital_repayment_amount: Money


class PaymentRead(BaseModel):
    """Schema for payment response."""
    id: int
    installment_id: int
    amount: Money
    interest_amount: Money
    paid_amount: Money
    extra_amount: Money
    status: PaymentStatus
    payment_type: PaymentType
    payment_date: datetime
    approved_at: Optional[datetime] = None
    reversed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
