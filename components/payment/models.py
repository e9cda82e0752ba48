"""Payment model for the database."""

import enum

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from components.core.database import Base
from components.contract.models import enum_column
from components.installment.models import PaymentType


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    REVERSED = "reversed"


class Payment(Base):
    """Application of cash against one installment, or a capital repayment."""
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False, index=True)
    installment_id = Column(Integer, ForeignKey("installments.id"), nullable=False, index=True)
    amount = Column(Numeric(14, 2), nullable=False)  # Principal
    interest_amount = Column(Numeric(14, 2), nullable=False)  # Moratory
    paid_amount = Column(Numeric(14, 2), nullable=False)  # Cash received
    extra_amount = Column(Numeric(14, 2), nullable=False)
    status = enum_column(PaymentStatus, nullable=False)
    payment_type = enum_column(PaymentType, nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    reversed_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    contract = relationship("Contract", back_populates="payments")
    installment = relationship("Installment", back_populates="payments")
    ledger_entries = relationship("LedgerEntry", back_populates="payment", order_by="LedgerEntry.id")
