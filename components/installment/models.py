"""Installment (schedule entry) model for the database."""

import enum

from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, Numeric
from sqlalchemy.orm import relationship

from components.core.database import Base
from components.core.money import ZERO
from components.contract.models import enum_column

# Number carried by reservation, down payment and capital repayment rows
UNNUMBERED = 0


class InstallmentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"
    READJUSTMENT = "readjustment"


class PaymentType(str, enum.Enum):
    RESERVATION = "reservation"
    DOWN_PAYMENT = "down_payment"
    INSTALLMENT = "installment"
    CAPITAL_REPAYMENT = "capital_repayment"


class Installment(Base):
    """One scheduled obligation of a contract."""
    __tablename__ = "installments"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False, index=True)
    number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)  # Principal portion
    interest_amount = Column(Numeric(14, 2), nullable=False)  # Moratory portion
    paid_amount = Column(Numeric(14, 2), nullable=False)
    status = enum_column(InstallmentStatus, nullable=False)
    payment_type = enum_column(PaymentType, nullable=False)
    payment_date = Column(DateTime(timezone=True), nullable=True)
    # 0 for the original schedule, n for rows created by the n-th capital repayment
    generation = Column(Integer, nullable=False, default=0)
    supersedes_id = Column(Integer, ForeignKey("installments.id"), nullable=True)
    readjusted_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    contract = relationship("Contract", back_populates="installments")
    supersedes = relationship("Installment", remote_side=[id])
    payments = relationship("Payment", back_populates="installment", order_by="Payment.id")

    @property
    def amount_due(self):
        return self.amount + self.interest_amount

    @property
    def extra_amount(self):
        """Cash received beyond the installment's requirement."""
        return max(self.paid_amount - self.amount_due, ZERO)

    def __repr__(self) -> str:
        return (
            f"<Installment id={self.id} number={self.number} "
            f"type={self.payment_type} status={self.status} amount={self.amount}>"
        )
