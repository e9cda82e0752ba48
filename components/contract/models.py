"""Contract model for the database."""

import enum
from datetime import datetime, timezone

from sqlalchemy import Column, Integer, Date, DateTime, Numeric, Enum
from sqlalchemy.orm import relationship

from components.core.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FinancingType(str, enum.Enum):
    DIRECT = "direct"
    BANK = "bank"
    CASH = "cash"


class ContractStatus(str, enum.Enum):
    PENDING = "pending"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    CLOSED = "closed"
    CANCELLED = "cancelled"


EDITABLE_STATUSES = frozenset(
    {ContractStatus.PENDING, ContractStatus.REJECTED, ContractStatus.SUBMITTED}
)
READ_ONLY_STATUSES = frozenset({ContractStatus.CLOSED, ContractStatus.CANCELLED})


def enum_column(enum_cls, **kwargs) -> Column:
    """String-backed enum column storing the member values."""
    return Column(
        Enum(
            enum_cls,
            native_enum=False,
            length=20,
            values_callable=lambda members: [m.value for m in members],
        ),
        **kwargs,
    )


class Contract(Base):
    """Financed sale of a lot: price, financing terms and the authoritative balance."""
    __tablename__ = "contracts"

    id = Column(Integer, primary_key=True, index=True)
    amount = Column(Numeric(14, 2), nullable=False)
    reserve_amount = Column(Numeric(14, 2), nullable=False)
    down_payment = Column(Numeric(14, 2), nullable=False)
    financing_type = enum_column(FinancingType, nullable=False)
    payment_term = Column(Integer, nullable=True)  # Months, direct financing only
    interest_rate = Column(Numeric(7, 4), nullable=False)
    status = enum_column(ContractStatus, nullable=False)
    balance = Column(Numeric(14, 2), nullable=False)
    start_date = Column(Date, nullable=False)
    max_payment_date = Column(Date, nullable=True)  # Bank/cash deadline
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # Relationships
    installments = relationship(
        "Installment",
        back_populates="contract",
        order_by="Installment.id",
        cascade="all, delete-orphan",
    )
    ledger_entries = relationship(
        "LedgerEntry",
        back_populates="contract",
        order_by="LedgerEntry.id",
        cascade="save-update, merge",
    )
    payments = relationship(
        "Payment",
        back_populates="contract",
        order_by="Payment.id",
        cascade="save-update, merge",
    )

    __mapper_args__ = {"version_id_col": version}

    @property
    def can_edit_schedule(self) -> bool:
        return self.status in EDITABLE_STATUSES

    @property
    def is_read_only(self) -> bool:
        return self.status in READ_ONLY_STATUSES
