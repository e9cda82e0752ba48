"""Ledger entry model for the database.

Entries are append-only: once flushed they can be neither updated nor
deleted. Corrections are new, compensating entries.
"""

import enum

from sqlalchemy import Column, Integer, DateTime, ForeignKey, Numeric, String, event
from sqlalchemy.orm import relationship

from components.core.database import Base
from components.core.exceptions import ImmutableLedgerEntryError
from components.contract.models import enum_column


class EntryType(str, enum.Enum):
    PAYMENT = "payment"
    REVERSAL = "reversal"
    CAPITAL_REPAYMENT = "capital_repayment"
    MORATORY_CHARGE = "moratory_charge"
    OVERPAYMENT_CREDIT = "overpayment_credit"


class LedgerEntry(Base):
    """Signed ledger record: negative is a charge, positive is a payment received."""
    __tablename__ = "ledger_entries"

    id = Column(Integer, primary_key=True, index=True)
    contract_id = Column(Integer, ForeignKey("contracts.id"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=True, index=True)
    entry_date = Column(DateTime(timezone=True), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    entry_type = enum_column(EntryType, nullable=False)
    description = Column(String(255), nullable=False, default="")

    # Relationships
    contract = relationship("Contract", back_populates="ledger_entries")
    payment = relationship("Payment", back_populates="ledger_entries")


@event.listens_for(LedgerEntry, "before_update")
def _reject_ledger_update(mapper, connection, target):
    raise ImmutableLedgerEntryError(f"Ledger entry {target.id} is immutable")


@event.listens_for(LedgerEntry, "before_delete")
def _reject_ledger_delete(mapper, connection, target):
    raise ImmutableLedgerEntryError(f"Ledger entry {target.id} cannot be deleted")
