"""Pydantic schemas for ledger data."""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from components.core.schemas import Money
from components.ledger.models import EntryType


class LedgerEntryRead(BaseModel):
    """Schema for a ledger entry with the contract balance after it."""
    id: int
    entry_date: datetime
    amount: Money
    entry_type: EntryType
    payment_id: Optional[int] = None
    description: str
    balance_after: Money


class ReconciliationReport(BaseModel):
    """Schema for a reconciliation audit result."""
    contract_id: int
    amount: Money
    balance: Money
    ledger_total: Money
    expected_balance: Money
    consistent: bool
    currency: str
