"""Ledger reconciliation.

``LedgerReconciler`` is the only code allowed to write ``Contract.balance``.
Every mutation posts signed ledger entries through :meth:`LedgerReconciler.post`,
which moves the balance by exactly the negated entry sum and then checks the
contract-wide invariant ``balance == amount - sum(entries)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Iterable, List, Optional, Tuple

from components.contract.models import Contract, utcnow
from components.core.exceptions import LedgerMismatchError
from components.core.logging import get_logger
from components.core.money import ZERO, money_sum, quantize
from components.ledger.models import EntryType, LedgerEntry
from components.payment.models import Payment

logger = get_logger(__name__)


@dataclass(frozen=True)
class Reconciliation:
    """Result of a reconciliation audit."""

    contract_id: Optional[int]
    amount: Decimal
    balance: Decimal
    ledger_total: Decimal
    expected_balance: Decimal

    @property
    def consistent(self) -> bool:
        return self.expected_balance == self.balance


class LedgerReconciler:
    """Posts ledger entries against a contract and audits the running balance."""

    def __init__(self, now: Callable[[], datetime] = utcnow):
        self.now = now

    def entry(
        self,
        amount: Decimal,
        entry_type: EntryType,
        description: str,
        payment: Optional[Payment] = None,
    ) -> LedgerEntry:
        """Build an unposted entry."""
        return LedgerEntry(
            entry_date=self.now(),
            amount=quantize(amount),
            entry_type=entry_type,
            description=description,
            payment=payment,
        )

    def post(self, contract: Contract, entries: Iterable[LedgerEntry]) -> Decimal:
        """Append ``entries`` to the contract ledger and move the balance.

        Returns the signed sum of the posted entries.
        """
        entries = list(entries)
        balance_before = contract.balance
        delta = money_sum(e.amount for e in entries)
        for entry in entries:
            contract.ledger_entries.append(entry)
        contract.balance = quantize(balance_before - delta)
        self.reconcile(contract)
        return delta

    def post_receipt(
        self,
        contract: Contract,
        cash: Decimal,
        entry_type: EntryType,
        description: str,
        payment: Optional[Payment] = None,
    ) -> List[LedgerEntry]:
        """Post cash received, crediting back whatever exceeds the balance.

        The balance never goes below zero: the excess over the outstanding
        balance is booked as an ``overpayment_credit`` charge so the ledger
        still reconciles.
        """
        entries = [self.entry(cash, entry_type, description, payment)]
        excess = cash - max(contract.balance, ZERO)
        if excess > 0:
            entries.append(
                self.entry(
                    -excess,
                    EntryType.OVERPAYMENT_CREDIT,
                    f"Amount received beyond the outstanding balance ({excess})",
                    payment,
                )
            )
        self.post(contract, entries)
        return entries

    def reverse(
        self,
        contract: Contract,
        entries: Iterable[LedgerEntry],
        description: str,
        payment: Optional[Payment] = None,
    ) -> List[LedgerEntry]:
        """Post a compensating entry for each of ``entries``."""
        reversals = [
            self.entry(-e.amount, EntryType.REVERSAL, description, payment)
            for e in entries
        ]
        self.post(contract, reversals)
        return reversals

    def reconcile(self, contract: Contract) -> Reconciliation:
        """Check ``balance == amount - sum(entries)``; never corrects drift."""
        result = self.audit(contract)
        if not result.consistent:
            logger.error(
                "Ledger mismatch on contract %s: balance %s, ledger implies %s",
                contract.id,
                result.balance,
                result.expected_balance,
            )
            raise LedgerMismatchError(
                f"Contract {contract.id}: balance {result.balance} does not match "
                f"amount {result.amount} minus ledger total {result.ledger_total}"
            )
        return result

    def audit(self, contract: Contract) -> Reconciliation:
        ledger_total = money_sum(e.amount for e in contract.ledger_entries)
        return Reconciliation(
            contract_id=contract.id,
            amount=contract.amount,
            balance=contract.balance,
            ledger_total=ledger_total,
            expected_balance=quantize(contract.amount - ledger_total),
        )


def running_balances(contract: Contract) -> List[Tuple[LedgerEntry, Decimal]]:
    """Pair each entry, in posting order, with the contract balance after it."""
    balance = contract.amount
    pairs = []
    for entry in ordered_entries(contract.ledger_entries):
        balance = quantize(balance - entry.amount)
        pairs.append((entry, balance))
    return pairs


def ordered_entries(entries: Iterable[LedgerEntry]) -> List[LedgerEntry]:
    # Unflushed entries have no id yet and sort after persisted ones
    indexed = list(enumerate(entries))
    indexed.sort(key=lambda pair: (pair[1].id is None, pair[1].id or 0, pair[0]))
    return [entry for _, entry in indexed]
