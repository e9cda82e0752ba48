"""Overdue day counting for installments.

The penalty amount itself is never computed here; it is set manually through
the moratory override. This module only derives day counts and decides which
rows are still open to recalculation.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, List

from components.installment.models import Installment, InstallmentStatus, PaymentType


def overdue_days(due_date: date, as_of: date) -> int:
    return max(0, (as_of - due_date).days)


def is_overdue(installment: Installment, as_of: date) -> bool:
    return installment.status == InstallmentStatus.PENDING and overdue_days(installment.due_date, as_of) > 0


def overdue_installments(installments: Iterable[Installment], as_of: date) -> List[Installment]:
    return [i for i in installments if is_overdue(i, as_of)]


def adjustable(installments: Iterable[Installment]) -> List[Installment]:
    """Pending scheduled installments, in schedule order.

    Paid rows are history and readjustment rows are frozen, so neither is
    eligible for re-amortization. Reservation and down payment rows are not
    part of the amortized principal.
    """
    rows = [
        i
        for i in installments
        if i.status == InstallmentStatus.PENDING and i.payment_type == PaymentType.INSTALLMENT
    ]
    return sorted(rows, key=lambda i: (i.due_date, i.number))
