"""Capital repayment and re-amortization of the remaining schedule.

A capital repayment lowers the outstanding principal out of schedule. The
pending installments are recomputed so that they sum to the old pending total
minus the repayment (never below zero), split with the same remainder-on-last
rule as the initial schedule.

Rows are never rewritten: every recomputed installment is frozen with status
``readjustment`` and a replacement row carrying the new amount is inserted,
pointing back at the row it supersedes. Each repayment therefore leaves its
own generation of rows in the schedule.

Bank and cash contracts carry no installment rows; their capital repayments
only lower the balance and readjust nothing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Callable, List, Tuple

from components.contract.models import Contract, FinancingType, utcnow
from components.core.exceptions import NoPendingInstallmentsError, NonPositiveAmountError
from components.core.logging import get_logger
from components.core.money import ZERO, money_sum, quantize, split_evenly
from components.installment import moratory
from components.installment.models import (
    UNNUMBERED,
    Installment,
    InstallmentStatus,
    PaymentType,
)
from components.ledger.models import EntryType
from components.ledger.reconciler import LedgerReconciler
from components.payment.applier import ensure_mutable
from components.payment.models import Payment, PaymentStatus

logger = get_logger(__name__)


@dataclass
class CapitalRepaymentResult:
    """Outcome of one capital repayment."""

    payment: Payment
    capital_row: Installment
    generation: int
    pending_before: Decimal
    pending_after: Decimal
    pairs: List[Tuple[Installment, Installment]] = field(default_factory=list)

    @property
    def affected_count(self) -> int:
        return len(self.pairs)


class Reamortizer:
    """Applies capital repayments and rebuilds the pending part of the schedule."""

    def __init__(
        self,
        reconciler: LedgerReconciler,
        now: Callable[[], datetime] = utcnow,
        today: Callable[[], date] = lambda: utcnow().date(),
    ):
        self.reconciler = reconciler
        self.now = now
        self.today = today

    def apply_capital_repayment(self, contract: Contract, extra_principal: Decimal) -> CapitalRepaymentResult:
        extra_principal = quantize(extra_principal)
        if extra_principal <= 0:
            raise NonPositiveAmountError("Capital repayment amount must be positive")
        ensure_mutable(contract)

        pending = moratory.adjustable(contract.installments)
        # Bank and cash contracts have no schedule; the repayment only lowers the balance
        if not pending and contract.financing_type == FinancingType.DIRECT:
            raise NoPendingInstallmentsError(
                f"Contract {contract.id} has no pending installments to re-amortize"
            )

        now = self.now()
        generation = max((i.generation for i in contract.installments), default=0) + 1

        capital_row = Installment(
            number=UNNUMBERED,
            due_date=self.today(),
            amount=extra_principal,
            interest_amount=ZERO,
            paid_amount=extra_principal,
            status=InstallmentStatus.PAID,
            payment_type=PaymentType.CAPITAL_REPAYMENT,
            payment_date=now,
            generation=generation,
        )
        contract.installments.append(capital_row)

        payment = Payment(
            amount=extra_principal,
            interest_amount=ZERO,
            paid_amount=extra_principal,
            extra_amount=ZERO,
            status=PaymentStatus.PAID,
            payment_type=PaymentType.CAPITAL_REPAYMENT,
            payment_date=now,
            approved_at=now,
            installment=capital_row,
        )
        contract.payments.append(payment)
        self.reconciler.post_receipt(
            contract,
            extra_principal,
            EntryType.CAPITAL_REPAYMENT,
            f"Capital repayment (readjustment {generation})",
            payment,
        )

        pending_before = money_sum(i.amount for i in pending)
        pending_after = max(pending_before - extra_principal, ZERO)
        result = CapitalRepaymentResult(
            payment=payment,
            capital_row=capital_row,
            generation=generation,
            pending_before=pending_before,
            pending_after=pending_after,
        )

        amounts = split_evenly(pending_after, len(pending)) if pending else []
        for superseded, amount in zip(pending, amounts):
            superseded.status = InstallmentStatus.READJUSTMENT
            superseded.readjusted_at = now
            replacement = Installment(
                number=superseded.number,
                due_date=superseded.due_date,
                amount=amount,
                interest_amount=superseded.interest_amount,
                paid_amount=ZERO,
                status=InstallmentStatus.PENDING,
                payment_type=PaymentType.INSTALLMENT,
                generation=generation,
                supersedes=superseded,
            )
            contract.installments.append(replacement)
            result.pairs.append((superseded, replacement))

        logger.debug(
            "Contract %s re-amortized %d installments: %s -> %s",
            contract.id,
            result.affected_count,
            pending_before,
            pending_after,
        )
        return result
