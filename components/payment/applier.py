"""Applying, undoing and surcharging installment payments.

All balance movements go through the ledger reconciler; this module only
decides which entries to post and how installment and payment rows change.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, List

from components.contract.models import Contract, utcnow
from components.core.exceptions import (
    AlreadyPaidError,
    ContractClosedError,
    EntityNotFoundError,
    InstallmentFrozenError,
    IrreversiblePaymentError,
    NonPositiveAmountError,
    NotPaidError,
)
from components.core.money import ZERO, quantize
from components.installment.models import Installment, InstallmentStatus, PaymentType
from components.ledger.models import EntryType, LedgerEntry
from components.ledger.reconciler import LedgerReconciler
from components.payment.models import Payment, PaymentStatus


def ensure_mutable(contract: Contract) -> None:
    if contract.is_read_only:
        raise ContractClosedError(f"Contract {contract.id} is {contract.status.value} and cannot be modified")


def ensure_actionable(installment: Installment) -> None:
    if installment.status == InstallmentStatus.READJUSTMENT:
        raise InstallmentFrozenError(
            f"Installment {installment.id} was superseded by a readjustment and is frozen"
        )


def find_installment(contract: Contract, payment: Payment) -> Installment:
    if payment.installment_id is None:
        return payment.installment
    for installment in contract.installments:
        if installment.id == payment.installment_id:
            return installment
    raise EntityNotFoundError(f"Installment {payment.installment_id} not found on contract {contract.id}")


def entries_for(contract: Contract, payment: Payment) -> List[LedgerEntry]:
    """Ledger entries originally posted for ``payment`` (reversals excluded)."""
    if payment.id is not None:
        linked = [e for e in contract.ledger_entries if e.payment_id == payment.id]
    else:
        linked = [e for e in contract.ledger_entries if e.payment is payment]
    return [e for e in linked if e.entry_type != EntryType.REVERSAL]


class PaymentApplier:
    """Applies cash to installments and reverses prior applications."""

    def __init__(self, reconciler: LedgerReconciler, now: Callable[[], datetime] = utcnow):
        self.reconciler = reconciler
        self.now = now

    def apply(
        self,
        contract: Contract,
        installment: Installment,
        principal_amount: Decimal,
        interest_amount: Decimal = ZERO,
    ) -> Payment:
        """Mark ``installment`` paid with the given principal and moratory amounts.

        Cash beyond the installment's requirement is kept on the payment as
        ``extra_amount``: it lowers the balance but is not spread over later
        installments.
        """
        principal_amount = quantize(principal_amount)
        interest_amount = quantize(interest_amount)
        if principal_amount < 0 or interest_amount < 0:
            raise NonPositiveAmountError("Payment amounts must not be negative")
        cash = principal_amount + interest_amount
        if cash <= 0:
            raise NonPositiveAmountError("Payment amount must be positive")

        ensure_mutable(contract)
        ensure_actionable(installment)
        if installment.status == InstallmentStatus.PAID:
            raise AlreadyPaidError(f"Installment {installment.id} is already paid")

        now = self.now()
        installment.paid_amount = cash
        installment.status = InstallmentStatus.PAID
        installment.payment_date = now

        payment = Payment(
            amount=principal_amount,
            interest_amount=interest_amount,
            paid_amount=cash,
            extra_amount=max(cash - installment.amount_due, ZERO),
            status=PaymentStatus.PAID,
            payment_type=installment.payment_type,
            payment_date=now,
            approved_at=now,
            installment=installment,
        )
        contract.payments.append(payment)

        label = installment.payment_type.value.replace("_", " ")
        if installment.payment_type == PaymentType.INSTALLMENT:
            label = f"installment #{installment.number}"
        self.reconciler.post_receipt(contract, cash, EntryType.PAYMENT, f"Payment of {label}", payment)
        return payment

    def undo(self, contract: Contract, payment: Payment) -> Installment:
        """Revert ``payment``: its installment returns to pending and the balance is restored."""
        ensure_mutable(contract)
        if payment.payment_type == PaymentType.CAPITAL_REPAYMENT:
            raise IrreversiblePaymentError(
                f"Payment {payment.id} is a capital repayment; its readjustment cannot be undone"
            )
        installment = find_installment(contract, payment)
        ensure_actionable(installment)
        if payment.status != PaymentStatus.PAID or installment.status != InstallmentStatus.PAID:
            raise NotPaidError(f"Payment {payment.id} is not applied; nothing to undo")

        self.reconciler.reverse(
            contract,
            entries_for(contract, payment),
            f"Reversal of payment {payment.id}",
            payment,
        )

        installment.status = InstallmentStatus.PENDING
        installment.paid_amount = ZERO
        installment.payment_date = None
        payment.status = PaymentStatus.REVERSED
        payment.reversed_at = self.now()
        return installment

    def undo_installment(self, contract: Contract, installment: Installment) -> Payment:
        """Revert the active payment of ``installment``."""
        ensure_mutable(contract)
        ensure_actionable(installment)
        if installment.status != InstallmentStatus.PAID:
            raise NotPaidError(f"Installment {installment.id} is not paid; nothing to undo")
        for payment in reversed(contract.payments):
            if payment.status == PaymentStatus.PAID and find_installment(contract, payment) is installment:
                self.undo(contract, payment)
                return payment
        raise NotPaidError(f"Installment {installment.id} has no active payment")

    def update_moratory(self, contract: Contract, installment: Installment, interest_amount: Decimal) -> Decimal:
        """Override the moratory interest of a pending installment.

        The difference against the current amount is booked as a charge,
        or as a credit when lowered. A credit never takes the balance below
        zero. Returns the signed change.
        """
        interest_amount = quantize(interest_amount)
        if interest_amount < 0:
            raise NonPositiveAmountError("Moratory interest must not be negative")
        ensure_mutable(contract)
        ensure_actionable(installment)
        if installment.status == InstallmentStatus.PAID:
            raise AlreadyPaidError(f"Installment {installment.id} is already paid")

        change = interest_amount - installment.interest_amount
        installment.interest_amount = interest_amount
        description = f"Moratory interest on installment #{installment.number} set to {interest_amount}"
        if change > 0:
            self.reconciler.post(
                contract,
                [self.reconciler.entry(-change, EntryType.MORATORY_CHARGE, description)],
            )
        elif change < 0:
            # Credit beyond the outstanding balance is offset by an overpayment_credit entry
            self.reconciler.post_receipt(contract, -change, EntryType.MORATORY_CHARGE, description)
        return change
