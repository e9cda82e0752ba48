"""Tests for applying and undoing installment payments."""

from decimal import Decimal

import pytest

from components.contract.models import ContractStatus
from components.core.exceptions import (
    AlreadyPaidError,
    ContractClosedError,
    InstallmentFrozenError,
    NonPositiveAmountError,
    NotPaidError,
)
from components.installment.models import InstallmentStatus
from components.ledger.models import EntryType
from components.payment.models import PaymentStatus


class TestApply:
    """Tests for PaymentApplier.apply."""

    def test_exact_payment(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]

        payment = applier.apply(contract, first, Decimal("7500.00"))

        assert first.status == InstallmentStatus.PAID
        assert first.paid_amount == Decimal("7500.00")
        assert first.payment_date is not None
        assert payment.status == PaymentStatus.PAID
        assert payment.extra_amount == Decimal("0.00")
        assert contract.balance == Decimal("82500.00")
        assert contract.ledger_entries[-1].description == "Payment of installment #1"

    def test_underpayment_still_marks_paid(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]

        applier.apply(contract, first, Decimal("7000.00"))

        assert first.status == InstallmentStatus.PAID
        assert contract.balance == Decimal("83000.00")

    def test_extra_cash_is_recorded(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]

        payment = applier.apply(contract, first, Decimal("8000.00"), Decimal("100.00"))

        assert payment.paid_amount == Decimal("8100.00")
        assert payment.extra_amount == Decimal("500.00")
        assert first.extra_amount == Decimal("500.00")
        assert contract.balance == Decimal("81900.00")
        # Later installments keep their amounts
        assert contract.installments[1].amount == Decimal("7500.00")

    def test_overpayment_clamps_balance(self, make_contract, applier) -> None:
        contract = make_contract(amount="1000.00", payment_term=1)

        applier.apply(contract, contract.installments[0], Decimal("1500.00"))

        assert contract.balance == Decimal("0.00")
        assert contract.ledger_entries[-1].entry_type == EntryType.OVERPAYMENT_CREDIT

    def test_already_paid(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]
        applier.apply(contract, first, Decimal("7500.00"))

        with pytest.raises(AlreadyPaidError):
            applier.apply(contract, first, Decimal("7500.00"))
        assert contract.balance == Decimal("82500.00")

    @pytest.mark.parametrize("principal,interest", [("0", "0"), ("-1.00", "0"), ("10.00", "-1.00")])
    def test_rejects_bad_amounts(self, make_contract, applier, principal, interest) -> None:
        contract = make_contract()

        with pytest.raises(NonPositiveAmountError):
            applier.apply(contract, contract.installments[0], Decimal(principal), Decimal(interest))
        assert contract.installments[0].status == InstallmentStatus.PENDING

    @pytest.mark.parametrize("status", [ContractStatus.CLOSED, ContractStatus.CANCELLED])
    def test_read_only_contract(self, make_contract, applier, status) -> None:
        contract = make_contract(status=status)

        with pytest.raises(ContractClosedError):
            applier.apply(contract, contract.installments[0], Decimal("7500.00"))

    def test_frozen_installment(self, make_contract, applier) -> None:
        contract = make_contract()
        contract.installments[0].status = InstallmentStatus.READJUSTMENT

        with pytest.raises(InstallmentFrozenError):
            applier.apply(contract, contract.installments[0], Decimal("7500.00"))


class TestUndo:
    """Tests for reverting payments."""

    def test_undo_is_inverse_of_apply(self, make_contract, applier, reconciler) -> None:
        contract = make_contract()
        first = contract.installments[0]
        payment = applier.apply(contract, first, Decimal("8000.00"), Decimal("50.00"))

        applier.undo(contract, payment)

        assert contract.balance == Decimal("90000.00")
        assert first.status == InstallmentStatus.PENDING
        assert first.paid_amount == Decimal("0.00")
        assert first.payment_date is None
        assert payment.status == PaymentStatus.REVERSED
        assert payment.reversed_at is not None
        assert [e.entry_type for e in contract.ledger_entries] == [EntryType.PAYMENT, EntryType.REVERSAL]
        assert reconciler.reconcile(contract).consistent

    def test_undo_reverses_overpayment_credit(self, make_contract, applier) -> None:
        contract = make_contract(amount="1000.00", payment_term=1)
        payment = applier.apply(contract, contract.installments[0], Decimal("1500.00"))

        applier.undo(contract, payment)

        assert contract.balance == Decimal("1000.00")
        assert len(contract.ledger_entries) == 4

    def test_undo_twice(self, make_contract, applier) -> None:
        contract = make_contract()
        payment = applier.apply(contract, contract.installments[0], Decimal("7500.00"))
        applier.undo(contract, payment)

        with pytest.raises(NotPaidError):
            applier.undo(contract, payment)
        assert contract.balance == Decimal("90000.00")

    def test_undo_installment(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]
        payment = applier.apply(contract, first, Decimal("7500.00"))

        undone = applier.undo_installment(contract, first)

        assert undone is payment
        assert first.status == InstallmentStatus.PENDING

    def test_undo_pending_installment(self, make_contract, applier) -> None:
        contract = make_contract()

        with pytest.raises(NotPaidError):
            applier.undo_installment(contract, contract.installments[0])
        assert contract.balance == Decimal("90000.00")
        assert contract.ledger_entries == []

    def test_pay_again_after_undo(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]
        applier.undo(contract, applier.apply(contract, first, Decimal("7500.00")))

        applier.apply(contract, first, Decimal("7500.00"))

        assert contract.balance == Decimal("82500.00")
        assert len(contract.payments) == 2


class TestMoratory:
    """Tests for the moratory interest override."""

    def test_raise_and_lower(self, make_contract, applier, reconciler) -> None:
        contract = make_contract()
        second = contract.installments[1]

        assert applier.update_moratory(contract, second, Decimal("120.00")) == Decimal("120.00")
        assert contract.balance == Decimal("90120.00")
        assert applier.update_moratory(contract, second, Decimal("20.00")) == Decimal("-100.00")
        assert contract.balance == Decimal("90020.00")
        assert second.interest_amount == Decimal("20.00")
        assert all(e.entry_type == EntryType.MORATORY_CHARGE for e in contract.ledger_entries)
        assert reconciler.reconcile(contract).consistent

    def test_unchanged_amount_posts_nothing(self, make_contract, applier) -> None:
        contract = make_contract()

        assert applier.update_moratory(contract, contract.installments[1], Decimal("0")) == Decimal("0")
        assert contract.ledger_entries == []

    def test_paid_installment(self, make_contract, applier) -> None:
        contract = make_contract()
        first = contract.installments[0]
        applier.apply(contract, first, Decimal("7500.00"))

        with pytest.raises(AlreadyPaidError):
            applier.update_moratory(contract, first, Decimal("10.00"))

    def test_negative_amount(self, make_contract, applier) -> None:
        contract = make_contract()

        with pytest.raises(NonPositiveAmountError):
            applier.update_moratory(contract, contract.installments[1], Decimal("-5.00"))

    def test_moratory_then_payment_settles_it(self, make_contract, applier) -> None:
        contract = make_contract()
        second = contract.installments[1]
        applier.update_moratory(contract, second, Decimal("120.00"))

        payment = applier.apply(contract, second, Decimal("7500.00"), Decimal("120.00"))

        assert payment.extra_amount == Decimal("0.00")
        assert contract.balance == Decimal("82500.00")

    def test_lowering_charge_after_overpayment_keeps_balance_at_zero(self, make_contract, applier, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)
        first, second = contract.installments
        applier.update_moratory(contract, second, Decimal("100.00"))
        applier.apply(contract, first, Decimal("1100.00"))
        assert contract.balance == Decimal("0.00")

        change = applier.update_moratory(contract, second, Decimal("0"))

        assert change == Decimal("-100.00")
        assert contract.balance == Decimal("0.00")
        assert [e.entry_type for e in contract.ledger_entries[-2:]] == [
            EntryType.MORATORY_CHARGE,
            EntryType.OVERPAYMENT_CREDIT,
        ]
        assert contract.ledger_entries[-1].amount == Decimal("-100.00")
        assert reconciler.reconcile(contract).consistent

    def test_lowering_charge_partially_covered_by_balance(self, make_contract, applier) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)
        first, second = contract.installments
        applier.update_moratory(contract, second, Decimal("100.00"))
        applier.apply(contract, first, Decimal("1060.00"))

        applier.update_moratory(contract, second, Decimal("0"))

        assert contract.balance == Decimal("0.00")
        assert contract.ledger_entries[-1].amount == Decimal("-60.00")
