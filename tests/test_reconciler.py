"""Tests for ledger posting and reconciliation."""

from decimal import Decimal

import pytest

from components.core.exceptions import LedgerMismatchError
from components.ledger.models import EntryType
from components.ledger.reconciler import running_balances


class TestPosting:
    """Tests for balance movement through posted entries."""

    def test_post_moves_balance_by_negated_sum(self, make_contract, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)

        delta = reconciler.post(
            contract,
            [
                reconciler.entry(Decimal("300.00"), EntryType.PAYMENT, "Payment"),
                reconciler.entry(Decimal("-25.00"), EntryType.MORATORY_CHARGE, "Charge"),
            ],
        )

        assert delta == Decimal("275.00")
        assert contract.balance == Decimal("725.00")
        assert len(contract.ledger_entries) == 2
        assert reconciler.reconcile(contract).consistent

    def test_receipt_within_balance(self, make_contract, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)

        entries = reconciler.post_receipt(contract, Decimal("400.00"), EntryType.PAYMENT, "Payment")

        assert [e.entry_type for e in entries] == [EntryType.PAYMENT]
        assert contract.balance == Decimal("600.00")

    def test_receipt_beyond_balance_is_credited_back(self, make_contract, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)

        entries = reconciler.post_receipt(contract, Decimal("1200.00"), EntryType.PAYMENT, "Payment")

        assert [e.entry_type for e in entries] == [EntryType.PAYMENT, EntryType.OVERPAYMENT_CREDIT]
        assert entries[1].amount == Decimal("-200.00")
        assert contract.balance == Decimal("0.00")
        assert reconciler.audit(contract).consistent

    def test_reverse_restores_balance(self, make_contract, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)
        entries = reconciler.post_receipt(contract, Decimal("1200.00"), EntryType.PAYMENT, "Payment")

        reversals = reconciler.reverse(contract, entries, "Reversal")

        assert [e.amount for e in reversals] == [Decimal("-1200.00"), Decimal("200.00")]
        assert all(e.entry_type == EntryType.REVERSAL for e in reversals)
        assert contract.balance == Decimal("1000.00")
        assert len(contract.ledger_entries) == 4


class TestReconcile:
    """Tests for drift detection."""

    def test_detects_drift(self, make_contract, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)
        contract.balance = Decimal("999.99")

        assert not reconciler.audit(contract).consistent
        with pytest.raises(LedgerMismatchError):
            reconciler.reconcile(contract)
        assert contract.balance == Decimal("999.99")

    def test_running_balances(self, make_contract, reconciler) -> None:
        contract = make_contract(amount="1000.00", payment_term=2)
        reconciler.post_receipt(contract, Decimal("500.00"), EntryType.PAYMENT, "First")
        reconciler.post_receipt(contract, Decimal("200.00"), EntryType.PAYMENT, "Second")

        balances = [balance for _, balance in running_balances(contract)]

        assert balances == [Decimal("500.00"), Decimal("300.00")]
