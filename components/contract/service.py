"""Contract operations: one transaction per call, scoped to one contract.

Every mutating call takes the in-process contract lock, reads the contract
row ``FOR UPDATE`` with its full schedule and ledger, applies the change
through the payment applier or the re-amortizer, and commits schedule,
ledger and balance together. Any failure rolls all of it back. Results are
returned as pydantic snapshots, never as live ORM objects.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime
from decimal import Decimal
from typing import AsyncIterator, Callable, Dict, FrozenSet, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from components.contract import schemas
from components.contract.models import Contract, ContractStatus, utcnow
from components.contract.repository import ContractRepository
from components.core import config
from components.core.exceptions import (
    ConcurrentModificationError,
    ContractClosedError,
    EntityNotFoundError,
    InvalidStateError,
    InvalidStatusTransitionError,
    ScheduleLockedError,
)
from components.core.locks import ContractLockRegistry
from components.core.logging import get_logger
from components.core.money import ZERO, money_sum
from components.installment import moratory
from components.installment.models import Installment, InstallmentStatus
from components.installment.schedule import financed_principal, generate_schedule
from components.installment.schemas import InstallmentRead, ReadjustedInstallment
from components.ledger.reconciler import LedgerReconciler, running_balances
from components.ledger.schemas import LedgerEntryRead, ReconciliationReport
from components.payment.applier import PaymentApplier
from components.payment.models import Payment
from components.payment.reamortizer import Reamortizer
from components.payment.schemas import PaymentRead

logger = get_logger(__name__)

STATUS_TRANSITIONS: Dict[ContractStatus, FrozenSet[ContractStatus]] = {
    ContractStatus.PENDING: frozenset({ContractStatus.SUBMITTED, ContractStatus.CANCELLED}),
    ContractStatus.SUBMITTED: frozenset(
        {ContractStatus.APPROVED, ContractStatus.REJECTED, ContractStatus.CANCELLED}
    ),
    ContractStatus.REJECTED: frozenset({ContractStatus.SUBMITTED, ContractStatus.CANCELLED}),
    ContractStatus.APPROVED: frozenset({ContractStatus.CLOSED, ContractStatus.CANCELLED}),
    ContractStatus.CLOSED: frozenset(),
    ContractStatus.CANCELLED: frozenset(),
}


class ContractService:
    """Entry point for every contract, payment and ledger operation."""

    def __init__(
        self,
        session: AsyncSession,
        locks: Optional[ContractLockRegistry] = None,
        now: Callable[[], datetime] = utcnow,
        today: Optional[Callable[[], date]] = None,
    ):
        self.session = session
        self.repo = ContractRepository(session)
        self.locks = locks or ContractLockRegistry()
        self.now = now
        self.today = today or (lambda: self.now().date())
        self.reconciler = LedgerReconciler(now)
        self.applier = PaymentApplier(self.reconciler, now)
        self.reamortizer = Reamortizer(self.reconciler, now, self.today)

    @asynccontextmanager
    async def _mutation(self, contract_id: int) -> AsyncIterator[Contract]:
        async with self.locks.hold(contract_id):
            try:
                contract = await self.repo.get(contract_id, for_update=True)
                yield contract
                await self.session.commit()
            except StaleDataError as exc:
                await self.session.rollback()
                raise ConcurrentModificationError(
                    f"Contract {contract_id} was modified by another transaction"
                ) from exc
            except Exception:
                await self.session.rollback()
                raise

    def _audit(self, operation: str, contract: Contract, balance_before: Decimal, **fields) -> None:
        audit = {
            "operation": operation,
            "contract_id": contract.id,
            "balance_before": str(balance_before),
            "balance_after": str(contract.balance),
            **{k: str(v) for k, v in fields.items()},
        }
        logger.info(
            "%s on contract %s: balance %s -> %s %s",
            operation,
            contract.id,
            balance_before,
            contract.balance,
            " ".join(f"{k}={v}" for k, v in fields.items()),
            extra={"audit": audit},
        )

    # Reads

    async def get_contract(self, contract_id: int, as_of: Optional[date] = None) -> schemas.ContractSnapshot:
        contract = await self.repo.get(contract_id)
        return self._snapshot(contract, as_of or self.today())

    async def reconcile(self, contract_id: int) -> ReconciliationReport:
        """Audit the ledger against the balance; raises ``LedgerMismatchError`` on drift."""
        contract = await self.repo.get(contract_id)
        result = self.reconciler.reconcile(contract)
        return ReconciliationReport(
            contract_id=contract.id,
            amount=result.amount,
            balance=result.balance,
            ledger_total=result.ledger_total,
            expected_balance=result.expected_balance,
            consistent=result.consistent,
            currency=config.get_settings().CURRENCY,
        )

    # Contract lifecycle

    async def create_contract(self, data: schemas.ContractCreate) -> schemas.ContractSnapshot:
        contract = Contract(
            amount=data.amount,
            reserve_amount=data.reserve_amount,
            down_payment=data.down_payment,
            financing_type=data.financing_type,
            payment_term=data.payment_term,
            interest_rate=data.interest_rate,
            status=ContractStatus.PENDING,
            balance=data.amount,
            start_date=data.start_date,
            max_payment_date=data.max_payment_date,
            created_at=self.now(),
            ledger_entries=[],
            payments=[],
        )
        contract.installments = generate_schedule(contract)
        self.repo.add(contract)
        try:
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        logger.info(
            "Created %s contract %s: amount %s, %d schedule rows",
            contract.financing_type.value,
            contract.id,
            contract.amount,
            len(contract.installments),
        )
        return self._snapshot(contract, self.today())

    async def update_terms(self, contract_id: int, data: schemas.ContractTermsUpdate) -> schemas.ContractSnapshot:
        """Edit financing terms and regenerate the schedule.

        Only allowed while the status permits schedule edits and before
        anything has been posted to the ledger.
        """
        async with self._mutation(contract_id) as contract:
            if contract.is_read_only:
                raise ContractClosedError(f"Contract {contract_id} is {contract.status.value}")
            if not contract.can_edit_schedule:
                raise ScheduleLockedError(
                    f"Contract {contract_id} is {contract.status.value}; terms can no longer be edited"
                )
            if contract.ledger_entries:
                raise ScheduleLockedError(
                    f"Contract {contract_id} already has ledger entries; terms can no longer be edited"
                )

            if data.payment_term is not None:
                contract.payment_term = data.payment_term
                if data.max_payment_date is None:
                    contract.max_payment_date = None
            if data.reserve_amount is not None:
                contract.reserve_amount = data.reserve_amount
            if data.down_payment is not None:
                contract.down_payment = data.down_payment
            if data.max_payment_date is not None:
                contract.max_payment_date = data.max_payment_date

            rows = generate_schedule(contract)
            contract.installments.clear()
            contract.installments.extend(rows)

        logger.info("Regenerated schedule of contract %s: %d rows", contract.id, len(rows))
        return self._snapshot(contract, self.today())

    async def transition_status(self, contract_id: int, status: ContractStatus) -> schemas.ContractSnapshot:
        async with self._mutation(contract_id) as contract:
            current = contract.status
            if contract.is_read_only:
                raise ContractClosedError(f"Contract {contract_id} is {current.value}")
            if status not in STATUS_TRANSITIONS[current]:
                raise InvalidStatusTransitionError(
                    f"Contract {contract_id} cannot move from {current.value} to {status.value}"
                )
            if status == ContractStatus.CLOSED and contract.balance != 0:
                raise InvalidStateError(
                    f"Contract {contract_id} still owes {contract.balance} and cannot be closed"
                )
            contract.status = status

        logger.info("Contract %s status %s -> %s", contract.id, current.value, status.value)
        return self._snapshot(contract, self.today())

    # Payments

    async def apply_payment(
        self,
        installment_id: int,
        principal_amount: Decimal,
        interest_amount: Decimal = ZERO,
    ) -> schemas.PaymentResult:
        contract_id = await self.repo.contract_id_for_installment(installment_id)
        async with self._mutation(contract_id) as contract:
            installment = self._installment(contract, installment_id)
            balance_before = contract.balance
            payment = self.applier.apply(contract, installment, principal_amount, interest_amount)

        self._audit(
            "apply_payment",
            contract,
            balance_before,
            installment_id=installment.id,
            payment_id=payment.id,
            paid_amount=payment.paid_amount,
            extra_amount=payment.extra_amount,
        )
        return self._payment_result(contract, payment, installment)

    async def undo_payment(self, payment_id: int) -> schemas.PaymentResult:
        contract_id = await self.repo.contract_id_for_payment(payment_id)
        async with self._mutation(contract_id) as contract:
            payment = self._payment(contract, payment_id)
            balance_before = contract.balance
            installment = self.applier.undo(contract, payment)

        self._audit("undo_payment", contract, balance_before, payment_id=payment.id, installment_id=installment.id)
        return self._payment_result(contract, payment, installment)

    async def undo_installment_payment(self, installment_id: int) -> schemas.PaymentResult:
        contract_id = await self.repo.contract_id_for_installment(installment_id)
        async with self._mutation(contract_id) as contract:
            installment = self._installment(contract, installment_id)
            balance_before = contract.balance
            payment = self.applier.undo_installment(contract, installment)

        self._audit("undo_payment", contract, balance_before, payment_id=payment.id, installment_id=installment.id)
        return self._payment_result(contract, payment, installment)

    async def apply_capital_repayment(self, contract_id: int, amount: Decimal) -> schemas.CapitalRepaymentResult:
        async with self._mutation(contract_id) as contract:
            balance_before = contract.balance
            result = self.reamortizer.apply_capital_repayment(contract, amount)

        self._audit(
            "capital_repayment",
            contract,
            balance_before,
            amount=result.payment.paid_amount,
            generation=result.generation,
            affected=result.affected_count,
            pending_before=result.pending_before,
            pending_after=result.pending_after,
        )
        as_of = self.today()
        return schemas.CapitalRepaymentResult(
            contract=schemas.ContractRead.model_validate(contract),
            payment=PaymentRead.model_validate(result.payment),
            capital_installment=self._installment_read(result.capital_row, as_of),
            readjusted=[
                ReadjustedInstallment(
                    superseded=self._installment_read(old, as_of),
                    replacement=self._installment_read(new, as_of),
                )
                for old, new in result.pairs
            ],
            affected_count=result.affected_count,
            generation=result.generation,
            pending_before=result.pending_before,
            pending_after=result.pending_after,
        )

    async def update_moratory(self, installment_id: int, interest_amount: Decimal) -> schemas.MoratoryResult:
        contract_id = await self.repo.contract_id_for_installment(installment_id)
        async with self._mutation(contract_id) as contract:
            installment = self._installment(contract, installment_id)
            balance_before = contract.balance
            previous = installment.interest_amount
            change = self.applier.update_moratory(contract, installment, interest_amount)

        self._audit(
            "update_moratory",
            contract,
            balance_before,
            installment_id=installment.id,
            interest_before=previous,
            interest_after=installment.interest_amount,
        )
        return schemas.MoratoryResult(
            installment=self._installment_read(installment, self.today()),
            change=change,
            contract=schemas.ContractRead.model_validate(contract),
        )

    # Helpers

    @staticmethod
    def _installment(contract: Contract, installment_id: int) -> Installment:
        for installment in contract.installments:
            if installment.id == installment_id:
                return installment
        raise EntityNotFoundError(f"Installment {installment_id} not found")

    @staticmethod
    def _payment(contract: Contract, payment_id: int) -> Payment:
        for payment in contract.payments:
            if payment.id == payment_id:
                return payment
        raise EntityNotFoundError(f"Payment {payment_id} not found")

    @staticmethod
    def _installment_read(installment: Installment, as_of: date) -> InstallmentRead:
        return InstallmentRead(
            id=installment.id,
            number=installment.number,
            due_date=installment.due_date,
            amount=installment.amount,
            interest_amount=installment.interest_amount,
            paid_amount=installment.paid_amount,
            extra_amount=installment.extra_amount,
            status=installment.status,
            payment_type=installment.payment_type,
            generation=installment.generation,
            supersedes_id=installment.supersedes_id,
            payment_date=installment.payment_date,
            readjusted_at=installment.readjusted_at,
            overdue_days=(
                moratory.overdue_days(installment.due_date, as_of)
                if installment.status == InstallmentStatus.PENDING
                else 0
            ),
            is_overdue=moratory.is_overdue(installment, as_of),
        )

    def _payment_result(self, contract: Contract, payment: Payment, installment: Installment) -> schemas.PaymentResult:
        return schemas.PaymentResult(
            payment=PaymentRead.model_validate(payment),
            installment=self._installment_read(installment, self.today()),
            contract=schemas.ContractRead.model_validate(contract),
        )

    def _snapshot(self, contract: Contract, as_of: date) -> schemas.ContractSnapshot:
        installments = sorted(
            contract.installments,
            key=lambda i: (i.due_date, i.number, i.generation, i.id or 0),
        )
        active = [i for i in installments if i.status != InstallmentStatus.READJUSTMENT]
        pending = [i for i in active if i.status == InstallmentStatus.PENDING]
        overdue = moratory.overdue_installments(pending, as_of)

        summary = schemas.ScheduleSummary(
            financed_principal=financed_principal(contract),
            pending_principal=money_sum(i.amount for i in pending),
            pending_interest=money_sum(i.interest_amount for i in pending),
            total_paid=money_sum(i.paid_amount for i in active if i.status == InstallmentStatus.PAID),
            overdue_count=len(overdue),
            next_due_date=min((i.due_date for i in pending), default=None),
        )
        return schemas.ContractSnapshot(
            contract=schemas.ContractRead.model_validate(contract),
            installments=[self._installment_read(i, as_of) for i in installments],
            ledger_entries=[
                LedgerEntryRead(
                    id=entry.id,
                    entry_date=entry.entry_date,
                    amount=entry.amount,
                    entry_type=entry.entry_type,
                    payment_id=entry.payment_id,
                    description=entry.description,
                    balance_after=balance,
                )
                for entry, balance in running_balances(contract)
            ],
            payments=[PaymentRead.model_validate(p) for p in contract.payments],
            summary=summary,
            as_of=as_of,
        )
