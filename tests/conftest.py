"""Pytest configuration and fixtures."""

import asyncio
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

import pytest
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Register every mapped class before any model is instantiated
import components.contract.models  # noqa: F401
import components.installment.models  # noqa: F401
import components.ledger.models  # noqa: F401
import components.payment.models  # noqa: F401
from components.contract.models import Contract, ContractStatus, FinancingType
from components.contract.service import ContractService
from components.core.database import DatabaseManager
from components.installment.schedule import generate_schedule
from components.ledger.reconciler import LedgerReconciler
from components.payment.applier import PaymentApplier
from components.payment.reamortizer import Reamortizer

FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def make_contract() -> Callable[..., Contract]:
    """Factory for an unsaved contract with its generated schedule."""

    def factory(
        amount: str = "90000.00",
        payment_term: Optional[int] = 12,
        reserve_amount: str = "0.00",
        down_payment: str = "0.00",
        financing_type: FinancingType = FinancingType.DIRECT,
        status: ContractStatus = ContractStatus.APPROVED,
        start_date: date = date(2024, 1, 15),
    ) -> Contract:
        contract = Contract(
            amount=Decimal(amount),
            reserve_amount=Decimal(reserve_amount),
            down_payment=Decimal(down_payment),
            financing_type=financing_type,
            payment_term=payment_term,
            interest_rate=Decimal("0"),
            status=status,
            balance=Decimal(amount),
            start_date=start_date,
            max_payment_date=None,
            ledger_entries=[],
            payments=[],
        )
        contract.installments = generate_schedule(contract)
        return contract

    return factory


@pytest.fixture
def reconciler() -> LedgerReconciler:
    return LedgerReconciler(now=fixed_now)


@pytest.fixture
def applier(reconciler: LedgerReconciler) -> PaymentApplier:
    return PaymentApplier(reconciler, now=fixed_now)


@pytest.fixture
def reamortizer(reconciler: LedgerReconciler) -> Reamortizer:
    return Reamortizer(reconciler, now=fixed_now, today=lambda: FIXED_NOW.date())


def memory_engine():
    return create_async_engine("sqlite+aiosqlite://", poolclass=StaticPool)


@pytest.fixture
def run_service() -> Callable[[Callable[[ContractService], Awaitable[Any]]], Any]:
    """Run an async scenario against a ContractService on a fresh in-memory database."""

    def runner(scenario: Callable[[ContractService], Awaitable[Any]]) -> Any:
        async def main() -> Any:
            manager = DatabaseManager(memory_engine())
            await manager.create_tables()
            try:
                async with manager.get_db() as session:
                    return await scenario(ContractService(session, now=fixed_now))
            finally:
                await manager.engine.dispose()

        return asyncio.run(main())

    return runner
