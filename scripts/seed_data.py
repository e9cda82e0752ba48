"""Script to seed demo data into the database."""

import asyncio
from datetime import date
from decimal import Decimal

from components.contract.models import FinancingType
from components.contract.schemas import ContractCreate
from components.contract.service import ContractService
from components.core import config
from components.core.init_db import get_db_manager
from components.core.logging import get_logger, setup_logging

logger = get_logger("scripts.seed_data")


async def seed_data():
    """Seed a direct-financing contract with a payment and a capital repayment."""
    db_manager = get_db_manager()
    await db_manager.create_tables()

    async with db_manager.get_db() as db:
        service = ContractService(db)

        snapshot = await service.create_contract(
            ContractCreate(
                amount=Decimal("90000.00"),
                reserve_amount=Decimal("0.00"),
                down_payment=Decimal("0.00"),
                financing_type=FinancingType.DIRECT,
                payment_term=12,
                start_date=date(2024, 1, 15),
            )
        )
        contract_id = snapshot.contract.id
        first = next(i for i in snapshot.installments if i.number == 1)
        await service.apply_payment(first.id, first.amount)
        await service.apply_capital_repayment(contract_id, Decimal("15000.00"))

        cash = await service.create_contract(
            ContractCreate(
                amount=Decimal("45000.00"),
                reserve_amount=Decimal("5000.00"),
                financing_type=FinancingType.CASH,
                payment_term=6,
                start_date=date(2024, 3, 1),
            )
        )

        report = await service.reconcile(contract_id)
        logger.info(
            "Seeded contracts %s and %s; balance %s, ledger consistent: %s",
            contract_id,
            cash.contract.id,
            report.balance,
            report.consistent,
        )

    await db_manager.engine.dispose()


if __name__ == "__main__":
    settings = config.get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)
    asyncio.run(seed_data())
