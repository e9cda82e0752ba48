"""Repository for contract aggregate persistence."""

from typing import Optional
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from components.contract.models import Contract
from components.core.exceptions import EntityNotFoundError
from components.installment.models import Installment
from components.payment.models import Payment


class ContractRepository:
    """Repository for contract operations."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session."""
        self.session = session

    async def get(self, contract_id: int, for_update: bool = False) -> Contract:
        """
        Load a contract with its whole schedule, ledger and payments.

        With ``for_update`` the contract row is locked until the transaction
        ends. Identity-mapped objects are refreshed from the database.
        """
        query = (
            select(Contract)
            .where(Contract.id == contract_id)
            .options(
                selectinload(Contract.installments),
                selectinload(Contract.ledger_entries),
                selectinload(Contract.payments),
            )
            .execution_options(populate_existing=True)
        )
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        contract = result.scalar_one_or_none()
        if contract is None:
            raise EntityNotFoundError(f"Contract {contract_id} not found")
        return contract

    async def contract_id_for_installment(self, installment_id: int) -> int:
        result = await self.session.execute(
            select(Installment.contract_id).where(Installment.id == installment_id)
        )
        contract_id: Optional[int] = result.scalar_one_or_none()
        if contract_id is None:
            raise EntityNotFoundError(f"Installment {installment_id} not found")
        return contract_id

    async def contract_id_for_payment(self, payment_id: int) -> int:
        result = await self.session.execute(
            select(Payment.contract_id).where(Payment.id == payment_id)
        )
        contract_id: Optional[int] = result.scalar_one_or_none()
        if contract_id is None:
            raise EntityNotFoundError(f"Payment {payment_id} not found")
        return contract_id

    def add(self, contract: Contract) -> None:
        self.session.add(contract)
