"""Database initialization and dependency injection."""

from functools import lru_cache
from typing import AsyncGenerator, Optional

import fastapi
from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from components.core.database import DatabaseManager
from components.core.locks import ContractLockRegistry
# Import all models to ensure they're registered
import components.contract.models
import components.installment.models
import components.payment.models
import components.ledger.models
from components.contract.service import ContractService


@lru_cache()
def get_db_manager() -> DatabaseManager:
    """Return the process-wide DatabaseManager built from settings."""
    return DatabaseManager()


async def get_db(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting database sessions."""
    async with request.app.state.db_manager.get_db() as session:
        yield session


async def get_contract_service(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> ContractService:
    """FastAPI dependency building a ContractService on the request's session."""
    return ContractService(db, locks=request.app.state.contract_locks)


def init_db(app: fastapi.FastAPI, db_manager: Optional[DatabaseManager] = None) -> None:
    """Attach the database manager and the contract lock registry to the app."""
    app.state.db_manager = db_manager or get_db_manager()
    app.state.contract_locks = ContractLockRegistry()
