"""Per-contract serialization of mutating operations within one process."""

import asyncio
import weakref
from contextlib import asynccontextmanager
from typing import AsyncIterator


class ContractLockRegistry:
    """Hands out one ``asyncio.Lock`` per contract id.

    Locks are held weakly, so a contract nobody is working on costs nothing.
    Cross-process serialization is the database's job (row lock plus the
    contract version column).
    """

    def __init__(self) -> None:
        self._locks: "weakref.WeakValueDictionary[int, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, contract_id: int) -> asyncio.Lock:
        lock = self._locks.get(contract_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[contract_id] = lock
        return lock

    @asynccontextmanager
    async def hold(self, contract_id: int) -> AsyncIterator[None]:
        lock = self.get(contract_id)
        async with lock:
            yield
