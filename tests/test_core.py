"""Tests for locks, error mapping, logging and settings."""

import asyncio
import json
import logging

import pytest

from components.contract.schemas import ContractRead
from components.core import config, exceptions
from components.core.config import Settings
from components.core.database import DatabaseManager
from components.core.locks import ContractLockRegistry
from components.core.logging import JsonFormatter, get_logger, setup_logging
from components.core.schemas import ErrorResponse
from components.payment.schemas import PaymentRead
from restapi.router import status_for


class TestContractLockRegistry:
    """Tests for per-contract serialization."""

    def test_same_contract_same_lock(self) -> None:
        async def main():
            registry = ContractLockRegistry()
            lock = registry.get(1)
            return lock is registry.get(1), lock is registry.get(2)

        same, other = asyncio.run(main())

        assert same
        assert not other

    def test_operations_on_one_contract_are_serialized(self) -> None:
        async def main():
            registry = ContractLockRegistry()
            events = []

            async def operation(name):
                async with registry.hold(7):
                    events.append(f"{name}-start")
                    await asyncio.sleep(0.01)
                    events.append(f"{name}-end")

            await asyncio.gather(operation("a"), operation("b"))
            return events

        assert asyncio.run(main()) == ["a-start", "a-end", "b-start", "b-end"]


class TestErrorMapping:
    """Tests for the HTTP status of service errors."""

    @pytest.mark.parametrize(
        "error,status_code",
        [
            (exceptions.EntityNotFoundError("x"), 404),
            (exceptions.InvalidTermError("x"), 422),
            (exceptions.NonPositiveAmountError("x"), 422),
            (exceptions.AlreadyPaidError("x"), 409),
            (exceptions.InstallmentFrozenError("x"), 409),
            (exceptions.ConcurrentModificationError("x"), 409),
            (exceptions.LedgerMismatchError("x"), 500),
            (exceptions.LedgerServiceError("x"), 500),
        ],
    )
    def test_status_for(self, error, status_code) -> None:
        assert status_for(error) == status_code

    def test_hierarchy(self) -> None:
        assert issubclass(exceptions.ContractClosedError, exceptions.InvalidStateError)
        assert issubclass(exceptions.InsufficientPrincipalError, exceptions.ValidationError)
        assert issubclass(exceptions.ImmutableLedgerEntryError, exceptions.ConsistencyError)
        assert exceptions.ScheduleLockedError.code == "schedule_locked"


class TestLogging:
    """Tests for logging setup."""

    def test_setup_logging_sets_level(self) -> None:
        setup_logging(level="DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert logging.getLogger("components").level == logging.DEBUG

    def test_json_formatter_merges_audit_fields(self) -> None:
        record = logging.LogRecord(
            name="components.contract.service",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="apply_payment on contract %s",
            args=(3,),
            exc_info=None,
        )
        record.audit = {"operation": "apply_payment", "balance_after": "82500.00"}

        payload = json.loads(JsonFormatter().format(record))

        assert payload["message"] == "apply_payment on contract 3"
        assert payload["operation"] == "apply_payment"
        assert payload["balance_after"] == "82500.00"

    def test_get_logger(self) -> None:
        assert get_logger("components.test").name == "components.test"


class TestSettings:
    """Tests for settings derived values."""

    def test_default_url_uses_aiomysql(self) -> None:
        settings = Settings(DB_USER="app", DB_PASSWORD="secret", DB_HOST="db", DB_NAME="ledger")

        assert settings.async_db_url == "mysql+aiomysql://app:secret@db:3306/ledger"
        assert settings.api_prefix == "/api/v1"

    def test_explicit_url_wins(self) -> None:
        settings = Settings(DB_URL="sqlite+aiosqlite:///ledger.db")

        assert settings.async_db_url == "sqlite+aiosqlite:///ledger.db"


class TestDatabaseManager:
    """Tests for engine construction from settings."""

    def test_sqlite_url_from_settings(self, monkeypatch) -> None:
        monkeypatch.setattr(config, "get_settings", lambda: Settings(DB_URL="sqlite+aiosqlite://"))

        async def main():
            manager = DatabaseManager()
            try:
                await manager.create_tables()
                return manager.engine.url.get_backend_name()
            finally:
                await manager.engine.dispose()

        assert asyncio.run(main()) == "sqlite"


class TestSchemaConfig:
    """Tests for pydantic model configuration."""

    def test_settings_config(self) -> None:
        assert Settings.model_config["env_file"] == ".env"
        assert Settings.model_config["case_sensitive"] is True

    def test_read_schemas_load_from_attributes(self) -> None:
        assert ContractRead.model_config["from_attributes"] is True
        assert PaymentRead.model_config["from_attributes"] is True

    def test_error_response_shape(self) -> None:
        body = ErrorResponse(error="not_found", detail="Contract 1 not found")

        assert body.model_dump() == {"error": "not_found", "detail": "Contract 1 not found"}
