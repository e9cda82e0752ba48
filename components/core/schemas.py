"""Core schemas for the application."""

from decimal import Decimal
from typing import Any

from pydantic import BaseModel, BeforeValidator
from typing_extensions import Annotated

from components.core.money import to_money


def _parse_money(value: Any) -> Decimal:
    return to_money(value)


# Decimal amount accepted as a string or integer; floats are rejected.
# Serialized to JSON as a decimal string.
Money = Annotated[Decimal, BeforeValidator(_parse_money)]


class HealthCheck(BaseModel):
    """Schema for health check response."""
    service_name: str
    status: str


class ErrorResponse(BaseModel):
    """Schema for error responses."""
    error: str
    detail: str
