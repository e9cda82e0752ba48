"""Fixed-point money helpers.

Amounts are ``decimal.Decimal`` values in the currency's major unit, rounded
to the minor unit (``0.01``) with ROUND_HALF_UP. Rounding happens once, at the
end of a calculation; intermediate results keep full precision. Binary floats
are rejected at the boundary.
"""

from __future__ import annotations

import calendar
from datetime import date
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Union

MINOR_UNIT = Decimal("0.01")
ZERO = Decimal("0.00")

MoneyInput = Union[Decimal, int, str]


def to_money(value: MoneyInput) -> Decimal:
    """Parse a wire value (decimal string, int or Decimal) into a rounded Decimal.

    Raises ``ValueError`` for floats, booleans and anything that is not a
    finite number.
    """
    if isinstance(value, (float, bool)):
        raise ValueError(f"Monetary values must be decimal strings or integers, got {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid monetary value: {value!r}") from exc
    if not amount.is_finite():
        raise ValueError(f"Invalid monetary value: {value!r}")
    return quantize(amount)


def quantize(amount: Decimal) -> Decimal:
    """Round to the minor unit, half-up."""
    return amount.quantize(MINOR_UNIT, rounding=ROUND_HALF_UP)


def money_sum(amounts: Iterable[Decimal]) -> Decimal:
    return quantize(sum(amounts, ZERO))


def prorate(total: Decimal, numerator: MoneyInput, denominator: MoneyInput) -> Decimal:
    """Return ``total * numerator / denominator`` rounded once to the minor unit."""
    denominator = Decimal(denominator)
    if denominator == 0:
        raise ZeroDivisionError("Cannot prorate over a zero denominator")
    return quantize(total * Decimal(numerator) / denominator)


def split_evenly(total: Decimal, parts: int) -> List[Decimal]:
    """Split ``total`` into ``parts`` amounts that sum exactly to ``total``.

    Every part but the last is ``total / parts`` truncated to the minor unit;
    the last part absorbs the remainder.

    >>> split_evenly(Decimal("100.00"), 3)
    [Decimal('33.33'), Decimal('33.33'), Decimal('33.34')]
    """
    if parts <= 0:
        raise ValueError("Cannot split into a non-positive number of parts")
    total = quantize(total)
    share = (total / parts).quantize(MINOR_UNIT, rounding=ROUND_DOWN)
    amounts = [share] * (parts - 1)
    amounts.append(total - share * (parts - 1))
    return amounts


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
