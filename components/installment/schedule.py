"""Initial schedule generation from contract terms.

Direct financing produces ``payment_term`` monthly installments whose amounts
sum exactly to the financed principal, with any rounding remainder placed on
the last installment. Bank and cash financing produce no periodic schedule;
only a ``max_payment_date`` deadline is tracked. Reservation and down payment
obligations, when present, are emitted as unnumbered rows due on the start
date.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List

from components.contract.models import Contract, FinancingType
from components.core.exceptions import (
    InsufficientPrincipalError,
    InvalidTermError,
    NonPositiveAmountError,
)
from components.core.money import ZERO, add_months, quantize, split_evenly
from components.installment.models import (
    UNNUMBERED,
    Installment,
    InstallmentStatus,
    PaymentType,
)


def financed_principal(contract: Contract) -> Decimal:
    """Principal to finance: price less reserve, less down payment for direct financing."""
    down_payment = contract.down_payment if contract.financing_type == FinancingType.DIRECT else ZERO
    return quantize(contract.amount - contract.reserve_amount - down_payment)


def validate_terms(contract: Contract) -> Decimal:
    """Validate the contract's financing terms and return the financed principal."""
    if contract.amount is None or contract.amount <= 0:
        raise NonPositiveAmountError("Contract amount must be positive")
    if contract.reserve_amount < 0 or contract.down_payment < 0:
        raise NonPositiveAmountError("Reserve amount and down payment must not be negative")
    if contract.financing_type == FinancingType.DIRECT:
        if contract.payment_term is None or contract.payment_term <= 0:
            raise InvalidTermError(
                f"Direct financing needs a positive payment term, got {contract.payment_term}"
            )
    elif contract.payment_term is not None and contract.payment_term <= 0:
        raise InvalidTermError(f"Payment term must be positive, got {contract.payment_term}")

    principal = financed_principal(contract)
    if principal <= 0:
        raise InsufficientPrincipalError(
            f"Financed principal must be positive, got {principal} "
            f"(amount {contract.amount}, reserve {contract.reserve_amount}, "
            f"down payment {contract.down_payment})"
        )
    return principal


def _row(number: int, due_date, amount: Decimal, payment_type: PaymentType) -> Installment:
    return Installment(
        number=number,
        due_date=due_date,
        amount=amount,
        interest_amount=ZERO,
        paid_amount=ZERO,
        status=InstallmentStatus.PENDING,
        payment_type=payment_type,
        generation=0,
    )


def generate_schedule(contract: Contract) -> List[Installment]:
    """Build the ordered schedule rows for ``contract``.

    The rows are returned detached; the caller attaches them to the contract.
    For bank and cash financing this also fills in ``max_payment_date`` from
    the payment term when no explicit deadline was given.
    """
    principal = validate_terms(contract)
    rows: List[Installment] = []

    if contract.reserve_amount > 0:
        rows.append(_row(UNNUMBERED, contract.start_date, contract.reserve_amount, PaymentType.RESERVATION))

    if contract.financing_type != FinancingType.DIRECT:
        if contract.max_payment_date is None and contract.payment_term:
            contract.max_payment_date = add_months(contract.start_date, contract.payment_term)
        return rows

    if contract.down_payment > 0:
        rows.append(_row(UNNUMBERED, contract.start_date, contract.down_payment, PaymentType.DOWN_PAYMENT))

    for index, amount in enumerate(split_evenly(principal, contract.payment_term)):
        rows.append(
            _row(
                index + 1,
                add_months(contract.start_date, index + 1),
                amount,
                PaymentType.INSTALLMENT,
            )
        )
    return rows
