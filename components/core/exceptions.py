"""Custom exception hierarchy for the installment ledger service.

Errors fall into three families the HTTP layer renders differently:
validation errors (rejected before any mutation), state errors (the entity
is in the wrong state for the operation) and consistency errors (the ledger
disagrees with the balance; fatal, never auto-corrected).
"""


class LedgerServiceError(Exception):
    """Base exception for all service errors."""

    code = "ledger_service_error"


# Validation errors

class ValidationError(LedgerServiceError):
    """Raised when request data is rejected before any mutation."""

    code = "validation_error"


class NonPositiveAmountError(ValidationError):
    """Raised when a monetary amount is zero, negative or not a number."""

    code = "non_positive_amount"


class InvalidTermError(ValidationError):
    """Raised when a direct-financing payment term is not a positive number of months."""

    code = "invalid_term"


class InsufficientPrincipalError(ValidationError):
    """Raised when the financed principal computed from a contract is not positive."""

    code = "insufficient_principal"


class InvalidStatusTransitionError(ValidationError):
    """Raised when a contract status change is not an allowed transition."""

    code = "invalid_status_transition"


# Lookup errors

class EntityNotFoundError(LedgerServiceError):
    """Raised when a referenced contract, installment or payment does not exist."""

    code = "not_found"


# State errors

class InvalidStateError(LedgerServiceError):
    """Raised when an entity is in an invalid state for the operation."""

    code = "invalid_state"


class ContractClosedError(InvalidStateError):
    """Raised when mutating a closed or cancelled contract."""

    code = "contract_closed"


class ScheduleLockedError(InvalidStateError):
    """Raised when editing contract terms outside the editable statuses."""

    code = "schedule_locked"


class AlreadyPaidError(InvalidStateError):
    """Raised when applying a payment to an installment that is already paid."""

    code = "already_paid"


class NotPaidError(InvalidStateError):
    """Raised when undoing a payment whose installment is not paid."""

    code = "not_paid"


class InstallmentFrozenError(InvalidStateError):
    """Raised when acting on an installment superseded by a readjustment."""

    code = "installment_frozen"


class NoPendingInstallmentsError(InvalidStateError):
    """Raised when a capital repayment finds no pending installments to re-amortize."""

    code = "no_pending_installments"


class IrreversiblePaymentError(InvalidStateError):
    """Raised when undoing a payment that cannot be reversed (capital repayments)."""

    code = "irreversible_payment"


class ConcurrentModificationError(LedgerServiceError):
    """Raised when the contract changed under a concurrent transaction."""

    code = "concurrent_modification"


# Consistency errors

class ConsistencyError(LedgerServiceError):
    """Raised when persisted state violates an accounting invariant."""

    code = "consistency_error"


class LedgerMismatchError(ConsistencyError):
    """Raised when the ledger sum does not reconcile with the contract balance."""

    code = "ledger_mismatch"


class ImmutableLedgerEntryError(ConsistencyError):
    """Raised when code attempts to update or delete a posted ledger entry."""

    code = "immutable_ledger_entry"
