class LedgerError(Exception):
    """Base class for errors raised by the ledger services."""


class AccountNotFoundError(LedgerError):
    """Raised when an account id is missing from the store."""


class DuplicateAccountError(LedgerError):
    """Raised when an account is created with an id that already exists."""


class InsufficientFundsError(LedgerError):
    """Raised when a transfer would drop the source balance below zero."""


class InvalidAmountError(LedgerError, ValueError):
    """Raised when a transfer amount or an opening balance is out of range."""


class RetryableConflictError(LedgerError):
    """The store aborted the transaction because of contention; retry it."""


class RetryExhaustedError(LedgerError):
    """Raised when every allowed attempt ended in a retryable conflict."""

    def __init__(self, attempts: int) -> None:
        super().__init__(f"Transaction still conflicting after {attempts} attempts")
        self.attempts = attempts


class TransactionCancelledError(LedgerError):
    """Raised when the caller cancelled the unit of work before it committed."""


class DeadlineExceededError(LedgerError):
    """Raised when the time budget for a unit of work ran out."""


class StoreUnavailableError(LedgerError):
    """Raised for driver or connection failures that are not conflicts."""
