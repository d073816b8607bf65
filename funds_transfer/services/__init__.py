from .accounts import AccountService, format_balances
from .repository import AccountRepository
from .retry import RetryExecutor, RetryPolicy, is_retryable_conflict
from .transfer import TransferService

__all__ = [
    "AccountRepository",
    "AccountService",
    "RetryExecutor",
    "RetryPolicy",
    "TransferService",
    "format_balances",
    "is_retryable_conflict",
]
