from .db import Account as AccountModel
from .schemas import (
    AccountCreate,
    AccountResponse,
    DeleteAccountsRequest,
    DeleteAccountsResponse,
    TransferRequest,
    TransferResponse,
)

__all__ = [
    "AccountCreate",
    "AccountResponse",
    "DeleteAccountsRequest",
    "DeleteAccountsResponse",
    "TransferRequest",
    "TransferResponse",
    "AccountModel",
]
