from fastapi import Depends

from ..services import AccountService, RetryExecutor, RetryPolicy, TransferService
from .config import get_settings
from .db import new_session


def get_executor() -> RetryExecutor:
    return RetryExecutor(new_session, RetryPolicy.from_settings(get_settings()))


def get_account_service(executor: RetryExecutor = Depends(get_executor)) -> AccountService:
    return AccountService(executor)


def get_transfer_service(executor: RetryExecutor = Depends(get_executor)) -> TransferService:
    return TransferService(executor)
