from __future__ import annotations

import logging
import threading
from functools import partial
from typing import Optional
from uuid import UUID

from sqlmodel import Session

from ..core.errors import AccountNotFoundError, InsufficientFundsError, InvalidAmountError
from .repository import AccountRepository
from .retry import RetryExecutor


logger = logging.getLogger(__name__)


class TransferService:
    def __init__(self, executor: RetryExecutor) -> None:
        self.executor = executor

    def transfer(
        self,
        from_id: UUID,
        to_id: UUID,
        amount: int,
        *,
        cancel: Optional[threading.Event] = None,
        timeout: Optional[float] = None,
    ) -> None:
        """Move ``amount`` from one account to another in one transaction.

        A transfer to the same account succeeds without touching the store.
        Conflicts are retried by the executor; every other failure is raised
        to the caller.
        """
        if amount <= 0:
            raise InvalidAmountError("Transfer amount must be positive")
        if from_id == to_id:
            logger.info("account.transfer.noop", extra={"account_id": str(from_id)})
            return

        unit = partial(self._transfer_unit, from_id=from_id, to_id=to_id, amount=amount)
        self.executor.run(unit, cancel=cancel, timeout=timeout)
        logger.info(
            "account.transfer",
            extra={
                "source_account_id": str(from_id),
                "dest_account_id": str(to_id),
                "amount": amount,
            },
        )

    def _transfer_unit(
        self,
        session: Session,
        *,
        from_id: UUID,
        to_id: UUID,
        amount: int,
    ) -> None:
        # Runs once per attempt; balances are always re-read from the store.
        repository = AccountRepository(session)
        source = repository.get(from_id)
        if source is None:
            raise AccountNotFoundError(f"Account {from_id} not found")
        dest = repository.get(to_id)
        if dest is None:
            raise AccountNotFoundError(f"Account {to_id} not found")

        if source.balance < amount:
            raise InsufficientFundsError(
                f"Account {from_id} balance {source.balance} is lower than transfer amount {amount}"
            )

        source.balance -= amount
        dest.balance += amount
        repository.update(source)
        repository.update(dest)
