from __future__ import annotations

import logging
import random
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlmodel import Session

from ..core.errors import AccountNotFoundError
from ..models import AccountModel
from .repository import AccountRepository
from .retry import RetryExecutor


logger = logging.getLogger(__name__)


class AccountService:
    """Account setup, reporting and teardown, each run as a unit of work."""

    def __init__(self, executor: RetryExecutor) -> None:
        self.executor = executor

    def create_account(
        self, balance: int, account_id: Optional[UUID] = None
    ) -> AccountModel:
        def unit(session: Session) -> AccountModel:
            account = AccountModel(id=account_id or uuid4(), balance=balance)
            return AccountRepository(session).create(account)

        account = self.executor.run(unit)
        logger.info(
            "account.created",
            extra={"account_id": str(account.id), "balance": account.balance},
        )
        return account

    def get_account(self, account_id: UUID) -> AccountModel:
        def unit(session: Session) -> AccountModel:
            account = AccountRepository(session).get(account_id)
            if account is None:
                raise AccountNotFoundError(f"Account {account_id} not found")
            return account

        return self.executor.run(unit)

    def list_accounts(self) -> list[AccountModel]:
        return self.executor.run(lambda session: AccountRepository(session).find_all())

    def seed_accounts(
        self,
        num_rows: int,
        min_balance: int,
        max_balance: int = 10000,
        rng: Optional[random.Random] = None,
    ) -> list[UUID]:
        """Insert ``num_rows`` accounts and return their ids.

        Balances are drawn from ``[min_balance, min_balance + max_balance)``
        so every seeded account can fund a transfer of ``min_balance``.
        The ids are the only handle for tearing the rows down again.
        """
        rng = rng or random.Random()

        def unit(session: Session) -> list[UUID]:
            # Fresh ids on every attempt.
            repository = AccountRepository(session)
            ids = []
            for _ in range(num_rows):
                account = AccountModel(
                    id=uuid4(), balance=rng.randrange(max_balance) + min_balance
                )
                repository.create(account)
                ids.append(account.id)
            return ids

        logger.info("Creating %d new rows...", num_rows)
        ids = self.executor.run(unit)
        logger.info("accounts.seeded", extra={"count": len(ids)})
        return ids

    def delete_accounts(self, account_ids: Iterable[UUID]) -> int:
        ids = list(account_ids)
        deleted = self.executor.run(lambda session: AccountRepository(session).delete_by_ids(ids))
        logger.info("accounts.deleted", extra={"requested": len(ids), "deleted": deleted})
        return deleted


def format_balances(
    accounts: Sequence[AccountModel], now: Optional[datetime] = None
) -> str:
    lines = [f"Balance at '{now or datetime.now()}':"]
    lines.extend(f"{account.id} {account.balance}" for account in accounts)
    return "\n".join(lines)
