from __future__ import annotations

from collections.abc import Iterable
from typing import Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError
from sqlmodel import Session, col, select

from ..core.errors import AccountNotFoundError, DuplicateAccountError, InvalidAmountError
from ..models import AccountModel


class AccountRepository:
    """Thin data access layer over the ``accounts`` table.

    Every call works inside the session it was built with, so when the
    session belongs to a unit of work all reads and writes join that
    transaction. Nothing is committed here.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, account_id: UUID) -> Optional[AccountModel]:
        return self.session.get(AccountModel, account_id)

    def create(self, account: AccountModel) -> AccountModel:
        # Table models skip field validation, so the balance floor is enforced here.
        if account.balance < 0:
            raise InvalidAmountError(f"Account {account.id} balance must not be negative")
        if self.get(account.id) is not None:
            raise DuplicateAccountError(f"Account {account.id} already exists")
        self.session.add(account)
        try:
            self.session.flush()
        except IntegrityError as exc:
            raise DuplicateAccountError(f"Account {account.id} already exists") from exc
        return account

    def update(self, account: AccountModel) -> AccountModel:
        stored = self.get(account.id)
        if stored is None:
            raise AccountNotFoundError(f"Account {account.id} not found")
        stored.balance = account.balance
        try:
            self.session.flush()
        except StaleDataError as exc:
            # Row vanished between read and write.
            raise AccountNotFoundError(f"Account {account.id} not found") from exc
        return stored

    def find_all(self) -> list[AccountModel]:
        stmt = select(AccountModel).order_by(AccountModel.id)
        return list(self.session.exec(stmt))

    def delete_by_ids(self, account_ids: Iterable[UUID]) -> int:
        ids = list(account_ids)
        if not ids:
            return 0
        stmt = select(AccountModel).where(col(AccountModel.id).in_(ids))
        accounts = list(self.session.exec(stmt))
        for account in accounts:
            self.session.delete(account)
        self.session.flush()
        return len(accounts)
