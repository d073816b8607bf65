import uuid

import pytest
from sqlmodel import Session

from ..core.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    InvalidAmountError,
    RetryableConflictError,
    RetryExhaustedError,
)
from ..models import AccountModel
from ..services import AccountRepository, TransferService
from ..services import transfer as transfer_module


@pytest.fixture
def service(executor) -> TransferService:
    return TransferService(executor)


def test_transfer_moves_balance(service, make_account, balance_of) -> None:
    source = make_account(500)
    dest = make_account(100)

    service.transfer(source.id, dest.id, 100)

    assert balance_of(source) == 400
    assert balance_of(dest) == 200


def test_transfer_insufficient_funds_leaves_rows_untouched(
    service, make_account, balance_of, session_factory, sleeps
) -> None:
    source = make_account(50)
    dest = make_account(100)

    with pytest.raises(InsufficientFundsError):
        service.transfer(source.id, dest.id, 100)

    assert balance_of(source) == 50
    assert balance_of(dest) == 100
    assert len(session_factory.opened) == 1
    assert sleeps == []


def test_transfers_conserve_total_and_stay_non_negative(service, make_account, balance_of) -> None:
    accounts = [make_account(balance) for balance in (300, 120, 0)]
    total = sum(balance_of(account) for account in accounts)

    moves = [(0, 1, 150), (1, 2, 200), (2, 0, 60), (0, 2, 500), (1, 0, 70)]
    for src, dst, amount in moves:
        try:
            service.transfer(accounts[src].id, accounts[dst].id, amount)
        except InsufficientFundsError:
            pass
        balances = [balance_of(account) for account in accounts]
        assert sum(balances) == total
        assert all(balance >= 0 for balance in balances)


def test_self_transfer_is_a_noop(service, make_account, balance_of, session_factory) -> None:
    account = make_account(75)

    service.transfer(account.id, account.id, 50)

    assert balance_of(account) == 75
    assert session_factory.opened == []


@pytest.mark.parametrize("amount", [0, -10])
def test_non_positive_amount_is_rejected(service, make_account, session_factory, amount) -> None:
    source = make_account(100)
    dest = make_account(100)

    with pytest.raises(InvalidAmountError):
        service.transfer(source.id, dest.id, amount)

    assert session_factory.opened == []


def test_missing_destination_is_not_found(service, make_account, balance_of) -> None:
    source = make_account(100)

    with pytest.raises(AccountNotFoundError):
        service.transfer(source.id, uuid.uuid4(), 10)

    assert balance_of(source) == 100


def test_missing_source_is_not_found(service, make_account, balance_of) -> None:
    dest = make_account(100)

    with pytest.raises(AccountNotFoundError):
        service.transfer(uuid.uuid4(), dest.id, 10)

    assert balance_of(dest) == 100


def _flaky_repository(dest_id, conflicts):
    class FlakyRepository(AccountRepository):
        def update(self, account):
            stored = super().update(account)
            if account.id == dest_id and conflicts["remaining"] > 0:
                conflicts["remaining"] -= 1
                raise RetryableConflictError("restart transaction")
            return stored

    return FlakyRepository


def test_conflicts_then_success_apply_transfer_once(
    service, make_account, balance_of, monkeypatch, sleeps
) -> None:
    source = make_account(500)
    dest = make_account(100)
    conflicts = {"remaining": 2}
    monkeypatch.setattr(
        transfer_module, "AccountRepository", _flaky_repository(dest.id, conflicts)
    )

    service.transfer(source.id, dest.id, 100)

    assert conflicts["remaining"] == 0
    assert len(sleeps) == 2
    assert balance_of(source) == 400
    assert balance_of(dest) == 200


def test_persistent_conflict_exhausts_without_effect(
    service, make_account, balance_of, monkeypatch, policy
) -> None:
    source = make_account(500)
    dest = make_account(100)
    conflicts = {"remaining": 100}
    monkeypatch.setattr(
        transfer_module, "AccountRepository", _flaky_repository(dest.id, conflicts)
    )

    with pytest.raises(RetryExhaustedError) as excinfo:
        service.transfer(source.id, dest.id, 100)

    assert excinfo.value.attempts == policy.max_attempts
    assert conflicts["remaining"] == 100 - policy.max_attempts
    assert balance_of(source) == 500
    assert balance_of(dest) == 100


def test_retry_rereads_balance_changed_by_other_writer(
    service, make_account, balance_of, engine, monkeypatch
) -> None:
    source = make_account(150)
    dest = make_account(0)
    state = {"conflicted": False}

    class DrainingRepository(AccountRepository):
        def get(self, account_id):
            account = super().get(account_id)
            if account_id == dest.id and not state["conflicted"]:
                state["conflicted"] = True
                # A competing writer commits after the source was read.
                with Session(engine) as other:
                    other.get(AccountModel, source.id).balance = 100
                    other.commit()
                raise RetryableConflictError("restart transaction")
            return account

    monkeypatch.setattr(transfer_module, "AccountRepository", DrainingRepository)

    with pytest.raises(InsufficientFundsError):
        service.transfer(source.id, dest.id, 120)

    assert balance_of(source) == 100
    assert balance_of(dest) == 0
