import pytest
from sqlmodel import Session, SQLModel

from ..core.db import create_engine_for_url
from ..models import AccountModel
from ..services import RetryExecutor, RetryPolicy


@pytest.fixture
def engine(tmp_path):
    engine = create_engine_for_url(f"sqlite:///{tmp_path / 'test.db'}")
    SQLModel.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    opened = []

    def factory() -> Session:
        session = Session(engine, expire_on_commit=False)
        opened.append(session)
        return session

    factory.opened = opened
    return factory


@pytest.fixture
def sleeps() -> list:
    return []


@pytest.fixture
def policy() -> RetryPolicy:
    return RetryPolicy(max_attempts=4, base_delay=0.01, max_delay=0.05, jitter=0.25)


@pytest.fixture
def executor(session_factory, policy, sleeps) -> RetryExecutor:
    return RetryExecutor(session_factory, policy, sleep=sleeps.append)


@pytest.fixture
def make_account(engine):
    def _make(balance: int) -> AccountModel:
        with Session(engine, expire_on_commit=False) as session:
            account = AccountModel(balance=balance)
            session.add(account)
            session.commit()
            return account

    return _make


@pytest.fixture
def balance_of(engine):
    def _balance(account) -> int:
        with Session(engine) as session:
            return session.get(AccountModel, account.id).balance

    return _balance
