"""Command-line walk-through of a funds transfer with transaction retries.

Seeds a handful of accounts, prints their balances, moves money from the
first account to a randomly picked one (possibly itself), prints the
balances again and deletes the seeded rows.

Usage:
    python -m funds_transfer.demo --database-url postgresql://root@localhost:26257/bank
"""

from __future__ import annotations

import argparse
import logging
import random
import sys
from typing import Optional, Sequence

from sqlmodel import Session, SQLModel

from .core.config import get_settings
from .core.db import create_engine_for_url
from .core.errors import LedgerError
from .services import AccountService, RetryExecutor, RetryPolicy, TransferService, format_balances


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="SQLAlchemy database URL (default: LEDGER_DATABASE_URL or %(default)s)",
    )
    parser.add_argument("--rows", type=int, default=5, help="accounts to seed")
    parser.add_argument("--amount", type=int, default=100, help="amount to transfer")
    return parser


def run(
    database_url: str,
    rows: int,
    amount: int,
    rng: Optional[random.Random] = None,
    out=None,
) -> int:
    settings = get_settings()
    rng = rng or random.Random()
    out = out or sys.stdout

    engine = create_engine_for_url(database_url)
    try:
        SQLModel.metadata.create_all(engine)
        executor = RetryExecutor(
            lambda: Session(engine, expire_on_commit=False),
            RetryPolicy.from_settings(settings),
        )
        accounts = AccountService(executor)
        transfers = TransferService(executor)

        try:
            ids = accounts.seed_accounts(rows, amount, settings.seed_max_balance, rng=rng)
        except LedgerError:
            logger.exception("Seeding accounts failed")
            return 1
        if not ids:
            logger.error("No accounts were seeded, nothing to transfer")
            return 1

        status = 0
        try:
            print(format_balances(accounts.list_accounts()), file=out)

            from_id = ids[0]
            to_id = rng.choice(ids)
            try:
                transfers.transfer(from_id, to_id, amount, timeout=settings.request_timeout_s)
            except LedgerError as exc:
                logger.error("Transfer from %s to %s failed: %s", from_id, to_id, exc)
                status = 1

            print(format_balances(accounts.list_accounts()), file=out)
        finally:
            try:
                accounts.delete_accounts(ids)
            except LedgerError:
                logger.exception("Deleting seeded accounts failed")
                status = 1
        return status
    finally:
        engine.dispose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=get_settings().log_level)
    return run(args.database_url, args.rows, args.amount)


if __name__ == "__main__":
    sys.exit(main())
