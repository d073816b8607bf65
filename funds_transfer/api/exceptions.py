from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..core.errors import (
    AccountNotFoundError,
    DeadlineExceededError,
    DuplicateAccountError,
    InsufficientFundsError,
    RetryExhaustedError,
    StoreUnavailableError,
    TransactionCancelledError,
)


_STATUS_BY_ERROR: dict[type[Exception], int] = {
    AccountNotFoundError: 404,
    InsufficientFundsError: 409,
    DuplicateAccountError: 409,
    RetryExhaustedError: 503,
    StoreUnavailableError: 503,
    TransactionCancelledError: 503,
    DeadlineExceededError: 504,
    ValueError: 400,
}


def register_exception_handlers(app: FastAPI) -> None:
    async def ledger_error_handler(request: Request, exc: Exception) -> JSONResponse:
        status_code = next(
            code for error, code in _STATUS_BY_ERROR.items() if isinstance(exc, error)
        )
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    for error in _STATUS_BY_ERROR:
        app.add_exception_handler(error, ledger_error_handler)
