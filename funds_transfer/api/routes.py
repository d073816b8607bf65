from uuid import UUID

from fastapi import APIRouter, Depends, status

from ..core.config import get_settings
from ..core.dependencies import get_account_service, get_transfer_service
from ..models import (
    AccountCreate,
    AccountModel,
    AccountResponse,
    DeleteAccountsRequest,
    DeleteAccountsResponse,
    TransferRequest,
    TransferResponse,
)
from ..services import AccountService, TransferService


def _to_response(account: AccountModel) -> AccountResponse:
    return AccountResponse(id=account.id, balance=account.balance)


router = APIRouter(prefix="/accounts", tags=["accounts"])

@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
def create_account(
    payload: AccountCreate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return _to_response(service.create_account(payload.balance, account_id=payload.id))

@router.get("", response_model=list[AccountResponse])
def list_accounts(
    service: AccountService = Depends(get_account_service),
) -> list[AccountResponse]:
    return [_to_response(account) for account in service.list_accounts()]

@router.get("/{account_id}", response_model=AccountResponse)
def get_account(
    account_id: UUID,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    return _to_response(service.get_account(account_id))

@router.post("/delete", response_model=DeleteAccountsResponse)
def delete_accounts(
    payload: DeleteAccountsRequest,
    service: AccountService = Depends(get_account_service),
) -> DeleteAccountsResponse:
    return DeleteAccountsResponse(deleted=service.delete_accounts(payload.ids))

transfer_router = APIRouter(prefix="/transfers", tags=["transfers"])

@transfer_router.post("", response_model=TransferResponse)
def create_transfer(
    payload: TransferRequest,
    transfers: TransferService = Depends(get_transfer_service),
    accounts: AccountService = Depends(get_account_service),
) -> TransferResponse:
    transfers.transfer(
        payload.source_account_id,
        payload.dest_account_id,
        payload.amount,
        timeout=get_settings().request_timeout_s,
    )
    return TransferResponse(
        source=_to_response(accounts.get_account(payload.source_account_id)),
        dest=_to_response(accounts.get_account(payload.dest_account_id)),
    )

__all__ = ["router", "transfer_router"]
