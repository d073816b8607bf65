from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AccountCreate(BaseModel):
    id: Optional[UUID] = Field(default=None, description="Caller-supplied id; generated when omitted")
    balance: int = Field(default=0, ge=0, description="Opening balance in currency units")


class AccountResponse(BaseModel):
    id: UUID
    balance: int = Field(..., ge=0)


class TransferRequest(BaseModel):
    source_account_id: UUID
    dest_account_id: UUID
    amount: int = Field(..., ge=1)


class TransferResponse(BaseModel):
    source: AccountResponse
    dest: AccountResponse


class DeleteAccountsRequest(BaseModel):
    ids: list[UUID]


class DeleteAccountsResponse(BaseModel):
    deleted: int
