"""
계좌 라우트
"""

from fastapi import APIRouter, Depends, status

from core.ledger import TransactionService
from core.types import Identity
from web.auth import get_identity
from web.dependencies import get_service
from web.models.requests import AccountCreateRequest
from web.models.responses import AccountResponse

router = APIRouter(prefix="/api/accounts", tags=["Accounts"])


@router.get("", response_model=list[AccountResponse])
async def list_accounts(
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    accounts = await service.list_accounts(identity)
    return [AccountResponse.from_entity(account) for account in accounts]


@router.post("", response_model=AccountResponse, status_code=status.HTTP_201_CREATED)
async def create_account(
    body: AccountCreateRequest,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    account = await service.create_account(identity, body.name, body.currency)
    return AccountResponse.from_entity(account)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_account(
    account_id: str,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """계좌 닫기 (참조 거래가 없을 때만)"""
    await service.close_account(identity, account_id)
