"""
거래 라우트

거래 생성/수정/삭제/조회 API
"""

from fastapi import APIRouter, Depends, Header, status

from core.ledger import TransactionFilter, TransactionService
from core.ledger.service import UNSET
from core.types import Identity
from web.auth import get_identity
from web.dependencies import get_filter, get_service
from web.models.requests import TransactionCreateRequest, TransactionUpdateRequest
from web.models.responses import (
    AuditResponse,
    TransactionListResponse,
    TransactionResponse,
)

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


@router.get("", response_model=TransactionListResponse)
async def list_transactions(
    flt: TransactionFilter = Depends(get_filter),
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """거래 목록 조회 (최근 날짜 순)"""
    transactions = await service.list_transactions(identity, flt)

    return TransactionListResponse(
        transactions=[TransactionResponse.from_entity(tx) for tx in transactions],
        limit=flt.limit or 0,
        offset=flt.offset,
    )


@router.post("", response_model=TransactionResponse, status_code=status.HTTP_201_CREATED)
async def create_transaction(
    body: TransactionCreateRequest,
    idempotency_key: str | None = Header(default=None, alias="Idempotency-Key"),
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """거래 생성

    Idempotency-Key 헤더 또는 body의 idempotency_key로 안전한 재시도 가능.
    """
    tx = await service.create_transaction(
        identity,
        body.category_id,
        body.amount,
        body.occurred_on,
        body.note,
        account_id=body.account_id,
        currency=body.currency,
        idempotency_key=body.idempotency_key or idempotency_key,
    )
    return TransactionResponse.from_entity(tx)


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(
    transaction_id: str,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """거래 단건 조회"""
    tx = await service.get_transaction(identity, transaction_id)
    return TransactionResponse.from_entity(tx)


@router.patch("/{transaction_id}", response_model=TransactionResponse)
async def update_transaction(
    transaction_id: str,
    body: TransactionUpdateRequest,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """거래 수정 (전달된 필드만 변경)"""
    provided = body.model_fields_set

    def field(name: str):
        return getattr(body, name) if name in provided else UNSET

    tx = await service.update_transaction(
        identity,
        transaction_id,
        amount=field("amount"),
        category_id=field("category_id"),
        occurred_on=field("occurred_on"),
        note=field("note"),
        account_id=field("account_id"),
        currency=field("currency"),
        expected_version=body.expected_version,
    )
    return TransactionResponse.from_entity(tx)


@router.delete("/{transaction_id}", response_model=TransactionResponse)
async def delete_transaction(
    transaction_id: str,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """거래 삭제 (soft delete, 멱등)"""
    tx = await service.delete_transaction(identity, transaction_id)
    return TransactionResponse.from_entity(tx)


@router.get("/{transaction_id}/history", response_model=list[AuditResponse])
async def get_history(
    transaction_id: str,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """거래 변경 이력"""
    records = await service.get_history(identity, transaction_id)
    return [AuditResponse.from_entity(record) for record in records]
