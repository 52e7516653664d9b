"""
카테고리 라우트

카테고리 생성/조회/이름 변경/삭제 API
"""

from fastapi import APIRouter, Depends, Query, status

from core.ledger import TransactionService
from core.types import Identity
from web.auth import get_identity
from web.dependencies import get_service
from web.models.requests import CategoryCreateRequest, CategoryRenameRequest
from web.models.responses import CategoryResponse

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("", response_model=list[CategoryResponse])
async def list_categories(
    include_shared: bool = Query(default=True),
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """사용 가능한 카테고리 목록"""
    categories = await service.list_categories(identity, include_shared)
    return [CategoryResponse.from_entity(category) for category in categories]


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def create_category(
    body: CategoryCreateRequest,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """카테고리 생성"""
    category = await service.create_category(identity, body.name, body.kind)
    return CategoryResponse.from_entity(category)


@router.patch("/{category_id}", response_model=CategoryResponse)
async def rename_category(
    category_id: str,
    body: CategoryRenameRequest,
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """카테고리 이름 변경"""
    category = await service.rename_category(identity, category_id, body.name)
    return CategoryResponse.from_entity(category)


@router.delete("/{category_id}")
async def delete_category(
    category_id: str,
    reassign_to: str | None = Query(default=None),
    cascade: bool = Query(default=False),
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """카테고리 삭제

    사용 중이면 reassign_to 또는 cascade 지정 필요.
    """
    affected = await service.delete_category(
        identity,
        category_id,
        reassign_to=reassign_to,
        cascade=cascade,
    )
    return {"category_id": category_id, "affected_transactions": affected}
