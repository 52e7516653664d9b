"""
사용자 라우트

등록은 HTTP로 노출하지 않는다 (web.app 모듈 docstring 참고).
"""

from fastapi import APIRouter, Depends, status

from core.ledger import TransactionService
from core.types import Identity
from web.auth import get_identity
from web.dependencies import get_service

router = APIRouter(prefix="/api/users", tags=["Users"])


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_me(
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
):
    """본인 계정 비활성화 (과거 거래는 보존, 이후 요청은 403)"""
    await service.deactivate_user(identity)
