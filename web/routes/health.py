"""
헬스 체크 엔드포인트

GET /health - 서버 상태 확인
"""

from fastapi import APIRouter, Request

from web.models.responses import HealthResponse

router = APIRouter(tags=["health"])

API_VERSION = "1.0.0"


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """서버 상태 확인

    Returns:
        HealthResponse: status, database, version 정보
    """
    db = request.app.state.db
    database = "connected" if db.is_connected else "disconnected"

    return HealthResponse(
        status="ok" if db.is_connected else "degraded",
        database=database,
        version=API_VERSION,
    )
