"""
FastAPI 애플리케이션

라우터 등록, Ledger 객체 생성, 예외 → HTTP 응답 매핑.

사용자 등록은 HTTP로 노출하지 않는다. 자격 증명은 외부 인증 제공자가
발급하므로 운영자가 같은 DB에 대해 TransactionService.register_user를
호출해 user_id를 만들고, 그 user_id를 sub로 하는 토큰을 발급한다:

    async with SQLiteAdapter(settings.db_path) as db:
        await init_ledger_schema(db)
        service = TransactionService(LedgerStore(db), config=settings.ledger)
        user = await service.register_user("alice", credentials_hash)
    token = create_access_token(settings.web, user.user_id)

비활성화는 DELETE /api/users/me.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.db.sqlite_adapter import SQLiteAdapter
from core.config.loader import Settings, get_settings
from core.errors import (
    ConstraintViolation,
    Denied,
    LedgerError,
    NotFound,
    StorageUnavailable,
    ValidationError,
)
from core.ledger import (
    BalanceAggregator,
    LedgerStore,
    TransactionService,
    init_ledger_schema,
)
from web.routes import accounts, balance, categories, health, transactions, users

logger = logging.getLogger(__name__)

# 예외 클래스 → HTTP 상태 코드 (상속 순서대로 검사)
ERROR_STATUS: list[tuple[type[LedgerError], int]] = [
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (ConstraintViolation, status.HTTP_409_CONFLICT),
    (Denied, status.HTTP_403_FORBIDDEN),
    (StorageUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE),
]

RETRY_AFTER_SECONDS = 1


def status_for(exc: LedgerError) -> int:
    """LedgerError → HTTP 상태 코드"""
    for error_type, status_code in ERROR_STATUS:
        if isinstance(exc, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    status_code = status_for(exc)
    headers = {"Retry-After": str(RETRY_AFTER_SECONDS)} if exc.retryable else None

    if status_code >= 500:
        logger.warning(f"{request.method} {request.url.path} 실패: {exc.code} {exc.message}")
    else:
        logger.debug(f"{request.method} {request.url.path} 거부: {exc.code} {exc.message}")

    return JSONResponse(
        status_code=status_code,
        content={"error": exc.code, "detail": exc.message},
        headers=headers,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """FastAPI 앱 생성

    Args:
        settings: 설정 (None이면 시작 시 settings.yaml에서 로드)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """앱 생명주기 관리"""
        app_settings = settings or get_settings()

        db = SQLiteAdapter(app_settings.db_path)
        await db.connect()
        await init_ledger_schema(db)

        store = LedgerStore(db)
        aggregator = BalanceAggregator(store, app_settings.ledger)

        app.state.settings = app_settings
        app.state.db = db
        app.state.service = TransactionService(store, aggregator, app_settings.ledger)
        logger.info(f"Web: Ledger 초기화 완료 (db={app_settings.db_path})")

        try:
            yield
        finally:
            await db.close()
            logger.info("Web: DB 연결 종료 완료")

    app = FastAPI(
        title="Ledger API",
        description="개인 가계부 Ledger API",
        version=health.API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS 설정 (개발용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(LedgerError, ledger_error_handler)

    app.include_router(health.router)
    app.include_router(transactions.router)
    app.include_router(categories.router)
    app.include_router(accounts.router)
    app.include_router(balance.router)
    app.include_router(users.router)

    return app


app = create_app()
