"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.
Ledger 객체는 앱 시작 시 한 번 생성되어 app.state에 보관된다.
"""

from datetime import date

from fastapi import Query, Request

from core.config.loader import Settings
from core.constants import Defaults
from core.ledger import BalanceAggregator, TransactionFilter, TransactionService


def get_app_settings(request: Request) -> Settings:
    """애플리케이션 설정 반환"""
    return request.app.state.settings


def get_service(request: Request) -> TransactionService:
    """TransactionService 반환"""
    return request.app.state.service


def get_aggregator(request: Request) -> BalanceAggregator:
    """BalanceAggregator 반환"""
    return request.app.state.service.aggregator


def get_filter(
    category_id: str | None = Query(default=None),
    account_id: str | None = Query(default=None),
    currency: str | None = Query(default=None, min_length=3, max_length=3),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    include_deleted: bool = Query(default=False),
    limit: int = Query(default=Defaults.PAGE_LIMIT, ge=1, le=500),
    offset: int = Query(default=0, ge=0),
) -> TransactionFilter:
    """쿼리 파라미터 → TransactionFilter"""
    return TransactionFilter(
        category_id=category_id,
        account_id=account_id,
        currency=currency,
        start_date=start_date,
        end_date=end_date,
        include_deleted=include_deleted,
        limit=limit,
        offset=offset,
    )
