"""
잔액 라우트

잔액 및 대시보드 집계 API
"""

from fastapi import APIRouter, Depends

from core.config.loader import Settings
from core.ledger import BalanceAggregator, TransactionFilter, TransactionService
from core.types import Identity
from web.auth import get_identity
from web.dependencies import get_aggregator, get_app_settings, get_filter, get_service
from web.models.responses import (
    BalanceResponse,
    CategoryTotalResponse,
    MonthlyTotalResponse,
    SummaryResponse,
)

router = APIRouter(prefix="/api/balance", tags=["Balance"])


@router.get("", response_model=BalanceResponse)
async def get_balance(
    flt: TransactionFilter = Depends(get_filter),
    identity: Identity = Depends(get_identity),
    service: TransactionService = Depends(get_service),
    settings: Settings = Depends(get_app_settings),
):
    """잔액 조회 (통화 미지정 시 기본 통화)"""
    balance = await service.get_balance(identity, flt)
    currency = (flt.currency or settings.ledger.default_currency).upper()
    return BalanceResponse.of(currency, balance)


@router.get("/summary", response_model=SummaryResponse)
async def get_summary(
    flt: TransactionFilter = Depends(get_filter),
    identity: Identity = Depends(get_identity),
    aggregator: BalanceAggregator = Depends(get_aggregator),
):
    """수입/지출/순액 요약"""
    summary = await aggregator.summary(identity, flt)
    return SummaryResponse.from_entity(summary)


@router.get("/categories", response_model=list[CategoryTotalResponse])
async def get_category_breakdown(
    flt: TransactionFilter = Depends(get_filter),
    identity: Identity = Depends(get_identity),
    aggregator: BalanceAggregator = Depends(get_aggregator),
):
    """카테고리별 합계"""
    breakdown = await aggregator.category_breakdown(identity, flt)
    return [CategoryTotalResponse.from_entity(item) for item in breakdown]


@router.get("/monthly", response_model=list[MonthlyTotalResponse])
async def get_monthly_totals(
    flt: TransactionFilter = Depends(get_filter),
    identity: Identity = Depends(get_identity),
    aggregator: BalanceAggregator = Depends(get_aggregator),
):
    """월별 유입/유출"""
    totals = await aggregator.monthly_totals(identity, flt)
    return [MonthlyTotalResponse.from_entity(item) for item in totals]
