"""
Transaction Service

Ledger 변경의 유일한 진입점.
검증 → 권한 확인 → 원자적 반영(거래 + 감사 기록) → 잔액 캐시 무효화.

직렬화:
- 같은 사용자의 변경은 UserLockRegistry로 한 번에 하나씩 실행
- DB 쓰기는 BEGIN IMMEDIATE 트랜잭션 (프로세스 간 직렬화)
- 검증 실패 시 아무것도 반영되지 않음

재시도:
- StorageUnavailable은 재시도해도 안전한 연산에서만 backoff 재시도
  (idempotency_key가 있는 생성, 삭제, expected_version이 있는 수정, 조회)
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import TYPE_CHECKING, Any, AsyncIterator, Awaitable, Callable, TypeVar

from core.config.loader import LedgerConfig
from core.errors import (
    ConstraintViolation,
    Denied,
    NotFound,
    ValidationError,
    VersionConflict,
)
from core.ledger.balance import BalanceAggregator
from core.ledger.guard import AccessGuard
from core.ledger.locks import UserLockRegistry
from core.ledger.models import (
    Account,
    AuditRecord,
    Category,
    Transaction,
    TransactionFilter,
    User,
    new_id,
)
from core.ledger.money import check_sign, normalize_currency, parse_amount
from core.types import AuditAction, CategoryKind, Identity, LedgerAction
from core.utils.idempotency import normalize_idempotency_key
from core.utils.retry import retry_on_unavailable
from core.utils.timezone import now_utc, today_utc

if TYPE_CHECKING:
    from adapters.interfaces import ILedgerStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_NOTE_LENGTH = 500
MAX_NAME_LENGTH = 64


class _Unset:
    """update 인자 미지정 표시"""

    def __repr__(self) -> str:
        return "UNSET"


UNSET: Any = _Unset()


def _clean_name(value: str, field: str) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationError(f"{field}은(는) 비어 있을 수 없습니다")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"{field} 길이 초과: {len(name)} > {MAX_NAME_LENGTH}")
    return name


def _clean_note(note: str | None) -> str | None:
    if note is None:
        return None
    note = note.strip()
    if len(note) > MAX_NOTE_LENGTH:
        raise ValidationError(f"note 길이 초과: {len(note)} > {MAX_NOTE_LENGTH}")
    return note or None


def _coerce_date(value: Any) -> date:
    """date / datetime / ISO 문자열 → date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"날짜 형식이 잘못되었습니다: {value!r}") from e
    raise ValidationError(f"지원하지 않는 날짜 타입: {type(value).__name__}")


class TransactionService:
    """Transaction Service

    모든 메서드는 외부에서 인증된 Identity를 첫 인자로 받는다.

    Args:
        store: Ledger 저장소
        aggregator: 잔액 집계기 (캐시 무효화 대상)
        config: Ledger 설정
        guard: 접근 검사기
        locks: 사용자별 잠금 (여러 서비스 인스턴스가 공유 가능)

    사용 예시:
    ```python
    service = TransactionService(store, aggregator, settings.ledger)

    tx = await service.create_transaction(
        identity, "default-salary", Decimal("1000.00"), date(2026, 10, 1),
        note="October salary", idempotency_key="req-123",
    )
    balance = await service.get_balance(identity)
    ```
    """

    def __init__(
        self,
        store: ILedgerStore,
        aggregator: BalanceAggregator | None = None,
        config: LedgerConfig | None = None,
        guard: AccessGuard | None = None,
        locks: UserLockRegistry | None = None,
    ):
        self.store = store
        self.config = config or LedgerConfig()
        self.guard = guard or AccessGuard()
        self.aggregator = aggregator or BalanceAggregator(store, self.config, self.guard)
        self.locks = locks or UserLockRegistry()

    # =========================================================================
    # 공통
    # =========================================================================

    async def _retrying(self, operation: Callable[[], Awaitable[T]], label: str) -> T:
        return await retry_on_unavailable(
            operation,
            attempts=self.config.storage_retry_attempts,
            base_delay=self.config.storage_retry_base_delay,
            label=label,
        )

    @asynccontextmanager
    async def _mutation(self, user_id: str) -> AsyncIterator[None]:
        """사용자 잠금 구간, 종료 시 잔액 캐시 무효화

        커밋 도중 취소된 경우에도 이전 잔액이 캐시에 남지 않도록
        성공/실패와 관계없이 무효화한다.
        """
        try:
            async with self.locks.hold(user_id):
                yield
        finally:
            self.aggregator.invalidate(user_id)

    async def _require_active_user(self, identity: Identity) -> User:
        """Identity에 해당하는 활성 사용자 확인

        Raises:
            Denied: 알 수 없거나 비활성화된 사용자
        """
        try:
            user = await self.store.get_user(identity.user_id)
        except NotFound as e:
            raise Denied(f"Unknown user: {identity.user_id}") from e

        if not user.is_active:
            raise Denied(f"User is deactivated: {identity.user_id}")
        return user

    async def _resolve_category(self, identity: Identity, category_id: str) -> Category:
        """참조 가능한 활성 카테고리 조회 (본인 소유 또는 공용)"""
        category = await self.store.get_category(category_id)
        self.guard.authorize(identity, LedgerAction.READ, category.owner_id)
        if not category.is_active:
            raise ConstraintViolation(f"Category is deleted: {category_id}")
        return category

    async def _resolve_account(self, identity: Identity, account_id: str) -> Account:
        """참조 가능한 활성 계좌 조회 (본인 소유만)"""
        account = await self.store.get_account(account_id)
        self.guard.authorize(identity, LedgerAction.READ, account.user_id)
        if not account.is_active:
            raise ConstraintViolation(f"Account is closed: {account_id}")
        return account

    def _check_date(self, occurred_on: Any) -> date:
        """날짜 검증 (허용 범위를 넘는 미래 날짜 거부)"""
        occurred_on = _coerce_date(occurred_on)
        latest = today_utc() + timedelta(days=self.config.future_tolerance_days)
        if occurred_on > latest:
            raise ValidationError(
                f"미래 날짜는 {self.config.future_tolerance_days}일까지만 허용됩니다: {occurred_on}"
            )
        return occurred_on

    async def _validate_fields(
        self,
        identity: Identity,
        category_id: str,
        amount: Any,
        occurred_on: Any,
        account_id: str | None,
        currency: str | None,
    ) -> tuple[Category, Decimal, date, str]:
        """거래 필드 검증

        Returns:
            (카테고리, 정규화된 금액, 날짜, 통화)
        """
        value = parse_amount(
            amount,
            scale=self.config.amount_scale,
            max_abs=self.config.max_abs_amount,
        )
        occurred_on = self._check_date(occurred_on)

        category = await self._resolve_category(identity, category_id)
        if self.config.enforce_category_sign:
            check_sign(value, category.kind)

        if currency is not None:
            currency = normalize_currency(currency)

        if account_id is not None:
            account = await self._resolve_account(identity, account_id)
            if currency is None:
                currency = account.currency
            elif currency != account.currency:
                raise ConstraintViolation(
                    f"Currency {currency} does not match account currency {account.currency}"
                )

        return category, value, occurred_on, currency or self.config.default_currency

    async def _audit(
        self,
        action: AuditAction,
        before: Transaction | None,
        after: Transaction,
    ) -> None:
        await self.store.append_audit(
            AuditRecord(
                audit_id=None,
                transaction_id=after.transaction_id,
                user_id=after.user_id,
                action=action.value,
                old_values=before.snapshot() if before else None,
                new_values=after.snapshot(),
            )
        )

    # =========================================================================
    # User
    # =========================================================================

    async def register_user(self, display_name: str, credentials_hash: str) -> User:
        """사용자 등록

        Args:
            display_name: 표시 이름
            credentials_hash: 외부 인증 제공자가 만든 자격 증명 해시

        Returns:
            생성된 User (user_id는 이후 불변)
        """
        if not credentials_hash:
            raise ValidationError("credentials_hash는 비어 있을 수 없습니다")

        user = User(
            user_id=new_id(),
            display_name=_clean_name(display_name, "display_name"),
            credentials_hash=credentials_hash,
        )
        await self.store.put_user(user)

        logger.info("User registered", extra={"user_id": user.user_id})
        return user

    async def deactivate_user(self, identity: Identity) -> None:
        """사용자 soft delete (과거 거래는 보존)"""
        async with self.locks.hold(identity.user_id):
            await self._require_active_user(identity)
            await self.store.soft_delete_user(identity.user_id)

        self.aggregator.invalidate(identity.user_id)
        logger.info("User deactivated", extra={"user_id": identity.user_id})

    # =========================================================================
    # Account
    # =========================================================================

    async def create_account(
        self,
        identity: Identity,
        name: str,
        currency: str | None = None,
    ) -> Account:
        """계좌 생성

        Raises:
            ConstraintViolation: 같은 이름의 활성 계좌 존재
        """
        await self._require_active_user(identity)

        account = Account(
            account_id=new_id(),
            user_id=identity.user_id,
            name=_clean_name(name, "account name"),
            currency=normalize_currency(currency or self.config.default_currency),
        )
        await self.store.put_account(account)

        logger.info(
            "Account created",
            extra={"user_id": identity.user_id, "account_id": account.account_id},
        )
        return account

    async def list_accounts(self, identity: Identity) -> list[Account]:
        """활성 계좌 목록"""
        await self._require_active_user(identity)
        return await self._retrying(
            lambda: self.store.list_accounts(identity.user_id),
            "list_accounts",
        )

    async def close_account(self, identity: Identity, account_id: str) -> None:
        """계좌 soft delete

        Raises:
            ConstraintViolation: 활성 거래가 계좌를 참조 중
        """
        async with self.locks.hold(identity.user_id):
            async with self.store.atomic():
                await self._require_active_user(identity)
                account = await self.store.get_account(account_id)
                self.guard.authorize(identity, LedgerAction.DELETE, account.user_id)
                if not account.is_active:
                    return

                usage = await self.store.count_account_usage(account_id)
                if usage:
                    raise ConstraintViolation(
                        f"Account {account_id} is referenced by {usage} transactions"
                    )
                await self.store.soft_delete_account(account_id)

        logger.info(
            "Account closed",
            extra={"user_id": identity.user_id, "account_id": account_id},
        )

    # =========================================================================
    # Category
    # =========================================================================

    async def create_category(
        self,
        identity: Identity,
        name: str,
        kind: CategoryKind | str,
    ) -> Category:
        """사용자 카테고리 생성

        Raises:
            ValidationError: 잘못된 이름/종류
            ConstraintViolation: 같은 이름/종류의 활성 카테고리 존재
        """
        try:
            kind = CategoryKind(kind)
        except ValueError as e:
            raise ValidationError(f"카테고리 종류가 잘못되었습니다: {kind!r}") from e

        await self._require_active_user(identity)

        category = Category(
            category_id=new_id(),
            owner_id=identity.user_id,
            name=_clean_name(name, "category name"),
            kind=kind,
        )
        await self.store.put_category(category)

        logger.info(
            "Category created",
            extra={"user_id": identity.user_id, "category_id": category.category_id},
        )
        return category

    async def list_categories(
        self,
        identity: Identity,
        include_shared: bool = True,
    ) -> list[Category]:
        """사용 가능한 카테고리 목록 (본인 소유 + 공용)"""
        await self._require_active_user(identity)
        return await self._retrying(
            lambda: self.store.list_categories(identity.user_id, include_shared),
            "list_categories",
        )

    async def rename_category(
        self,
        identity: Identity,
        category_id: str,
        name: str,
    ) -> Category:
        """카테고리 이름 변경 (공용 카테고리는 Denied)"""
        name = _clean_name(name, "category name")

        async with self.locks.hold(identity.user_id):
            async with self.store.atomic():
                await self._require_active_user(identity)
                category = await self.store.get_category(category_id)
                self.guard.authorize(identity, LedgerAction.WRITE, category.owner_id)
                if not category.is_active:
                    raise ConstraintViolation(f"Category is deleted: {category_id}")

                category.name = name
                await self.store.put_category(category)

        return category

    async def delete_category(
        self,
        identity: Identity,
        category_id: str,
        *,
        reassign_to: str | None = None,
        cascade: bool = False,
    ) -> int:
        """카테고리 soft delete

        사용 중인 카테고리는 정책을 명시해야 삭제 가능:
        - reassign_to: 같은 종류의 다른 카테고리로 거래 이동 (거래별 감사 기록)
        - cascade: 참조 거래를 함께 soft delete (거래별 감사 기록)

        Returns:
            영향을 받은 거래 수

        Raises:
            Denied: 공용 카테고리 또는 타인 카테고리
            ConstraintViolation: 사용 중인데 정책 미지정, 잘못된 이동 대상
            ValidationError: reassign_to와 cascade 동시 지정
        """
        if reassign_to is not None and cascade:
            raise ValidationError("reassign_to와 cascade는 함께 사용할 수 없습니다")

        async with self.locks.hold(identity.user_id):
            async with self.store.atomic():
                await self._require_active_user(identity)
                category = await self.store.get_category(category_id)
                self.guard.authorize(identity, LedgerAction.DELETE, category.owner_id)
                if not category.is_active:
                    return 0

                if reassign_to is None and not cascade:
                    used = await self.store.count_category_usage(category_id)
                    if used:
                        raise ConstraintViolation(
                            f"Category {category_id} is used by {used} transactions"
                        )
                    in_use = []
                else:
                    in_use = await self.store.list_transactions(
                        identity.user_id,
                        TransactionFilter(category_id=category_id),
                    )

                if in_use and reassign_to is not None:
                    await self._reassign(identity, category, reassign_to, in_use)
                elif in_use:
                    for tx in in_use:
                        deleted = await self.store.soft_delete_transaction(tx.transaction_id)
                        await self._audit(AuditAction.DELETE, tx, deleted)

                await self.store.soft_delete_category(category_id)

        if in_use:
            self.aggregator.invalidate(identity.user_id)

        logger.info(
            "Category deleted",
            extra={
                "user_id": identity.user_id,
                "category_id": category_id,
                "affected": len(in_use),
                "policy": "reassign" if reassign_to else ("cascade" if cascade else "none"),
            },
        )
        return len(in_use)

    async def _reassign(
        self,
        identity: Identity,
        source: Category,
        target_id: str,
        transactions: list[Transaction],
    ) -> None:
        if target_id == source.category_id:
            raise ConstraintViolation("Cannot reassign a category to itself")

        target = await self._resolve_category(identity, target_id)
        if target.kind != source.kind:
            raise ConstraintViolation(
                f"Reassign target kind {target.kind.value} differs from {source.kind.value}"
            )

        for tx in transactions:
            moved = tx.evolve(
                category_id=target.category_id,
                version=tx.version + 1,
                updated_at=now_utc(),
            )
            await self.store.put_transaction(moved, expected_version=tx.version)
            await self._audit(AuditAction.UPDATE, tx, moved)

    # =========================================================================
    # Transaction
    # =========================================================================

    async def create_transaction(
        self,
        identity: Identity,
        category_id: str,
        amount: Decimal | int | str,
        occurred_on: date | str,
        note: str | None = None,
        *,
        account_id: str | None = None,
        currency: str | None = None,
        idempotency_key: str | None = None,
    ) -> Transaction:
        """거래 생성

        같은 사용자가 같은 idempotency_key로 다시 요청하면
        아무것도 반영하지 않고 최초 생성된 거래를 반환한다.

        Raises:
            InvalidAmount: 0, 범위/정밀도 초과, float, 카테고리 종류와 부호 불일치
            ValidationError: 미래 날짜, 잘못된 통화/메모
            NotFound: 카테고리/계좌 없음
            ConstraintViolation: 삭제된 카테고리, 닫힌 계좌, 통화 불일치
            Denied: 타인 카테고리/계좌, 비활성 사용자
            StorageUnavailable: 저장소 장애 (재시도 소진)
        """
        key = normalize_idempotency_key(idempotency_key)
        note = _clean_note(note)

        async def _create() -> Transaction:
            async with self._mutation(identity.user_id):
                async with self.store.atomic():
                    await self._require_active_user(identity)

                    if key is not None:
                        existing = await self.store.find_by_idempotency_key(identity.user_id, key)
                        if existing is not None:
                            logger.info(
                                "Duplicate create ignored (idempotency key)",
                                extra={
                                    "user_id": identity.user_id,
                                    "transaction_id": existing.transaction_id,
                                },
                            )
                            return existing

                    category, value, tx_date, tx_currency = await self._validate_fields(
                        identity, category_id, amount, occurred_on, account_id, currency
                    )

                    tx = Transaction(
                        transaction_id=new_id(),
                        user_id=identity.user_id,
                        category_id=category.category_id,
                        amount=value,
                        currency=tx_currency,
                        occurred_on=tx_date,
                        note=note,
                        account_id=account_id,
                        idempotency_key=key,
                    )
                    await self.store.put_transaction(tx)
                    await self._audit(AuditAction.CREATE, None, tx)

            logger.info(
                "Transaction created",
                extra={
                    "user_id": identity.user_id,
                    "transaction_id": tx.transaction_id,
                    "amount": str(tx.amount),
                },
            )
            return tx

        if key is None:
            return await _create()
        return await self._retrying(_create, "create_transaction")

    async def update_transaction(
        self,
        identity: Identity,
        transaction_id: str,
        *,
        amount: Any = UNSET,
        category_id: Any = UNSET,
        occurred_on: Any = UNSET,
        note: Any = UNSET,
        account_id: Any = UNSET,
        currency: Any = UNSET,
        expected_version: int | None = None,
    ) -> Transaction:
        """거래 수정

        지정한 필드만 변경하며 병합 결과 전체를 생성 시와 같은 규칙으로 검증.
        이전/이후 값을 감사 기록에 남기고 version을 1 올린다.
        잔액은 정확히 (new - old)만큼 변한다.

        Raises:
            VersionConflict: expected_version 불일치
            ConstraintViolation: 삭제된 거래
            (그 외 create_transaction과 동일)
        """

        async def _update() -> Transaction:
            async with self._mutation(identity.user_id):
                async with self.store.atomic():
                    await self._require_active_user(identity)
                    current = await self.store.get_transaction(transaction_id)
                    self.guard.authorize(identity, LedgerAction.WRITE, current.user_id)

                    if current.is_deleted:
                        raise ConstraintViolation(f"Transaction is deleted: {transaction_id}")
                    if expected_version is not None and expected_version != current.version:
                        raise VersionConflict(transaction_id, expected_version, current.version)

                    new_account = current.account_id if account_id is UNSET else account_id
                    new_currency = current.currency if currency is UNSET else currency
                    if account_id is not UNSET and currency is UNSET and new_account is not None:
                        # 계좌 변경 시 통화는 계좌 기준으로 결정
                        new_currency = None

                    category, value, tx_date, tx_currency = await self._validate_fields(
                        identity,
                        current.category_id if category_id is UNSET else category_id,
                        current.amount if amount is UNSET else amount,
                        current.occurred_on if occurred_on is UNSET else occurred_on,
                        new_account,
                        new_currency,
                    )

                    updated = current.evolve(
                        category_id=category.category_id,
                        amount=value,
                        occurred_on=tx_date,
                        currency=tx_currency,
                        account_id=new_account,
                        note=current.note if note is UNSET else _clean_note(note),
                    )
                    if updated == current:
                        return current

                    updated = updated.evolve(version=current.version + 1, updated_at=now_utc())
                    await self.store.put_transaction(updated, expected_version=current.version)
                    await self._audit(AuditAction.UPDATE, current, updated)

            logger.info(
                "Transaction updated",
                extra={
                    "user_id": identity.user_id,
                    "transaction_id": transaction_id,
                    "delta": str(updated.amount - current.amount),
                    "version": updated.version,
                },
            )
            return updated

        if expected_version is None:
            return await _update()
        return await self._retrying(_update, "update_transaction")

    async def delete_transaction(self, identity: Identity, transaction_id: str) -> Transaction:
        """거래 soft delete

        이미 삭제된 거래는 변경 없이 그대로 반환 (멱등).

        Returns:
            삭제 상태의 거래
        """

        async def _delete() -> Transaction:
            async with self._mutation(identity.user_id):
                async with self.store.atomic():
                    await self._require_active_user(identity)
                    current = await self.store.get_transaction(transaction_id)
                    self.guard.authorize(identity, LedgerAction.DELETE, current.user_id)

                    if current.is_deleted:
                        return current

                    deleted = await self.store.soft_delete_transaction(transaction_id)
                    await self._audit(AuditAction.DELETE, current, deleted)

            logger.info(
                "Transaction deleted",
                extra={"user_id": identity.user_id, "transaction_id": transaction_id},
            )
            return deleted

        return await self._retrying(_delete, "delete_transaction")

    async def get_transaction(self, identity: Identity, transaction_id: str) -> Transaction:
        """거래 단건 조회 (본인 소유만)"""
        await self._require_active_user(identity)
        tx = await self._retrying(
            lambda: self.store.get_transaction(transaction_id),
            "get_transaction",
        )
        self.guard.authorize(identity, LedgerAction.READ, tx.user_id)
        return tx

    async def list_transactions(
        self,
        identity: Identity,
        flt: TransactionFilter | None = None,
    ) -> list[Transaction]:
        """거래 목록 조회 (본인 소유만)"""
        await self._require_active_user(identity)
        flt = flt or TransactionFilter()

        if flt.category_id:
            category = await self.store.get_category(flt.category_id)
            self.guard.authorize(identity, LedgerAction.READ, category.owner_id)
        if flt.account_id:
            account = await self.store.get_account(flt.account_id)
            self.guard.authorize(identity, LedgerAction.READ, account.user_id)

        return await self._retrying(
            lambda: self.store.list_transactions(identity.user_id, flt),
            "list_transactions",
        )

    async def get_history(self, identity: Identity, transaction_id: str) -> list[AuditRecord]:
        """거래 변경 이력 (오래된 순)"""
        tx = await self.get_transaction(identity, transaction_id)
        return await self._retrying(
            lambda: self.store.list_audit(tx.transaction_id),
            "get_history",
        )

    async def get_balance(
        self,
        identity: Identity,
        flt: TransactionFilter | None = None,
    ) -> Decimal:
        """잔액 조회 (BalanceAggregator 위임)"""
        return await self._retrying(
            lambda: self.aggregator.balance(identity, flt),
            "get_balance",
        )
