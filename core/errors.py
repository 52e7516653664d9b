"""
Ledger 예외 정의

호출자(HTTP 계층 등)에 노출되는 오류 분류.
모든 예외는 LedgerError를 상속하며 고정된 code 문자열을 가진다.

- ValidationError: 입력 형식/범위 오류 (재시도 불가)
- ConstraintViolation: 참조/유일성 규칙 위반 (호출자가 수정 필요)
- Denied: 권한 없음 (자동 재시도 금지)
- StorageUnavailable: 일시적 저장소 장애 (backoff 후 재시도 가능)
"""


class LedgerError(Exception):
    """Ledger 예외 기본 클래스"""

    code: str = "LEDGER_ERROR"
    retryable: bool = False

    def __init__(self, message: str = ""):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(LedgerError):
    """입력 검증 실패"""

    code = "VALIDATION_ERROR"


class InvalidAmount(ValidationError):
    """금액 검증 실패 (0, 범위 초과, 정밀도 초과, float 등)"""

    code = "INVALID_AMOUNT"


class NotFound(LedgerError):
    """존재하지 않는 ID 참조"""

    code = "NOT_FOUND"

    def __init__(self, entity: str, entity_id: str):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class ConstraintViolation(LedgerError):
    """참조 무결성 / 유일성 규칙 위반"""

    code = "CONSTRAINT_VIOLATION"


class VersionConflict(ConstraintViolation):
    """낙관적 락 버전 불일치"""

    code = "VERSION_CONFLICT"

    def __init__(self, entity_id: str, expected: int, actual: int):
        self.entity_id = entity_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Version conflict on {entity_id}: expected {expected}, actual {actual}"
        )


class Denied(LedgerError):
    """권한 없는 접근"""

    code = "DENIED"


class StorageUnavailable(LedgerError):
    """저장소 일시 장애 (잠금 타임아웃, 연결 불가 등)"""

    code = "STORAGE_UNAVAILABLE"
    retryable = True
