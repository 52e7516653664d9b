"""
로깅 설정 유틸리티

Web 프로세스 공통 로깅 설정.
- 콘솔 + 일 단위 롤링 파일 (TimedRotatingFileHandler)
- logger.info(..., extra={...}) 로 넘긴 필드는 메시지 뒤에 key=value로 붙음

로깅은 fire-and-forget: 핸들러 오류는 logging 모듈이 처리하며
Ledger 동작에 영향을 주지 않는다.

사용법:
    from core.logging import setup_logging
    setup_logging("web")
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Paths


LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 14

# DB 쿼리마다 로그를 남기는 라이브러리 등
QUIET_LOGGERS = (
    "aiosqlite",
    "asyncio",
    "uvicorn.access",
)

# LogRecord 기본 속성 (extra 필드 판별용)
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """extra 필드를 메시지 뒤에 덧붙이는 Formatter

    예: ``... | Transaction created | user_id=u1 transaction_id=t9 amount=-40.00``
    """

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if not context:
            return line

        fields = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} | {fields}"


def get_log_file_path(process_name: str, log_dir: Path | None = None) -> Path:
    """로그 파일 경로 ({log_dir}/{process_name}.log)"""
    return (log_dir or Paths.LOGS_DIR) / f"{process_name}.log"


def setup_logging(
    process_name: str,
    level: int = logging.INFO,
    log_dir: Path | None = None,
) -> logging.Logger:
    """루트 로거에 콘솔/파일 핸들러 설치

    기존 핸들러는 제거하므로 여러 번 호출해도 중복 출력되지 않는다.

    Args:
        process_name: 로그 파일 이름 ("web" → web.log)
        level: 핸들러 로그 레벨
        log_dir: 로그 디렉토리 (None이면 Paths.LOGS_DIR)

    Returns:
        설정된 루트 Logger
    """
    log_file = get_log_file_path(process_name, log_dir)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()

    formatter = ContextFormatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    file_handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.suffix = "%Y-%m-%d"  # web.log.2026-10-18
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info("로깅 초기화 완료", extra={"process_name": process_name, "log_file": str(log_file)})

    return root_logger
