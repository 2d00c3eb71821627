"""
로깅 설정 유틸리티

Web(이체 API)과 Sync(원장 동기화) 프로세스가 공유하는 로깅 설정.
콘솔 핸들러 하나와 프로세스별 일 단위 로그 파일 하나를 루트 로거에 붙인다.

사용법:
    from core.logging import setup_logging

    setup_logging("web")
    setup_logging("sync", console_level="DEBUG")
    setup_logging("thin_slice", log_to_file=False)

모듈에서는 logger = logging.getLogger(__name__)로 받아
logger.info("이체 완료", extra={"amount": "100.00"}) 형태로 기록한다.
"""

import logging
import sys
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

from core.constants import Defaults, Paths


# 로그 설정 상수
LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
LOG_FILE_BACKUP_COUNT = 7  # 일 단위 파일 보관 수

# 프로세스별 로그 디렉토리 (없으면 Paths.LOGS_DIR)
PROCESS_LOG_DIRS: dict[str, Path] = {
    "web": Paths.WEB_LOGS_DIR,
    "sync": Paths.SYNC_LOGS_DIR,
}

# WARNING 이상만 남길 라이브러리 로거
NOISY_LOGGERS = [
    "httpcore",       # 연결 풀 상세
    "httpx",          # PostgREST 요청마다 한 줄
    "websockets",     # Realtime 프레임/ping
    "asyncio",
]

LogLevel = int | str


def resolve_level(level: LogLevel) -> int:
    """로그 레벨 변환 ("debug", "INFO", logging.WARNING 모두 허용)

    Raises:
        ValueError: 알 수 없는 레벨 이름
    """
    if isinstance(level, int):
        return level

    value = logging.getLevelName(level.strip().upper())
    if not isinstance(value, int):
        raise ValueError(f"알 수 없는 로그 레벨: {level!r}")
    return value


def get_log_file_path(process_name: str) -> Path:
    """프로세스 로그 파일 경로 (예: logs/web/web.log)"""
    log_dir = PROCESS_LOG_DIRS.get(process_name, Paths.LOGS_DIR)
    return log_dir / f"{process_name}.log"


def _build_file_handler(log_file: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    """자정마다 교체되는 파일 핸들러 (백업 파일: web.log.2026-02-21)"""
    log_file.parent.mkdir(parents=True, exist_ok=True)

    handler = TimedRotatingFileHandler(
        filename=log_file,
        when="midnight",
        interval=1,
        backupCount=LOG_FILE_BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.suffix = "%Y-%m-%d"
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    process_name: str,
    console_level: LogLevel = Defaults.LOG_LEVEL,
    file_level: LogLevel = Defaults.LOG_LEVEL,
    log_to_file: bool = True,
) -> logging.Logger:
    """루트 로거 초기화

    다시 호출하면 기존 핸들러를 교체한다.

    Args:
        process_name: 프로세스 이름 ("web", "sync" 등, 로그 파일 이름으로 사용)
        console_level: 콘솔 로그 레벨
        file_level: 파일 로그 레벨
        log_to_file: False면 콘솔 핸들러만 설정 (스크립트/테스트)

    Returns:
        설정된 루트 Logger
    """
    console = resolve_level(console_level)
    file = resolve_level(file_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # 핸들러 레벨에서 거른다
    root_logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    log_file = get_log_file_path(process_name)
    if log_to_file:
        root_logger.addHandler(_build_file_handler(log_file, file, formatter))

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)

    root_logger.info(
        f"로깅 초기화 완료: {process_name}",
        extra={
            "console_level": logging.getLevelName(console),
            "log_file": str(log_file) if log_to_file else None,
        },
    )
    return root_logger
