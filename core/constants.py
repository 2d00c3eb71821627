"""
하드코딩 상수 - 변경될 일이 거의 없는 고정값

중요: 경로는 반드시 pathlib.Path 사용 (Windows/Linux 크로스 플랫폼)
"""

from pathlib import Path


# 프로젝트 루트 (이 파일 기준 2단계 상위: core/constants.py → ledgersync/)
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent

# 패키지 버전 (health 응답, FastAPI 메타데이터)
VERSION: str = "1.0.0"


class SupabaseEndpoints:
    """Supabase 서비스 경로 (프로젝트 URL 기준 상대 경로)"""

    REST_PATH: str = "/rest/v1"
    AUTH_PATH: str = "/auth/v1"
    REALTIME_PATH: str = "/realtime/v1/websocket"

    # 이메일 → user_id 조회용 SECURITY DEFINER 함수
    USER_ID_BY_EMAIL_RPC: str = "get_user_id_by_email"


class TableNames:
    """LedgerStore 테이블 이름"""

    ACCOUNTS: str = "accounts"
    TRANSACTIONS: str = "transactions"


class RealtimeProtocol:
    """Realtime (Phoenix channel) 프로토콜 상수"""

    VSN: str = "1.0.0"
    SCHEMA: str = "public"
    HEARTBEAT_TOPIC: str = "phoenix"

    EVENT_JOIN: str = "phx_join"
    EVENT_LEAVE: str = "phx_leave"
    EVENT_REPLY: str = "phx_reply"
    EVENT_ERROR: str = "phx_error"
    EVENT_CLOSE: str = "phx_close"
    EVENT_HEARTBEAT: str = "heartbeat"
    EVENT_POSTGRES_CHANGES: str = "postgres_changes"
    EVENT_SYSTEM: str = "system"


class Defaults:
    """기본값 상수"""

    WEB_HOST: str = "127.0.0.1"
    WEB_PORT: int = 8000

    LOG_LEVEL: str = "INFO"

    # 원격 호출 타임아웃 (초)
    REQUEST_TIMEOUT_SEC: float = 10.0
    SUBSCRIBE_ACK_TIMEOUT_SEC: float = 10.0

    # 이체 기본 문구
    TRANSFER_SUCCESS_MESSAGE: str = "Transaction successful"
    TRANSFER_TO_TEMPLATE: str = "Transfer to {email}"
    TRANSFER_FROM_TEMPLATE: str = "Transfer from {email}"


class Paths:
    """프로젝트 경로 상수 (pathlib 사용 - OS 독립적)"""

    # 디렉토리
    CONFIG_DIR: Path = PROJECT_ROOT / "config"
    LOGS_DIR: Path = PROJECT_ROOT / "logs"
    WEB_LOGS_DIR: Path = LOGS_DIR / "web"
    SYNC_LOGS_DIR: Path = LOGS_DIR / "sync"

    # 설정 파일
    SECRETS_FILE: Path = CONFIG_DIR / "secrets.yaml"
