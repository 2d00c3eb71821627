"""
설정 로더

secrets.yaml 로드 및 LedgerStore(Supabase) 접속 설정 생성
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from core.constants import Defaults, Paths


@dataclass(frozen=True)
class TimeoutConfig:
    """원격 호출 타임아웃 설정 (초)"""

    request_sec: float = Defaults.REQUEST_TIMEOUT_SEC
    subscribe_ack_sec: float = Defaults.SUBSCRIBE_ACK_TIMEOUT_SEC


@dataclass(frozen=True)
class SupabaseConfig:
    """LedgerStore 접속 설정

    service_role_key는 이메일 → 사용자 조회(권한 상승 필요)와
    이체 원장 쓰기에 사용한다.
    """

    url: str
    anon_key: str
    service_role_key: str


@dataclass(frozen=True)
class Secrets:
    """보안 설정 (secrets.yaml에서 로드)

    불변 데이터 구조로 설정 변경 방지
    """

    supabase: SupabaseConfig
    timeouts: TimeoutConfig


class SecretsLoadError(Exception):
    """Secrets 로드 실패 예외"""

    pass


def _parse_timeout(section: dict[str, Any], key: str, default: float) -> float:
    value = section.get(key, default)
    try:
        timeout = float(value)
    except (TypeError, ValueError) as e:
        raise SecretsLoadError(
            f"secrets.yaml의 timeouts.{key} 값이 숫자가 아닙니다: {value!r}"
        ) from e

    if timeout <= 0:
        raise SecretsLoadError(
            f"secrets.yaml의 timeouts.{key} 값은 0보다 커야 합니다: {timeout}"
        )
    return timeout


def load_secrets(path: Path | None = None) -> Secrets:
    """secrets.yaml 파일 로드

    Args:
        path: secrets.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Secrets 인스턴스

    Raises:
        SecretsLoadError: 파일이 없거나 형식이 잘못된 경우
    """
    if path is None:
        path = Paths.SECRETS_FILE

    if not path.exists():
        raise SecretsLoadError(f"secrets.yaml 파일을 찾을 수 없습니다: {path}")

    try:
        content = path.read_text(encoding="utf-8")
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise SecretsLoadError(f"secrets.yaml 파싱 실패: {e}") from e

    if data is None:
        raise SecretsLoadError("secrets.yaml이 비어 있습니다")
    if not isinstance(data, dict):
        raise SecretsLoadError("secrets.yaml 최상위는 매핑이어야 합니다")

    # supabase 섹션 검증
    supabase_data = data.get("supabase")
    if not isinstance(supabase_data, dict):
        raise SecretsLoadError("secrets.yaml에 'supabase' 설정이 없습니다")

    url = supabase_data.get("url")
    anon_key = supabase_data.get("anon_key")
    service_role_key = supabase_data.get("service_role_key")

    if not url:
        raise SecretsLoadError("secrets.yaml의 supabase 섹션에 'url'이 없습니다")
    if not anon_key:
        raise SecretsLoadError("secrets.yaml의 supabase 섹션에 'anon_key'가 없습니다")
    if not service_role_key:
        raise SecretsLoadError(
            "secrets.yaml의 supabase 섹션에 'service_role_key'가 없습니다"
        )

    # timeouts 섹션 (선택)
    timeouts_data = data.get("timeouts") or {}
    if not isinstance(timeouts_data, dict):
        raise SecretsLoadError("secrets.yaml의 timeouts 섹션 형식이 잘못되었습니다")

    timeouts = TimeoutConfig(
        request_sec=_parse_timeout(
            timeouts_data, "request_sec", Defaults.REQUEST_TIMEOUT_SEC
        ),
        subscribe_ack_sec=_parse_timeout(
            timeouts_data, "subscribe_ack_sec", Defaults.SUBSCRIBE_ACK_TIMEOUT_SEC
        ),
    )

    return Secrets(
        supabase=SupabaseConfig(
            url=str(url).rstrip("/"),
            anon_key=str(anon_key),
            service_role_key=str(service_role_key),
        ),
        timeouts=timeouts,
    )


class Settings:
    """애플리케이션 설정 (싱글턴 패턴)

    secrets.yaml을 로드하고 관련 설정을 제공.
    설정값만 보관하며 저장소 클라이언트는 보관하지 않는다
    (클라이언트는 호출 측에서 생성하여 주입).
    """

    _instance: "Settings | None" = None
    _secrets: Secrets | None = None

    def __new__(cls, secrets_path: Path | None = None) -> "Settings":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __init__(self, secrets_path: Path | None = None) -> None:
        if self._secrets is None:
            self._secrets = load_secrets(secrets_path)

    @property
    def supabase(self) -> SupabaseConfig:
        """LedgerStore 접속 설정"""
        assert self._secrets is not None
        return self._secrets.supabase

    @property
    def timeouts(self) -> TimeoutConfig:
        """원격 호출 타임아웃 설정"""
        assert self._secrets is not None
        return self._secrets.timeouts

    @property
    def realtime_url(self) -> str:
        """Realtime WebSocket URL (https → wss 변환)"""
        assert self._secrets is not None
        base = self._secrets.supabase.url
        if base.startswith("https://"):
            base = "wss://" + base[len("https://"):]
        elif base.startswith("http://"):
            base = "ws://" + base[len("http://"):]
        return base

    @classmethod
    def reset(cls) -> None:
        """싱글턴 인스턴스 초기화 (테스트용)"""
        cls._instance = None
        cls._secrets = None


def get_settings(secrets_path: Path | None = None) -> Settings:
    """Settings 인스턴스 반환

    Args:
        secrets_path: secrets.yaml 경로 (None이면 기본 경로 사용)

    Returns:
        Settings 싱글턴 인스턴스
    """
    return Settings(secrets_path)
