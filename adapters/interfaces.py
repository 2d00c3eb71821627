"""
어댑터 인터페이스 정의

Protocol 기반으로 정의하여 의존성 주입 및 Mock 교체 가능.
모든 구현체는 이 Protocol을 준수해야 함.

저장소 핸들은 전역으로 공유하지 않고,
요청 단위(TransferService) 또는 캐시 단위(LedgerCache)로 주입한다.
"""

from typing import Any, AsyncIterator, Protocol, runtime_checkable
from uuid import UUID

from core.ledger.models import Account, AuthUser, Transaction


@runtime_checkable
class IAuthProvider(Protocol):
    """인증 서브시스템 인터페이스"""

    async def get_user(self, access_token: str) -> AuthUser:
        """액세스 토큰으로 사용자 조회

        Raises:
            InvalidCredentialError: 토큰 무효/만료
            LedgerStoreError: 기타 호출 실패
        """
        ...


@runtime_checkable
class IIdentityLookup(Protocol):
    """이메일 → 사용자 조회 인터페이스 (권한 상승 필요)"""

    async def find_user_ids_by_email(self, email: str) -> list[UUID]:
        """이메일에 해당하는 사용자 ID 목록

        Returns:
            사용자 ID 목록 (없으면 빈 리스트)
        """
        ...


@runtime_checkable
class IChangeFeedSubscription(Protocol):
    """Change feed 구독 핸들

    지연 평가되는, 잠재적으로 무한한 payload 시퀀스.
    스스로 재시작하지 않는다. 장애 시 반복이 FeedDisconnectedError로 끝나며,
    재구독은 호출 측이 subscribe()를 다시 호출하여 명시적으로 수행한다.
    """

    async def wait_acknowledged(self) -> None:
        """서버의 구독 확인(ack)까지 대기

        Raises:
            FeedDisconnectedError: 확인 전에 연결이 끊긴 경우
        """
        ...

    def __aiter__(self) -> AsyncIterator[dict[str, Any]]:
        """payload {kind, new_record?, old_record?} 반복"""
        ...

    async def close(self) -> None:
        """구독 해제 및 연결 정리 (여러 번 호출해도 안전)"""
        ...


@runtime_checkable
class ILedgerStore(Protocol):
    """원장 저장소 인터페이스

    accounts / transactions 테이블 조회·쓰기와 change feed 구독.
    금액은 반드시 Decimal 타입 사용.
    """

    # -------------------------------------------------------------------------
    # 계좌 조회
    # -------------------------------------------------------------------------

    async def list_accounts(
        self,
        owner_user_id: UUID | None = None,
        limit: int | None = None,
    ) -> list[Account]:
        """계좌 목록 조회 (created_at 오름차순)

        Args:
            owner_user_id: 소유자 필터 (None이면 호출자 권한 범위 전체)
            limit: 최대 개수
        """
        ...

    # -------------------------------------------------------------------------
    # 원장 항목
    # -------------------------------------------------------------------------

    async def list_transactions(self, account_id: UUID) -> list[Transaction]:
        """계좌의 모든 원장 항목 조회 (baseline fetch)"""
        ...

    async def insert_transaction(self, transaction: Transaction) -> Transaction:
        """원장 항목 추가

        Raises:
            DuplicateRecordError: 같은 id가 이미 존재
        """
        ...

    async def update_transaction(
        self,
        transaction_id: UUID,
        transaction: Transaction,
    ) -> Transaction:
        """원장 항목 전체 교체

        Raises:
            RecordNotFoundError: 대상 없음
        """
        ...

    async def delete_transaction(self, transaction_id: UUID) -> None:
        """원장 항목 삭제 (없으면 no-op)"""
        ...

    # -------------------------------------------------------------------------
    # Change feed
    # -------------------------------------------------------------------------

    async def subscribe(self, table: str, filter: str) -> IChangeFeedSubscription:
        """필터된 change feed 구독 시작

        Args:
            table: 테이블 이름 (예: transactions)
            filter: 필터 조건 (예: account_id=eq.<uuid>)
        """
        ...


def make_account_filter(account_id: UUID) -> str:
    """계좌 단위 change feed 필터 문자열 생성

    Example:
        >>> make_account_filter(UUID("11111111-1111-1111-1111-111111111111"))
        'account_id=eq.11111111-1111-1111-1111-111111111111'
    """
    return f"account_id=eq.{account_id}"


def parse_eq_filter(filter: str) -> tuple[str, str]:
    """column=eq.value 형식 필터 파싱

    Returns:
        (column, value)

    Raises:
        ValueError: 지원하지 않는 필터 형식
    """
    column, sep, rest = filter.partition("=")
    if not sep or not rest.startswith("eq.") or not column:
        raise ValueError(f"지원하지 않는 필터 형식입니다: {filter!r}")
    return column.strip(), rest[len("eq."):]
