"""
LedgerStore 어댑터 에러

모든 저장소 구현체(Supabase, In-Memory)가 공통으로 발생시키는 예외.
상위 계층(TransferService, Reconciler)은 이 예외만 처리한다.
"""


class LedgerStoreError(Exception):
    """저장소 호출 실패 기본 예외

    Attributes:
        status_code: HTTP 상태 코드 (알 수 없으면 None)
        code: 저장소 에러 코드 (예: Postgres SQLSTATE "23505")
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.code = code


class LedgerStoreTimeoutError(LedgerStoreError):
    """저장소 호출 타임아웃"""

    pass


class DuplicateRecordError(LedgerStoreError):
    """PK/유일성 제약 위반 (이미 존재하는 레코드)"""

    pass


class RecordNotFoundError(LedgerStoreError):
    """대상 레코드 없음 (update/delete 대상)"""

    pass


class InvalidCredentialError(LedgerStoreError):
    """액세스 토큰 무효/만료"""

    pass


class FeedDisconnectedError(LedgerStoreError):
    """Change feed 연결 끊김 (재구독 대상)"""

    pass
