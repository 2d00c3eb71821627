"""
Transfer 서비스

사용자 간 이체 처리.
요청마다 저장소/인증/사용자 조회 구현체를 주입받아 생성한다 (전역 상태 없음).

처리 순서:
1. 구조 검증 (필수 필드, amount > 0)
2. 호출자 인증
3. 수신자 이메일 → 사용자 ID
4. 수신자 계좌 결정 (가장 먼저 생성된 계좌)
5. 송신자 차변 쓰기
6. 수신자 대변 쓰기
7. 영수증 반환

5 실패 시 6을 시도하지 않는다. 6 실패 시 5는 이미 커밋된 상태이며
자동으로 되돌리지 않는다 (LedgerWriteFailedError.partial=True).
서비스 내부에서 재시도하지 않는다.

Idempotency-Key가 주어지면 두 항목 ID를 호출자, 요청 본문, 키에서 결정적으로 만든다.
재전송 시 이미 기록된 쪽은 중복 키 에러로 건너뛰므로
같은 본문, 같은 키로 다시 호출해 대변 실패 이체를 완료할 수 있다.
본문이나 호출자가 다르면 ID도 달라 새 이체로 기록된다.
"""

import asyncio
import logging
from typing import Any, Awaitable, TypeVar
from uuid import UUID

from adapters.errors import (
    DuplicateRecordError,
    InvalidCredentialError,
    LedgerStoreError,
    LedgerStoreTimeoutError,
)
from adapters.interfaces import IAuthProvider, IIdentityLookup, ILedgerStore
from core.constants import Defaults
from core.domain.errors import (
    InvalidRequestError,
    LedgerWriteFailedError,
    RecipientHasNoAccountError,
    RecipientNotFoundError,
    TransferTimeoutError,
    UnauthorizedError,
)
from core.ledger.models import AuthUser, Transaction, TransferReceipt, TransferRequest
from core.types import TransactionType, TransferSide
from core.utils.idempotency import make_entry_id, make_transfer_scope, normalize_idempotency_key
from core.utils.timezone import now_utc

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TransferService:
    """이체 서비스

    Args:
        store: 원장 저장소 (service_role 권한)
        auth: 액세스 토큰 검증
        identity: 이메일 → 사용자 조회
        timeout: 원격 호출 1건당 최대 대기 (초)

    사용 예시:
    ```python
    service = TransferService(store, auth=store, identity=store, timeout=10.0)
    receipt = await service.execute(payload, credential=token)
    ```
    """

    def __init__(
        self,
        store: ILedgerStore,
        auth: IAuthProvider,
        identity: IIdentityLookup,
        timeout: float = Defaults.REQUEST_TIMEOUT_SEC,
    ):
        self.store = store
        self.auth = auth
        self.identity = identity
        self.timeout = timeout

    async def _call(
        self,
        operation: str,
        awaitable: Awaitable[T],
        side: TransferSide | None = None,
    ) -> T:
        """원격 호출에 타임아웃 적용

        Raises:
            TransferTimeoutError: timeout 초과 또는 저장소 타임아웃
        """
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except (asyncio.TimeoutError, LedgerStoreTimeoutError) as e:
            logger.warning(
                f"이체 원격 호출 타임아웃: {operation}",
                extra={"timeout": self.timeout, "side": side.value if side else None},
            )
            raise TransferTimeoutError(operation, side) from e

    # =========================================================================
    # 실행
    # =========================================================================

    async def execute(
        self,
        request: TransferRequest | dict[str, Any],
        credential: str | None,
        idempotency_key: str | None = None,
    ) -> TransferReceipt:
        """이체 실행

        Args:
            request: 이체 요청 (또는 JSON 본문)
            credential: 호출자 액세스 토큰 (Bearer 제외)
            idempotency_key: 재전송 중복 방지 키 (선택)

        Returns:
            TransferReceipt

        Raises:
            InvalidRequestError: 400
            UnauthorizedError: 401
            RecipientNotFoundError: 404
            RecipientHasNoAccountError: 404
            LedgerWriteFailedError: 500 (side로 실패 지점 구분)
            TransferTimeoutError: 504
        """
        # 1. 구조 검증
        if not isinstance(request, TransferRequest):
            request = TransferRequest.from_payload(request)

        try:
            key = normalize_idempotency_key(idempotency_key)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid Idempotency-Key: {e}") from e

        # 2. 인증
        caller = await self._authenticate(credential)

        # 3. 수신자 조회
        recipient_user_id = await self._resolve_recipient(request.recipient_email)

        # 4. 수신자 계좌
        recipient_account_id = await self._resolve_recipient_account(recipient_user_id)

        logger.info(
            "이체 시작",
            extra={
                "caller_id": str(caller.id),
                "sender_account_id": str(request.sender_account_id),
                "recipient_account_id": str(recipient_account_id),
                "amount": str(request.amount),
                "currency": request.currency,
                "idempotent": key is not None,
            },
        )

        scope = make_transfer_scope(
            caller_id=caller.id,
            sender_account_id=request.sender_account_id,
            recipient_email=request.recipient_email,
            amount=request.amount,
            currency=request.currency,
            category=request.category,
            description=request.description,
        )

        # 5. 송신자 차변
        debit = Transaction.create(
            id=make_entry_id(key, TransferSide.SENDER, scope) if key else None,
            account_id=request.sender_account_id,
            type=TransactionType.DEBIT,
            amount=request.amount,
            currency=request.currency,
            category=request.category,
            description=request.description
            or Defaults.TRANSFER_TO_TEMPLATE.format(email=request.recipient_email),
            date=now_utc(),
        )
        await self._write(debit, TransferSide.SENDER, idempotent=key is not None)

        # 6. 수신자 대변 (차변은 이미 커밋됨)
        caller_email = caller.email or str(caller.id)
        credit = Transaction.create(
            id=make_entry_id(key, TransferSide.RECIPIENT, scope) if key else None,
            account_id=recipient_account_id,
            type=TransactionType.CREDIT,
            amount=request.amount,
            currency=request.currency,
            category=request.category,
            description=request.description
            or Defaults.TRANSFER_FROM_TEMPLATE.format(email=caller_email),
            date=now_utc(),
        )
        await self._write(credit, TransferSide.RECIPIENT, idempotent=key is not None)

        logger.info(
            "이체 완료",
            extra={
                "debit_id": str(debit.id),
                "credit_id": str(credit.id),
                "amount": str(request.amount),
                "currency": request.currency,
            },
        )

        # 7. 영수증
        return TransferReceipt(
            amount=request.amount,
            currency=request.currency,
            recipient_email=request.recipient_email,
            message=Defaults.TRANSFER_SUCCESS_MESSAGE,
        )

    # =========================================================================
    # 단계별 처리
    # =========================================================================

    async def _authenticate(self, credential: str | None) -> AuthUser:
        """호출자 인증

        누락/무효 모두 같은 401로 응답한다 (reason은 로그에만 기록).
        """
        if not credential:
            logger.info("이체 인증 실패: 자격 증명 누락")
            raise UnauthorizedError(UnauthorizedError.MISSING_CREDENTIAL)

        try:
            return await self._call("authentication", self.auth.get_user(credential))
        except InvalidCredentialError as e:
            logger.info(f"이체 인증 실패: {e}")
            raise UnauthorizedError(UnauthorizedError.INVALID_CREDENTIAL) from e
        except TransferTimeoutError:
            raise
        except LedgerStoreError as e:
            logger.error(f"인증 서버 호출 실패: {e}", extra={"status_code": e.status_code})
            raise UnauthorizedError(UnauthorizedError.INVALID_CREDENTIAL) from e

    async def _resolve_recipient(self, email: str) -> UUID:
        """수신자 이메일 → 사용자 ID (여러 개면 첫 번째)"""
        try:
            user_ids = await self._call(
                "recipient lookup",
                self.identity.find_user_ids_by_email(email),
            )
        except TransferTimeoutError:
            raise
        except LedgerStoreError as e:
            logger.error(f"수신자 조회 실패: {e}", extra={"status_code": e.status_code})
            raise RecipientNotFoundError() from e

        if not user_ids:
            logger.info("수신자 없음", extra={"recipient_email": email})
            raise RecipientNotFoundError()
        return user_ids[0]

    async def _resolve_recipient_account(self, user_id: UUID) -> UUID:
        """수신자 계좌 결정 (created_at 오름차순 첫 계좌)"""
        try:
            accounts = await self._call(
                "recipient account lookup",
                self.store.list_accounts(owner_user_id=user_id, limit=1),
            )
        except TransferTimeoutError:
            raise
        except LedgerStoreError as e:
            logger.error(f"수신자 계좌 조회 실패: {e}", extra={"status_code": e.status_code})
            raise RecipientHasNoAccountError() from e

        if not accounts:
            logger.info("수신자 계좌 없음", extra={"user_id": str(user_id)})
            raise RecipientHasNoAccountError()
        return accounts[0].id

    async def _write(
        self,
        transaction: Transaction,
        side: TransferSide,
        idempotent: bool,
    ) -> None:
        """원장 항목 쓰기

        Raises:
            LedgerWriteFailedError: 쓰기 실패
            TransferTimeoutError: 타임아웃 (커밋 여부 불명)
        """
        try:
            await self._call(
                f"{side.value} write",
                self.store.insert_transaction(transaction),
                side=side,
            )
        except TransferTimeoutError:
            raise
        except DuplicateRecordError as e:
            if idempotent:
                logger.info(
                    "이미 기록된 이체 항목, 건너뜀",
                    extra={"transaction_id": str(transaction.id), "side": side.value},
                )
                return
            logger.error(f"이체 항목 쓰기 실패: {e}", extra={"side": side.value})
            raise LedgerWriteFailedError(side, str(e)) from e
        except LedgerStoreError as e:
            logger.error(
                f"이체 항목 쓰기 실패: {e}",
                extra={"side": side.value, "status_code": e.status_code},
            )
            raise LedgerWriteFailedError(side, str(e)) from e
