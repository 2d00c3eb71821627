"""
Supabase Realtime 클라이언트

Phoenix channel 프로토콜로 postgres_changes를 구독하여
원장 테이블의 insert/update/delete 알림을 수신.

구독 하나당 WebSocket 연결 하나를 사용한다.
구독은 스스로 재연결하지 않으며, 연결이 끊기면 반복이
FeedDisconnectedError로 끝난다. 재구독은 호출 측(Reconciler) 책임.
"""

import asyncio
import itertools
import json
import logging
from typing import Any
from urllib.parse import urlencode

import websockets
from websockets.exceptions import ConnectionClosed

from adapters.errors import FeedDisconnectedError
from core.constants import RealtimeProtocol, SupabaseEndpoints

logger = logging.getLogger(__name__)


# 큐 종료 표시
_CLOSED = object()


def to_feed_payload(data: dict[str, Any]) -> dict[str, Any]:
    """Realtime postgres_changes data를 피드 payload로 변환

    Realtime 형식: {"type": "INSERT", "record": {...}, "old_record": {...}, ...}
    피드 형식:     {"kind": "insert", "new_record": {...}, "old_record": {...}}
    """
    return {
        "kind": str(data.get("type") or data.get("eventType") or "").lower(),
        "new_record": data.get("record") or data.get("new"),
        "old_record": data.get("old_record") or data.get("old"),
    }


class RealtimeSubscription:
    """Realtime 채널 구독 (IChangeFeedSubscription 구현)

    Args:
        url: WebSocket URL (apikey, vsn 쿼리 포함)
        topic: 채널 토픽 (realtime:<name>)
        join_payload: phx_join payload
        heartbeat_interval: heartbeat 전송 간격 (초)
    """

    # 상수
    HEARTBEAT_INTERVAL = 25  # Phoenix 기본 타임아웃(60초)보다 짧게
    PING_INTERVAL = 20  # WebSocket ping 간격 (초)
    PING_TIMEOUT = 10  # WebSocket ping 타임아웃 (초)

    def __init__(
        self,
        url: str,
        topic: str,
        join_payload: dict[str, Any],
        heartbeat_interval: float | None = None,
    ):
        self.url = url
        self.topic = topic
        self.join_payload = join_payload
        self.heartbeat_interval = heartbeat_interval or self.HEARTBEAT_INTERVAL

        self._ws: Any = None
        self._refs = itertools.count(1)
        self._join_ref: str | None = None

        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._acknowledged = asyncio.Event()
        self._failure: FeedDisconnectedError | None = None
        self._closed = False

        # 태스크 관리
        self._receive_task: asyncio.Task[None] | None = None
        self._heartbeat_task: asyncio.Task[None] | None = None

    @property
    def is_acknowledged(self) -> bool:
        """구독 확인 여부"""
        return self._acknowledged.is_set()

    def _next_ref(self) -> str:
        return str(next(self._refs))

    async def _send(self, topic: str, event: str, payload: dict[str, Any]) -> str:
        ref = self._next_ref()
        message = {
            "topic": topic,
            "event": event,
            "payload": payload,
            "ref": ref,
            "join_ref": self._join_ref,
        }
        await self._ws.send(json.dumps(message))
        return ref

    async def open(self) -> None:
        """연결 및 채널 join 전송

        Raises:
            FeedDisconnectedError: 연결 실패
        """
        try:
            self._ws = await websockets.connect(
                self.url,
                ping_interval=self.PING_INTERVAL,
                ping_timeout=self.PING_TIMEOUT,
            )
        except (OSError, websockets.WebSocketException) as e:
            raise FeedDisconnectedError(f"realtime 연결 실패: {e}") from e

        self._join_ref = self._next_ref()
        message = {
            "topic": self.topic,
            "event": RealtimeProtocol.EVENT_JOIN,
            "payload": self.join_payload,
            "ref": self._join_ref,
            "join_ref": self._join_ref,
        }
        try:
            await self._ws.send(json.dumps(message))
        except ConnectionClosed as e:
            # 구독 객체가 호출자에게 넘어가지 않으므로 여기서 닫는다
            await self._ws.close()
            self._ws = None
            self._closed = True
            raise FeedDisconnectedError(f"join 전송 실패: {e}") from e

        logger.info("Realtime 채널 join 전송", extra={"topic": self.topic})

        # 백그라운드 태스크 시작
        self._receive_task = asyncio.create_task(self._receive_loop())
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    async def wait_acknowledged(self) -> None:
        """phx_reply(status=ok)까지 대기"""
        if self._acknowledged.is_set():
            return
        if self._failure is not None:
            raise self._failure

        ack_task = asyncio.create_task(self._acknowledged.wait())
        recv_task = self._receive_task
        waiters: set[asyncio.Future[Any]] = {ack_task}
        if recv_task is not None:
            waiters.add(recv_task)

        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not ack_task.done():
                ack_task.cancel()

        if not self._acknowledged.is_set():
            raise self._failure or FeedDisconnectedError("구독 확인 전에 연결 종료")

    def __aiter__(self) -> "RealtimeSubscription":
        return self

    async def __anext__(self) -> dict[str, Any]:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration

        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, FeedDisconnectedError):
            raise item
        return item

    async def _receive_loop(self) -> None:
        """메시지 수신 루프"""
        try:
            async for raw in self._ws:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.warning(
                        "메시지 파싱 실패",
                        extra={"error": str(e), "message": str(raw)[:100]},
                    )
                    continue

                self._handle_message(message)
                if self._failure is not None:
                    break
        except ConnectionClosed as e:
            logger.warning(
                "Realtime 연결 끊김",
                extra={"code": e.code, "reason": e.reason},
            )
            self._fail(FeedDisconnectedError(f"connection closed: {e.code} {e.reason}"))
        except asyncio.CancelledError:
            raise
        else:
            # 서버가 정상 종료한 경우도 피드 종료로 취급
            self._fail(FeedDisconnectedError("connection closed by server"))

    def _handle_message(self, message: dict[str, Any]) -> None:
        """수신 메시지 분기"""
        topic = message.get("topic")
        event = message.get("event")
        payload = message.get("payload") or {}

        if topic != self.topic:
            # heartbeat 응답 등
            return

        if event == RealtimeProtocol.EVENT_REPLY and message.get("ref") == self._join_ref:
            if payload.get("status") == "ok":
                self._acknowledged.set()
                logger.info("Realtime 구독 확인", extra={"topic": self.topic})
            else:
                self._fail(FeedDisconnectedError(f"구독 거부: {payload.get('response')}"))

        elif event == RealtimeProtocol.EVENT_POSTGRES_CHANGES:
            data = payload.get("data")
            if isinstance(data, dict):
                self._queue.put_nowait(to_feed_payload(data))
            else:
                logger.warning("postgres_changes에 data가 없음", extra={"topic": topic})

        elif event == RealtimeProtocol.EVENT_SYSTEM:
            if payload.get("status") == "error":
                self._fail(FeedDisconnectedError(f"realtime 시스템 에러: {payload.get('message')}"))

        elif event in (RealtimeProtocol.EVENT_ERROR, RealtimeProtocol.EVENT_CLOSE):
            self._fail(FeedDisconnectedError(f"채널 종료: {event}"))

    async def _heartbeat_loop(self) -> None:
        """heartbeat 전송 루프"""
        try:
            while not self._closed and self._failure is None:
                await asyncio.sleep(self.heartbeat_interval)
                try:
                    await self._send(
                        RealtimeProtocol.HEARTBEAT_TOPIC,
                        RealtimeProtocol.EVENT_HEARTBEAT,
                        {},
                    )
                except ConnectionClosed:
                    # 수신 루프가 끊김을 처리
                    break
        except asyncio.CancelledError:
            raise

    def _fail(self, error: FeedDisconnectedError) -> None:
        if self._failure is not None or self._closed:
            return
        self._failure = error
        self._queue.put_nowait(error)

    async def close(self) -> None:
        """구독 해제 및 연결 종료"""
        if self._closed:
            return
        self._closed = True

        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            try:
                await self._heartbeat_task
            except asyncio.CancelledError:
                pass
            self._heartbeat_task = None

        if self._ws is not None and self._failure is None:
            try:
                await self._send(self.topic, RealtimeProtocol.EVENT_LEAVE, {})
            except ConnectionClosed:
                pass

        if self._receive_task is not None:
            self._receive_task.cancel()
            try:
                await self._receive_task
            except asyncio.CancelledError:
                pass
            self._receive_task = None

        if self._ws is not None:
            try:
                await self._ws.close()
            except ConnectionClosed:
                pass
            self._ws = None

        self._queue.put_nowait(_CLOSED)
        logger.info("Realtime 구독 해제", extra={"topic": self.topic})


class SupabaseRealtimeClient:
    """Supabase Realtime 클라이언트

    Args:
        ws_base_url: WebSocket 베이스 URL (예: wss://xyz.supabase.co)
        api_key: apikey 쿼리 값
        access_token: RLS 평가용 사용자 토큰 (None이면 api_key 사용)
        heartbeat_interval: heartbeat 간격 (초)

    사용 예시:
    ```python
    client = SupabaseRealtimeClient(ws_url, anon_key, access_token=token)
    subscription = await client.subscribe("transactions", "account_id=eq.<uuid>")
    await subscription.wait_acknowledged()
    async for payload in subscription:
        ...
    await subscription.close()
    ```
    """

    def __init__(
        self,
        ws_base_url: str,
        api_key: str,
        access_token: str | None = None,
        heartbeat_interval: float | None = None,
    ):
        self.ws_base_url = ws_base_url.rstrip("/")
        self.api_key = api_key
        self.access_token = access_token or api_key
        self.heartbeat_interval = heartbeat_interval
        self._channel_counter = itertools.count(1)

    def build_url(self) -> str:
        """WebSocket 접속 URL"""
        query = urlencode({"apikey": self.api_key, "vsn": RealtimeProtocol.VSN})
        return f"{self.ws_base_url}{SupabaseEndpoints.REALTIME_PATH}?{query}"

    def build_join_payload(self, table: str, filter: str) -> dict[str, Any]:
        """postgres_changes 구독 payload"""
        return {
            "config": {
                "broadcast": {"ack": False, "self": False},
                "presence": {"key": ""},
                "postgres_changes": [
                    {
                        "event": "*",
                        "schema": RealtimeProtocol.SCHEMA,
                        "table": table,
                        "filter": filter,
                    }
                ],
            },
            "access_token": self.access_token,
        }

    async def subscribe(self, table: str, filter: str) -> RealtimeSubscription:
        """구독 시작 (join 전송까지)

        Raises:
            FeedDisconnectedError: 연결 실패
        """
        topic = f"realtime:{table}-changes-{next(self._channel_counter)}"
        subscription = RealtimeSubscription(
            url=self.build_url(),
            topic=topic,
            join_payload=self.build_join_payload(table, filter),
            heartbeat_interval=self.heartbeat_interval,
        )
        await subscription.open()
        return subscription
