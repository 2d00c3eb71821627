"""
의존성 주입

FastAPI의 Depends를 사용한 의존성 관리.

저장소는 전역으로 공유하지 않는다. 앱 시작 시 등록된 팩토리로
요청마다 새 저장소를 만들고 요청이 끝나면 닫는다.
"""

from typing import Any, AsyncGenerator, Callable, Protocol

from fastapi import Request

from web.services.transfer_service import TransferService


class ServiceStore(Protocol):
    """TransferService에 주입되는 저장소 (원장 + 인증 + 사용자 조회)"""

    async def __aenter__(self) -> Any: ...

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...


# 요청마다 새 저장소를 만드는 팩토리
StoreFactory = Callable[[], ServiceStore]


async def get_transfer_service(request: Request) -> AsyncGenerator[TransferService, None]:
    """요청 단위 TransferService 반환

    app.state.store_factory / app.state.request_timeout은 lifespan에서 설정된다.
    """
    factory: StoreFactory = request.app.state.store_factory
    timeout: float = request.app.state.request_timeout

    async with factory() as store:
        yield TransferService(store, auth=store, identity=store, timeout=timeout)
