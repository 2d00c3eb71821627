"""
FastAPI 애플리케이션

라우터 등록 및 앱 설정.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.constants import VERSION
from core.logging import setup_logging

# 로깅 설정 (콘솔 + 파일)
setup_logging("web")

from web.dependencies import StoreFactory
from web.routes import health, transfer

logger = logging.getLogger(__name__)


def create_app(
    store_factory: StoreFactory | None = None,
    request_timeout: float | None = None,
) -> FastAPI:
    """앱 생성

    Args:
        store_factory: 요청마다 저장소를 만드는 팩토리
            (None이면 secrets.yaml의 service_role 키로 Supabase 저장소 생성)
        request_timeout: 원격 호출 타임아웃 (None이면 설정값)
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """앱 생명주기 관리"""
        factory = store_factory
        timeout = request_timeout

        if factory is None or timeout is None:
            from adapters.supabase.store import SupabaseLedgerStore
            from core.config.loader import get_settings

            settings = get_settings()
            if factory is None:
                factory = lambda: SupabaseLedgerStore.for_service(settings)  # noqa: E731
                logger.info(f"Web: Supabase 저장소 사용 ({settings.supabase.url})")
            if timeout is None:
                timeout = settings.timeouts.request_sec

        app.state.store_factory = factory
        app.state.request_timeout = timeout

        yield

    app = FastAPI(
        title="LedgerSync API",
        description="사용자 간 이체 및 원장 동기화 API",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS 설정 (개발용)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # =========================================================================
    # API 라우터 등록
    # =========================================================================

    app.include_router(health.router)
    app.include_router(transfer.router)

    return app


app = create_app()
