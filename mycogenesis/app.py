"""FastAPI 앱 팩토리

lifespan에서 ServiceCoordinator를 초기화하고 종료 시 캐시와 공유 HTTP 클라이언트를 정리합니다.
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mycogenesis.api import content_router, health_router, page_router
from mycogenesis.clients.http_client import shutdown_shared_http_client
from mycogenesis.core.config import settings
from mycogenesis.core.exceptions import (
    ContentNotFoundException,
    ContentTypeException,
    MycoException,
    ValidationException,
)
from mycogenesis.core.logging import logger
from mycogenesis.engine import get_service_coordinator


@asynccontextmanager
async def lifespan(app: FastAPI):
    coordinator = get_service_coordinator()
    logger.info("[APP] Starting content service...")
    await coordinator.initialize()
    logger.info(f"[APP] Ready ({settings.api_title} {settings.api_version})")
    yield
    logger.info("[APP] Shutting down content service...")
    try:
        await coordinator.shutdown()
        await shutdown_shared_http_client()
    except Exception as e:
        logger.warning(f"[APP] Shutdown hook failed: {e}")


async def myco_exception_handler(request: Request, exc: MycoException) -> JSONResponse:
    """라우트에서 처리하지 않은 MycoException → JSON 오류 응답"""
    if isinstance(exc, (ContentNotFoundException, ContentTypeException)):
        status_code = 404
    elif isinstance(exc, ValidationException):
        status_code = 422
    else:
        status_code = 503
    logger.error(f"[APP] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"error_code": exc.error_code, "message": exc.message, "details": exc.details},
    )


def create_app() -> FastAPI:
    """
    FastAPI 앱 생성

    - /health: 서비스 상태
    - /api/v1: 콘텐츠 JSON API
    - /pages: 서버 렌더링 HTML
    """
    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(MycoException, myco_exception_handler)

    for router in (health_router, content_router, page_router):
        app.include_router(router)

    return app


# uvicorn mycogenesis.app:app
app = create_app()
