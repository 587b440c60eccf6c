"""linkguard.main
FastAPI 애플리케이션 진입점
"""
import time
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from linkguard.core.config import settings
from linkguard.core.exceptions import CustomError
from linkguard.core.logging import setup_logging
from linkguard.apis.scan_router import router as scan_router
from linkguard.apis.link_router import router as link_router
from linkguard.services.document_store import InMemoryDocumentStore
from linkguard.services.link_prober import LinkProber, ProbeSettings
from linkguard.services.scan_queue import ScanQueue
from linkguard.services.scan_service import ScanService
from linkguard.services.youtube_client import YouTubeClient
from linkguard.utils.url_classifier import PlatformClassifier

# 로깅 초기화
setup_logging()
logger = logging.getLogger(__name__)


def build_scan_service() -> ScanService:
    """설정값으로 스캔 서비스와 큐를 구성"""
    prober = LinkProber(
        PlatformClassifier(settings.TOLERANT_DOMAINS),
        ProbeSettings.from_settings(settings)
    )
    youtube = YouTubeClient(
        settings.youtube_api_keys,
        base_url=settings.YOUTUBE_API_BASE,
        timeout=settings.YOUTUBE_HTTP_TIMEOUT
    )
    service = ScanService(InMemoryDocumentStore(), youtube, prober, settings)
    service.queue = ScanQueue(
        handler=service.execute_job,
        on_exhausted=service.fail_job,
        max_attempts=settings.JOB_MAX_ATTEMPTS,
        backoff_seconds=settings.JOB_BACKOFF_SECONDS,
        worker_count=settings.SCAN_WORKER_COUNT
    )
    return service


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 수명주기 관리

    앱 시작 시: 스캔 서비스 구성 및 큐 워커 시작
    앱 종료 시: 큐 워커 종료
    """
    # ========== 시작 단계 ==========
    logger.info("=== 애플리케이션 시작: 초기화 중 ===")

    service = build_scan_service()
    app.state.scan_service = service
    if not settings.youtube_api_keys:
        logger.warning("YOUTUBE_API_KEYS 미설정: 영상 메타데이터 조회가 실패합니다")
    await service.queue.start()

    logger.info("=== 애플리케이션 준비 완료 ===")

    yield  # 애플리케이션 실행

    # ========== 종료 단계 ==========
    logger.info("=== 애플리케이션 종료 중 ===")
    await service.queue.stop()


# FastAPI 앱 생성 (lifespan 컨텍스트 적용)
app = FastAPI(
    title="LinkGuard Link Verification Engine",
    description="YouTube 영상 설명란 링크 상태 검사 서비스입니다.",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs/swagger",
    redoc_url="/docs/redoc"
)


# 라우터 등록
app.include_router(scan_router)
app.include_router(link_router)


def _error_body(error: str, message: str) -> dict:
    return {"success": False, "error": error, "message": message}


@app.exception_handler(CustomError)
async def custom_error_handler(request: Request, exc: CustomError):
    """서비스 예외를 구조화된 에러 응답으로 변환"""
    logger.warning(f"요청 실패: {request.method} {request.url.path} - {exc.status_code} {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.error, exc.message))


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """요청 검증 실패는 400으로 응답"""
    messages = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=_error_body("Invalid request", "; ".join(messages)))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"처리되지 않은 예외: {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal error", "An unexpected error occurred")
    )


@app.middleware("http")
async def add_process_time_header(request: Request, call_next):
    """요청 처리 시간 측정 미들웨어"""
    start_time = time.time()
    response = await call_next(request)
    process_time = time.time() - start_time

    # 응답 헤더에 처리 시간 추가
    response.headers["X-Process-Time"] = f"{process_time:.4f}"

    # 로깅
    logger.info(
        f"요청 처리 완료: {request.method} {request.url.path} - {process_time:.4f}초"
    )

    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001, loop="asyncio")
