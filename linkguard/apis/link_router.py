"""linkguard.apis.link_router
임의 링크 검사 / 헬스체크 API 라우터
"""
import logging
from fastapi import APIRouter, Depends

from linkguard.apis.scan_router import get_scan_service
from linkguard.models import LinkCheckRequest, LinkCheckResponse
from linkguard.services.scan_service import ScanService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["링크 검사 API"])


@router.post("/check-links", status_code=200, response_model=LinkCheckResponse)
async def check_links(
    request: LinkCheckRequest,
    service: ScanService = Depends(get_scan_service)
):
    """
    URL 목록을 바로 검사합니다 (세션 기록 없음)

    - POST /api/check-links
    - Body: {"urls": ["https://example.com", ...]}
    - http(s) 형식이 아닌 값은 warning / 0 / "Invalid URL format"
    """
    logger.info(f"[API] check-links 요청 수신: {len(request.urls)}개")
    return await service.check_links(request.urls)


@router.get("/health", status_code=200)
async def health_check(service: ScanService = Depends(get_scan_service)):
    """서비스 상태 및 YouTube API 키 상태 (키는 마스킹)"""
    return {"status": "ok", "youtubeKeys": service.api_key_status()}
