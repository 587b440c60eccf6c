"""linkguard.apis.scan_router
스캔 요청/상태 조회 API 라우터
"""
import logging
from fastapi import APIRouter, Depends, Query, Request

from linkguard.models import (
    ChannelSweepRequest,
    ChannelSweepResponse,
    ScanRequest,
    ScanSessionResultsResponse,
    ScanStatusResponse,
)
from linkguard.services.scan_service import ScanService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["스캔 API"])


def get_scan_service(request: Request) -> ScanService:
    """lifespan에서 구성한 ScanService 반환"""
    return request.app.state.scan_service


@router.post("/scan", status_code=200)
async def scan(
    request: ScanRequest,
    service: ScanService = Depends(get_scan_service)
):
    """
    영상 URL 목록 또는 채널의 설명란 링크를 검사합니다.

    ------------------------------------------------------------
    요청 파라미터 (ScanRequest)
    - userId (string): 사용자 ID
    - videoUrls (list[string]) 또는 channelId (string): 둘 중 하나만
    - mode (string): "sync" | "async" (기본 async)
    - sessionName, channelName, channelDocId, videoCount, startDate, endDate (선택)

    ------------------------------------------------------------
    반환값
    sync 모드: 전체 결과
    ```json
    {
      "success": true,
      "sessionId": "session_1700000000000_1a2b3c4d",
      "scannedVideos": 2,
      "videosWithLinks": 1,
      "statistics": {"totalLinks": 3, "workingLinks": 2, "warningLinks": 0, "brokenLinks": 1},
      "results": [...],
      "scannedAt": "2024-01-01T00:00:00+00:00"
    }
    ```

    async 모드: 작업 ID
    ```json
    {"success": true, "jobId": "job_1700000000000_1a2b3c4d", "status": "queued", "message": "..."}
    ```

    ------------------------------------------------------------
    에러 코드
    - 400: 요청 형식 오류, 동기 모드 영상 수 초과
    - 403: 요금제 한도 초과
    """
    logger.info(f"[API] scan 요청 수신: user={request.userId}, kind={request.kind}, mode={request.mode}")
    return await service.run_scan(request)


@router.get("/scan-status", status_code=200, response_model=ScanStatusResponse)
async def scan_status(
    job_id: str = Query(..., alias="jobId", min_length=1),
    service: ScanService = Depends(get_scan_service)
):
    """
    비동기 스캔 작업 상태 조회 (부수 효과 없음)

    - GET /api/scan-status?jobId=...
    - 없는 작업: 404
    """
    return await service.get_job_status(job_id)


@router.get("/scan-sessions/{session_id}", status_code=200, response_model=ScanSessionResultsResponse)
async def scan_session_results(
    session_id: str,
    service: ScanService = Depends(get_scan_service)
):
    """스캔 세션과 해당 세션에서 저장된 영상 리포트 조회"""
    return await service.get_session_results(session_id)


@router.post("/auto-scan/run", status_code=200, response_model=ChannelSweepResponse)
async def run_auto_scan(
    request: ChannelSweepRequest,
    service: ScanService = Depends(get_scan_service)
):
    """
    여러 채널을 순서대로 스캔합니다 (스케줄러 호출용)

    - POST /api/auto-scan/run
    - Body: {"channels": [ScanRequest(channelId 지정), ...]}
    - 채널 사이에 CHANNEL_SWEEP_DELAY_SECONDS만큼 대기
    - 한 채널의 실패는 건너뛰고 다음 채널을 계속 스캔
    """
    logger.info(f"[API] auto-scan 요청 수신: 채널 {len(request.channels)}개")
    results = await service.sweep_channels(request.channels)
    return ChannelSweepResponse(
        requestedChannels=len(request.channels),
        scannedChannels=len(results),
        results=results
    )
