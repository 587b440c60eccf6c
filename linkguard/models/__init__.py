"""linkguard.models
API 요청/응답 및 저장 레코드에 사용되는 Pydantic 스키마 정의
"""
from linkguard.models.link_models import (
    LinkStatus,
    LinkResult,
    LinkStatistics,
    VideoLinkReport,
    LinkCheckRequest,
    LinkCheckResponse,
)
from linkguard.models.scan_models import ScanStatus, ScanSession, ScanJob
from linkguard.models.scan_request import (
    ChannelSweepRequest,
    ChannelSweepResponse,
    ScanRequest,
    ScanResultPayload,
    ScanQueuedResponse,
    ScanStatusResponse,
    ScanSessionResultsResponse,
)

__all__ = [
    # 링크 검사 모델
    "LinkStatus",
    "LinkResult",
    "LinkStatistics",
    "VideoLinkReport",
    "LinkCheckRequest",
    "LinkCheckResponse",
    # 세션/작업 레코드
    "ScanStatus",
    "ScanSession",
    "ScanJob",
    # 스캔 API 모델
    "ScanRequest",
    "ScanResultPayload",
    "ScanQueuedResponse",
    "ScanStatusResponse",
    "ScanSessionResultsResponse",
    "ChannelSweepRequest",
    "ChannelSweepResponse",
]
