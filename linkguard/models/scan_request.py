"""linkguard.models.scan_request
스캔 API 요청/응답 DTO
"""
from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from linkguard.models.link_models import LinkStatistics, VideoLinkReport
from linkguard.models.scan_models import ScanSession, ScanStatus


def parse_iso_datetime(value: str) -> datetime:
    """ISO 8601 문자열 파싱 (Z 접미사 허용, 시간대가 없으면 UTC)"""
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        raise ValueError(f"Invalid ISO 8601 date: {value}")
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


class ScanRequest(BaseModel):
    """
    스캔 요청 (영상 URL 목록 또는 채널 ID 중 하나)

    Snippet
    {
      "userId": "user_123",
      "videoUrls": ["https://www.youtube.com/watch?v=dQw4w9WgXcQ"],
      "sessionName": "3월 점검",
      "mode": "sync"
    }
    """
    userId: str = Field(..., description="사용자 ID", min_length=1)
    mode: Literal["sync", "async"] = Field(default="async", description="실행 모드")

    # 영상 URL 스캔
    videoUrls: Optional[list[str]] = Field(default=None, description="스캔할 YouTube 영상 URL 목록")
    sessionName: Optional[str] = Field(default=None, description="세션 이름")

    # 채널 스캔
    channelId: Optional[str] = Field(default=None, description="YouTube 채널 ID")
    channelName: Optional[str] = Field(default=None, description="채널 이름")
    channelDocId: Optional[str] = Field(default=None, description="채널 문서 ID (결과 요약 갱신용)")
    videoCount: int = Field(default=50, ge=1, le=10000, description="채널에서 가져올 최대 영상 수")
    startDate: Optional[str] = Field(default=None, description="게시일 필터 시작 (ISO 8601)")
    endDate: Optional[str] = Field(default=None, description="게시일 필터 끝 (ISO 8601)")

    @field_validator("startDate", "endDate")
    @classmethod
    def validate_date(cls, value: Optional[str]) -> Optional[str]:
        if value:
            parse_iso_datetime(value)
        return value

    @model_validator(mode="after")
    def validate_target(self) -> "ScanRequest":
        has_videos = bool(self.videoUrls)
        has_channel = bool(self.channelId)
        if has_videos == has_channel:
            raise ValueError("Exactly one of videoUrls or channelId is required")
        if self.startDate and self.endDate:
            if parse_iso_datetime(self.startDate) > parse_iso_datetime(self.endDate):
                raise ValueError("startDate must not be later than endDate")
        return self

    @property
    def kind(self) -> Literal["videos", "channel"]:
        return "videos" if self.videoUrls else "channel"


class ScanResultPayload(BaseModel):
    """스캔 완료 결과 (동기 응답 본문 및 작업 result)"""
    success: bool = Field(default=True)
    sessionId: str = Field(..., description="세션 ID")
    scannedVideos: int = Field(..., description="처리한 영상 수")
    videosWithLinks: int = Field(..., description="링크가 있는 영상 수")
    statistics: LinkStatistics = Field(..., description="링크 판정 집계")
    results: list[VideoLinkReport] = Field(default_factory=list, description="영상별 리포트")
    scannedAt: str = Field(..., description="완료 시각")


class ScanQueuedResponse(BaseModel):
    """비동기 모드 즉시 응답"""
    success: bool = Field(default=True)
    jobId: str = Field(..., description="작업 ID")
    status: ScanStatus = Field(default=ScanStatus.QUEUED)
    message: str = Field(default="Scan job queued successfully. The scan will continue in the background.")


class ScanStatusResponse(BaseModel):
    """작업 상태 조회 응답"""
    success: bool = Field(default=True)
    jobId: str
    status: ScanStatus
    progress: int
    sessionId: Optional[str] = None
    createdAt: Optional[str] = None
    startedAt: Optional[str] = None
    completedAt: Optional[str] = None
    failedAt: Optional[str] = None
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class ScanSessionResultsResponse(BaseModel):
    """세션 결과 조회 응답 (세션 + 해당 세션에서 저장된 영상 리포트)"""
    success: bool = Field(default=True)
    session: ScanSession
    results: list[VideoLinkReport] = Field(default_factory=list)


class ChannelSweepRequest(BaseModel):
    """
    채널 자동 스캔 요청 (채널 사이에 대기하며 순서대로 실행)

    Snippet
    {
      "channels": [
        {"userId": "user_123", "channelId": "UCxxxx", "channelDocId": "doc_1", "videoCount": 20}
      ]
    }
    """
    channels: list[ScanRequest] = Field(..., min_length=1, description="스캔할 채널 요청 목록")

    @model_validator(mode="after")
    def validate_channels(self) -> "ChannelSweepRequest":
        if any(request.kind != "channel" for request in self.channels):
            raise ValueError("Every auto-scan entry must specify channelId")
        return self


class ChannelSweepResponse(BaseModel):
    """채널 자동 스캔 결과 (실패한 채널은 results에서 빠짐)"""
    success: bool = Field(default=True)
    requestedChannels: int
    scannedChannels: int
    results: list[ScanResultPayload] = Field(default_factory=list)
