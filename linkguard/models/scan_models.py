"""linkguard.models.scan_models
스캔 세션/작업 레코드 스키마

세션(ScanSession)은 한 번의 스캔 실행 전체를 집계하는 레코드이고,
작업(ScanJob)은 비동기 모드에서 큐 전달용으로 먼저 만들어지는 얇은 레코드입니다.
"""
from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from linkguard.models.link_models import LinkStatistics


class ScanStatus(str, Enum):
    """세션/작업 공통 상태 (queued -> processing -> completed|failed)"""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (ScanStatus.COMPLETED, ScanStatus.FAILED)


class ScanSession(BaseModel):
    """
    스캔 세션 레코드

    불변식
    - processedVideos <= totalVideos
    - statistics.totalLinks == working + warning + broken
    - progress는 감소하지 않음
    """
    sessionId: str = Field(..., description="세션 ID")
    userId: str = Field(..., description="사용자 ID")
    sessionName: Optional[str] = Field(default=None, description="세션 이름")
    jobId: Optional[str] = Field(default=None, description="비동기 모드에서 연결된 작업 ID")
    status: ScanStatus = Field(default=ScanStatus.PROCESSING, description="세션 상태")
    progress: int = Field(default=0, ge=0, le=100, description="진행률 (0~100)")
    totalVideos: int = Field(default=0, ge=0, description="스캔 대상 영상 수")
    processedVideos: int = Field(default=0, ge=0, description="처리 완료 영상 수 (실패/스킵 포함)")
    videosWithLinks: int = Field(default=0, ge=0, description="링크가 있어 리포트가 생성된 영상 수")
    statistics: LinkStatistics = Field(default_factory=LinkStatistics, description="링크 판정 집계")
    videoIds: list[str] = Field(default_factory=list, description="리포트가 생성된 영상 ID (중복 없음)")
    enforcedPlanId: Optional[str] = Field(default=None, description="적용된 요금제")
    createdAt: str = Field(..., description="생성 시각")
    startedAt: Optional[str] = Field(default=None, description="처리 시작 시각")
    completedAt: Optional[str] = Field(default=None, description="종료 시각")
    error: Optional[str] = Field(default=None, description="실패 시 에러 메시지")


class ScanJob(BaseModel):
    """비동기 스캔 작업 레코드"""
    jobId: str = Field(..., description="작업 ID")
    userId: str = Field(..., description="사용자 ID")
    kind: Literal["videos", "channel"] = Field(..., description="스캔 종류")
    status: ScanStatus = Field(default=ScanStatus.QUEUED, description="작업 상태")
    progress: int = Field(default=0, ge=0, le=100, description="진행률 (0~100)")
    payload: dict[str, Any] = Field(default_factory=dict, description="큐에 전달된 요청 본문")
    attempts: int = Field(default=0, description="워커 실행 횟수")
    sessionId: Optional[str] = Field(default=None, description="결과 세션 ID")
    result: Optional[dict[str, Any]] = Field(default=None, description="완료 시 결과")
    error: Optional[str] = Field(default=None, description="실패 시 에러 메시지")
    createdAt: str = Field(..., description="생성 시각")
    startedAt: Optional[str] = Field(default=None)
    completedAt: Optional[str] = Field(default=None)
    failedAt: Optional[str] = Field(default=None)
