"""linkguard.models.link_models
링크 검사 결과 스키마
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LinkStatus(str, Enum):
    """링크 검사 판정 (3단계)"""
    WORKING = "working"
    WARNING = "warning"
    BROKEN = "broken"


class LinkResult(BaseModel):
    """
    단일 링크 검사 결과 (생성 후 불변)

    Snippet
    {
      "url": "https://example.com/shop",
      "status": "broken",
      "statusCode": 404
    }
    """
    model_config = ConfigDict(frozen=True)

    url: str = Field(..., description="검사한 URL")
    status: LinkStatus = Field(..., description="판정 결과")
    statusCode: int = Field(..., description="최종 HTTP 상태 코드 (타임아웃 408, 네트워크 오류 0)")
    errorNote: Optional[str] = Field(default=None, description="오류 메모")


class LinkStatistics(BaseModel):
    """링크 판정 집계 (totalLinks == working + warning + broken)"""
    totalLinks: int = Field(default=0, description="검사한 링크 수")
    workingLinks: int = Field(default=0, description="정상 링크 수")
    warningLinks: int = Field(default=0, description="경고 링크 수")
    brokenLinks: int = Field(default=0, description="깨진 링크 수")

    def record(self, status: LinkStatus) -> None:
        """판정 하나를 집계에 반영"""
        self.totalLinks += 1
        if status == LinkStatus.WORKING:
            self.workingLinks += 1
        elif status == LinkStatus.WARNING:
            self.warningLinks += 1
        else:
            self.brokenLinks += 1

    @classmethod
    def from_links(cls, links: list[LinkResult]) -> "LinkStatistics":
        statistics = cls()
        for link in links:
            statistics.record(link.status)
        return statistics


class VideoLinkReport(BaseModel):
    """영상 한 개의 링크 검사 리포트 (videoId 기준으로 통째로 덮어씀)"""
    videoId: str = Field(..., description="YouTube 영상 ID")
    videoTitle: str = Field(..., description="영상 제목")
    videoUrl: str = Field(..., description="영상 URL")
    publishedAt: Optional[str] = Field(default=None, description="게시 시각")
    links: list[LinkResult] = Field(default_factory=list, description="설명란 링크 검사 결과 (추출 순서 유지)")
    statistics: LinkStatistics = Field(default_factory=LinkStatistics, description="영상 단위 집계")

    # 저장 시 채워지는 부가 정보
    sessionId: Optional[str] = Field(default=None, description="스캔 세션 ID")
    userId: Optional[str] = Field(default=None, description="사용자 ID")
    scannedAt: Optional[str] = Field(default=None, description="검사 시각")


class LinkCheckRequest(BaseModel):
    """임의 링크 일괄 검사 요청"""
    urls: list[str] = Field(..., description="검사할 URL 리스트", min_length=1)


class LinkCheckResponse(BaseModel):
    success: bool = Field(default=True)
    results: list[LinkResult] = Field(default_factory=list, description="URL별 검사 결과 (요청 순서)")
