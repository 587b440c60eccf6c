"""linkguard.services.batch_scanner
여러 영상의 설명란 링크를 검사하고 세션 단위 집계를 만드는 스캐너

동기/비동기 모드 모두 같은 BatchScanner를 사용합니다.
- 동기 모드: link_concurrency=1 (영상/링크 모두 순차 처리)
- 비동기 모드: 영상은 순차, 영상 내 링크는 세마포어로 제한된 병렬 처리
"""
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional

from linkguard.models.link_models import LinkResult, LinkStatistics, VideoLinkReport
from linkguard.services.link_prober import LinkProber
from linkguard.services.youtube_client import VideoMetadataProvider
from linkguard.utils.link_extractor import extract_links
from linkguard.utils.url_classifier import extract_video_id

logger = logging.getLogger(__name__)


@dataclass
class VideoTarget:
    """
    스캔 대상 영상

    description/links가 모두 없으면 메타데이터 제공자에서 설명을 조회합니다.
    """
    video_url: str
    video_id: Optional[str] = None
    video_title: Optional[str] = None
    description: Optional[str] = None
    links: Optional[list[str]] = None
    published_at: Optional[str] = None

    def __post_init__(self):
        if self.video_id is None:
            self.video_id = extract_video_id(self.video_url)


@dataclass
class BatchScanResult:
    """배치 스캔 누적 결과 (진행 콜백에도 그대로 전달)"""
    total_videos: int
    processed_videos: int = 0
    reports: list[VideoLinkReport] = field(default_factory=list)
    statistics: LinkStatistics = field(default_factory=LinkStatistics)
    skipped_video_ids: list[str] = field(default_factory=list)

    @property
    def videos_with_links(self) -> int:
        return len(self.reports)

    @property
    def video_ids(self) -> list[str]:
        return [report.videoId for report in self.reports]


ProgressCallback = Callable[[BatchScanResult], Awaitable[None]]


class BatchScanner:
    """영상 묶음 링크 스캐너"""

    def __init__(
        self,
        prober: LinkProber,
        metadata_provider: VideoMetadataProvider | None = None,
        link_concurrency: int = 1
    ):
        self.prober = prober
        self.metadata_provider = metadata_provider
        self.link_concurrency = max(1, link_concurrency)

    async def scan(
        self,
        videos: list[VideoTarget],
        on_progress: ProgressCallback | None = None
    ) -> BatchScanResult:
        """
        영상 목록 스캔

        영상 하나의 실패(메타데이터 조회 오류, 링크 검사 중 예외)는 해당 영상만 건너뛰고 계속 진행합니다.
        processed_videos는 결과와 관계없이 영상마다 1씩 증가합니다.

        Args:
            videos: 스캔 대상 영상 목록
            on_progress: 영상 하나 처리 후 호출되는 비동기 콜백

        Returns:
            BatchScanResult: 리포트 및 집계
        """
        result = BatchScanResult(total_videos=len(videos))

        for index, video in enumerate(videos, start=1):
            try:
                report = await self._scan_video(video)
                if report is not None:
                    result.reports.append(report)
                    for link in report.links:
                        result.statistics.record(link.status)
                else:
                    result.skipped_video_ids.append(video.video_id or video.video_url)

            except Exception as error:
                logger.error(f"[Scanner] 영상 처리 실패, 건너뜀 ({index}/{len(videos)}): {video.video_url} - {error}")
                result.skipped_video_ids.append(video.video_id or video.video_url)

            result.processed_videos += 1
            if on_progress is not None:
                await on_progress(result)

        logger.info(
            f"[Scanner] 완료: 영상 {result.processed_videos}개 중 {result.videos_with_links}개에서 "
            f"링크 {result.statistics.totalLinks}개 검사 (깨짐 {result.statistics.brokenLinks}개)"
        )
        return result

    async def _scan_video(self, video: VideoTarget) -> VideoLinkReport | None:
        """영상 하나 검사 (링크가 없거나 영상을 찾을 수 없으면 None)"""
        if not video.video_id:
            logger.warning(f"[Scanner] 영상 ID 추출 실패: {video.video_url}")
            return None

        title = video.video_title
        published_at = video.published_at
        links = video.links

        if links is None and video.description is None:
            if self.metadata_provider is None:
                logger.warning(f"[Scanner] 설명 정보 없음: {video.video_id}")
                return None
            details = await self.metadata_provider.get_video_details(video.video_id)
            if details is None:
                return None
            title = title or details.title
            published_at = published_at or details.published_at
            links = list(extract_links(details.description))
        elif links is None:
            links = list(extract_links(video.description))

        if not links:
            logger.info(f"[Scanner] 링크 없음, 건너뜀: {video.video_id}")
            return None

        checked = await self._probe_links(links)
        return VideoLinkReport(
            videoId=video.video_id,
            videoTitle=title or "Unknown",
            videoUrl=video.video_url,
            publishedAt=published_at,
            links=checked,
            statistics=LinkStatistics.from_links(checked)
        )

    async def _probe_links(self, links: list[str]) -> list[LinkResult]:
        if self.link_concurrency == 1:
            return [await self.prober.probe(url) for url in links]

        semaphore = asyncio.Semaphore(self.link_concurrency)

        async def bounded_probe(url: str) -> LinkResult:
            async with semaphore:
                return await self.prober.probe(url)

        # gather는 입력 순서대로 결과를 돌려줌
        return list(await asyncio.gather(*(bounded_probe(url) for url in links)))
