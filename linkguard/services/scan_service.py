"""linkguard.services.scan_service
스캔 요청 처리 오케스트레이터

하나의 BatchScanner를 두 가지 방식으로 호출합니다.
- 동기 모드: 요청 핸들러 안에서 바로 실행하고 전체 결과 반환
- 비동기 모드: ScanJob 생성 후 큐에 넣고, 워커(execute_job)가 실행
"""
import asyncio
import logging
from typing import Awaitable, Callable

from linkguard.core.config import Settings
from linkguard.core.exceptions import CustomError, InputError, JobExecutionError
from linkguard.models.link_models import LinkCheckResponse, VideoLinkReport
from linkguard.models.scan_models import ScanSession
from linkguard.models.scan_request import (
    ScanQueuedResponse,
    ScanRequest,
    ScanResultPayload,
    ScanSessionResultsResponse,
    ScanStatusResponse,
)
from linkguard.services.batch_scanner import BatchScanner, BatchScanResult, VideoTarget
from linkguard.services.document_store import CHANNELS, VIDEO_SCANS, DocumentStore
from linkguard.services.link_prober import LinkProber
from linkguard.services.plan_policy import (
    PlanPolicy,
    cap_channel_video_count,
    enforce_bulk_limit,
    enforce_scan_quota,
    resolve_plan,
)
from linkguard.services.scan_queue import ScanQueue
from linkguard.services.scan_tracker import ScanJobTracker, ScanSessionTracker, generate_id
from linkguard.services.youtube_client import YouTubeClient
from linkguard.utils.common import utc_now_iso
from linkguard.utils.url_classifier import extract_video_id

logger = logging.getLogger(__name__)

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

SessionProgressCallback = Callable[[str, BatchScanResult], Awaitable[None]]


class ScanService:
    """스캔 실행/조회 서비스"""

    def __init__(
        self,
        store: DocumentStore,
        youtube: YouTubeClient,
        prober: LinkProber,
        settings: Settings,
        queue: ScanQueue | None = None
    ):
        self.store = store
        self.youtube = youtube
        self.prober = prober
        self.settings = settings
        self.queue = queue
        self.sessions = ScanSessionTracker(store)
        self.jobs = ScanJobTracker(store)

    # =============================================
    # 스캔 요청
    # =============================================
    async def run_scan(self, request: ScanRequest) -> ScanResultPayload | ScanQueuedResponse:
        """
        스캔 요청 처리 (요금제 한도는 작업 시작 전에 확인)

        Args:
            request: 스캔 요청

        Returns:
            ScanResultPayload: 동기 모드 전체 결과
            ScanQueuedResponse: 비동기 모드 작업 등록 결과

        Raises:
            InputError: 유효한 영상 URL이 없거나 동기 모드 한도 초과
            PlanLimitExceeded: 요금제 한도 초과
            JobExecutionError: 비동기 모드인데 큐가 없을 때
        """
        policy = await resolve_plan(self.store, request.userId)

        if request.kind == "videos":
            if not any(extract_video_id(url) for url in request.videoUrls):
                raise InputError("No valid YouTube video URLs provided")
            enforce_bulk_limit(policy, len(request.videoUrls))
            requested_videos = len(request.videoUrls)
        else:
            requested_videos = cap_channel_video_count(policy, request.videoCount)

        await enforce_scan_quota(self.store, request.userId, policy)

        if request.mode == "sync":
            if requested_videos > self.settings.SYNC_SCAN_MAX_VIDEOS:
                raise InputError(
                    f"Synchronous scans are limited to {self.settings.SYNC_SCAN_MAX_VIDEOS} videos, "
                    f"use async mode for {requested_videos} videos"
                )
            logger.info(f"[Scan] 동기 스캔 시작: user={request.userId} ({request.kind})")
            return await self._execute(request, policy, link_concurrency=1)

        if self.queue is None:
            raise JobExecutionError("Scan queue is not running")

        # 대기 중인 세션도 누적 스캔 횟수에 포함됨
        job_id = generate_id("job")
        session = await self.sessions.create_session(
            request.userId,
            total_videos=requested_videos,
            session_name=request.sessionName or request.channelName,
            job_id=job_id,
            plan_id=policy.plan_id,
            queued=True
        )
        job = await self.jobs.create_job(
            request.userId,
            request.kind,
            request.model_dump(mode="json"),
            job_id=job_id,
            session_id=session.sessionId
        )
        await self.queue.enqueue(job.jobId, job.payload)
        return ScanQueuedResponse(jobId=job.jobId)

    # =============================================
    # 큐 워커 훅
    # =============================================
    async def execute_job(self, job_id: str, payload: dict, attempt: int) -> None:
        """큐 핸들러: 작업 하나 실행 (예외는 큐의 재전달 정책으로 넘김)"""
        job = await self.jobs.get(job_id)
        if job.status.is_terminal:
            logger.warning(f"[Job] 이미 종료된 작업, 무시: {job_id} ({job.status.value})")
            return

        await self.jobs.start(job_id)
        request = ScanRequest.model_validate(payload)
        policy = await resolve_plan(self.store, request.userId)

        async def on_progress(session_id: str, result: BatchScanResult) -> None:
            await self.jobs.update_progress(job_id, result.processed_videos, result.total_videos, session_id)

        result = await self._execute(
            request,
            policy,
            link_concurrency=self.settings.LINK_CONCURRENCY,
            session_id=job.sessionId,
            on_progress=on_progress
        )
        await self.jobs.complete(job_id, result.model_dump(mode="json"))

    async def fail_job(self, job_id: str, error: Exception) -> None:
        """큐 재시도 소진 훅: 작업과 연결된 세션을 failed로 전환 (에러 메시지 그대로 저장)"""
        message = str(error) or type(error).__name__
        job = await self.jobs.fail(job_id, message)
        if job.sessionId is None:
            return
        session = await self.sessions.get(job.sessionId)
        if not session.status.is_terminal:
            await self.sessions.fail(job.sessionId, message)

    # =============================================
    # 조회
    # =============================================
    async def get_job_status(self, job_id: str) -> ScanStatusResponse:
        job = await self.jobs.get(job_id)
        return ScanStatusResponse(
            jobId=job.jobId,
            status=job.status,
            progress=job.progress,
            sessionId=job.sessionId,
            createdAt=job.createdAt,
            startedAt=job.startedAt,
            completedAt=job.completedAt,
            failedAt=job.failedAt,
            result=job.result,
            error=job.error
        )

    async def get_session_results(self, session_id: str) -> ScanSessionResultsResponse:
        session = await self.sessions.get(session_id)
        documents = await self.store.query(VIDEO_SCANS, sessionId=session_id)
        return ScanSessionResultsResponse(
            session=session,
            results=[VideoLinkReport.model_validate(document) for document in documents]
        )

    async def check_links(self, urls: list[str]) -> LinkCheckResponse:
        results = await self.prober.check_links(urls, concurrency=self.settings.LINK_CONCURRENCY)
        return LinkCheckResponse(results=results)

    def api_key_status(self) -> list[dict]:
        return self.youtube.rotator.status()

    # =============================================
    # 채널 일괄 스캔
    # =============================================
    async def sweep_channels(self, requests: list[ScanRequest]) -> list[ScanResultPayload]:
        """
        여러 채널을 순서대로 스캔 (채널 사이에 CHANNEL_SWEEP_DELAY_SECONDS 대기)

        채널 하나의 실패는 로그만 남기고 다음 채널로 진행합니다.

        Returns:
            list[ScanResultPayload]: 성공한 채널의 결과
        """
        results: list[ScanResultPayload] = []
        for index, request in enumerate(requests):
            if index > 0:
                await asyncio.sleep(self.settings.CHANNEL_SWEEP_DELAY_SECONDS)
            try:
                policy = await resolve_plan(self.store, request.userId)
                results.append(await self._execute(
                    request,
                    policy,
                    link_concurrency=self.settings.LINK_CONCURRENCY
                ))
            except CustomError as error:
                logger.error(f"[Sweep] 채널 스캔 실패: {request.channelId} - {error.message}")

        logger.info(f"[Sweep] 채널 {len(requests)}개 중 {len(results)}개 완료")
        return results

    # =============================================
    # 내부 실행
    # =============================================
    async def _execute(
        self,
        request: ScanRequest,
        policy: PlanPolicy,
        link_concurrency: int,
        session_id: str | None = None,
        on_progress: SessionProgressCallback | None = None
    ) -> ScanResultPayload:
        """
        대상 영상 확정 -> 세션 시작 -> 배치 스캔 -> 리포트 저장 -> 세션 종료

        session_id가 주어지면 대기 중인 세션을 이어 쓰고, 실패해도 세션을 닫지 않습니다
        (작업 재전달 후 같은 세션으로 다시 실행, 최종 실패는 fail_job에서 기록).
        """
        targets = await self._resolve_targets(request, policy)
        owns_session = session_id is None
        if owns_session:
            session = await self.sessions.create_session(
                request.userId,
                total_videos=len(targets),
                session_name=request.sessionName or request.channelName,
                plan_id=policy.plan_id
            )
            session_id = session.sessionId
        else:
            await self.sessions.start(session_id, total_videos=len(targets))

        async def record_progress(result: BatchScanResult) -> None:
            await self.sessions.record_progress(
                session_id,
                result.processed_videos,
                result.videos_with_links,
                result.statistics,
                result.video_ids
            )
            if on_progress is not None:
                await on_progress(session_id, result)

        scanner = BatchScanner(self.prober, self.youtube, link_concurrency=link_concurrency)
        try:
            result = await scanner.scan(targets, on_progress=record_progress)
            scanned_at = utc_now_iso()
            await self._save_reports(result.reports, session_id, request.userId, scanned_at)
            session = await self.sessions.complete(
                session_id,
                result.processed_videos,
                result.videos_with_links,
                result.statistics,
                result.video_ids
            )
        except Exception as error:
            if owns_session:
                await self.sessions.fail(session_id, str(error) or type(error).__name__)
            raise

        if request.channelDocId:
            await self._update_channel(request.channelDocId, session, scanned_at)

        return ScanResultPayload(
            sessionId=session_id,
            scannedVideos=result.processed_videos,
            videosWithLinks=result.videos_with_links,
            statistics=result.statistics,
            results=[
                report.model_copy(update={"sessionId": session_id, "userId": request.userId, "scannedAt": scanned_at})
                for report in result.reports
            ],
            scannedAt=scanned_at
        )

    async def _resolve_targets(self, request: ScanRequest, policy: PlanPolicy) -> list[VideoTarget]:
        if request.kind == "videos":
            return [VideoTarget(video_url=url) for url in request.videoUrls]

        video_count = cap_channel_video_count(policy, request.videoCount)
        videos = await self.youtube.list_channel_videos(
            request.channelId,
            max_results=video_count,
            start_date=request.startDate,
            end_date=request.endDate
        )
        return [
            VideoTarget(
                video_url=YOUTUBE_WATCH_URL.format(video_id=video.video_id),
                video_id=video.video_id,
                video_title=video.title,
                description=video.description,
                published_at=video.published_at
            )
            for video in videos
        ]

    async def _save_reports(
        self,
        reports: list[VideoLinkReport],
        session_id: str,
        user_id: str,
        scanned_at: str
    ) -> None:
        # videoScans/{videoId}는 재스캔 시 통째로 교체
        for report in reports:
            document = report.model_dump(mode="json")
            document.update(sessionId=session_id, userId=user_id, scannedAt=scanned_at)
            await self.store.put(VIDEO_SCANS, report.videoId, document)

    async def _update_channel(self, channel_doc_id: str, session: ScanSession, scanned_at: str) -> None:
        channel = await self.store.get(CHANNELS, channel_doc_id) or {}
        statistics = session.statistics
        await self.store.put(CHANNELS, channel_doc_id, {
            "totalScans": channel.get("totalScans", 0) + 1,
            "lastScan": scanned_at,
            "brokenLinks": statistics.brokenLinks,
            "lastScanResults": {
                "sessionId": session.sessionId,
                "scannedVideos": session.processedVideos,
                "videosWithLinks": session.videosWithLinks,
                "totalLinks": statistics.totalLinks,
                "brokenLinks": statistics.brokenLinks,
                "warningLinks": statistics.warningLinks,
                "workingLinks": statistics.workingLinks,
                "scannedAt": scanned_at,
            },
        }, merge=True)
        logger.info(f"[Scan] 채널 요약 갱신: {channel_doc_id}")
