"""linkguard.services.scan_tracker
스캔 세션/작업 상태 추적

상태 전이: queued -> processing -> completed | failed
- 동기 모드 세션은 processing 상태로 생성됩니다.
- 비동기 모드 세션은 요청 시점에 queued로 생성되고, 작업이 재전달되어도 같은 세션을 이어 씁니다.
- completed/failed는 종료 상태이며 이후 전이는 ScanStateError로 거절합니다.
- 진행률은 마지막 영상 처리 전까지 99를 넘지 않고, 감소하지 않습니다.
"""
import logging
import time
import uuid
from typing import Any, Literal

from linkguard.core.exceptions import JobNotFoundError, ScanStateError, SessionNotFoundError
from linkguard.models.link_models import LinkStatistics
from linkguard.models.scan_models import ScanJob, ScanSession, ScanStatus
from linkguard.services.document_store import SCAN_JOBS, SCAN_SESSIONS, DocumentStore
from linkguard.utils.common import utc_now_iso

logger = logging.getLogger(__name__)


def generate_id(prefix: str) -> str:
    """{prefix}_{epoch ms}_{uuid 8자리} 형식 ID 생성"""
    return f"{prefix}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def compute_progress(processed: int, total: int, previous: int = 0) -> int:
    """
    진행률 계산

    Args:
        processed: 처리한 영상 수
        total: 전체 영상 수
        previous: 직전 진행률 (감소 방지용)

    Returns:
        int: 0~100 진행률 (processed < total이면 최대 99)
    """
    if total <= 0 or processed >= total:
        progress = 100
    else:
        progress = min(round(processed / total * 100), 99)
    return max(progress, previous)


def _ensure_not_terminal(status: ScanStatus, record_id: str) -> None:
    if status.is_terminal:
        raise ScanStateError(f"{record_id} is already {status.value}")


class ScanSessionTracker:
    """스캔 세션 레코드 관리"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_session(
        self,
        user_id: str,
        total_videos: int,
        session_name: str | None = None,
        job_id: str | None = None,
        plan_id: str | None = None,
        queued: bool = False
    ) -> ScanSession:
        """
        세션 생성 (비동기 모드는 queued, 동기 모드는 processing으로 시작)
        """
        now = utc_now_iso()
        session = ScanSession(
            sessionId=generate_id("session"),
            userId=user_id,
            sessionName=session_name,
            jobId=job_id,
            status=ScanStatus.QUEUED if queued else ScanStatus.PROCESSING,
            totalVideos=total_videos,
            enforcedPlanId=plan_id,
            createdAt=now,
            startedAt=None if queued else now
        )
        await self._save(session)
        logger.info(f"[Session] 생성: {session.sessionId} ({session.status.value}, 영상 {total_videos}개)")
        return session

    async def start(self, session_id: str, total_videos: int) -> ScanSession:
        """
        대기 중인 세션 실행 시작 (작업 재전달 시 processing -> processing 허용)

        Raises:
            ScanStateError: 이미 종료된 세션일 때
        """
        session = await self.get(session_id)
        _ensure_not_terminal(session.status, session_id)

        session.status = ScanStatus.PROCESSING
        session.totalVideos = total_videos
        session.processedVideos = min(session.processedVideos, total_videos)
        if session.startedAt is None:
            session.startedAt = utc_now_iso()
        await self._save(session)
        return session

    async def get(self, session_id: str) -> ScanSession:
        """
        세션 조회 (부수 효과 없음)

        Raises:
            SessionNotFoundError: 세션이 없을 때
        """
        document = await self.store.get(SCAN_SESSIONS, session_id)
        if document is None:
            raise SessionNotFoundError(f"Scan session {session_id} not found")
        return ScanSession.model_validate(document)

    async def record_progress(
        self,
        session_id: str,
        processed_videos: int,
        videos_with_links: int,
        statistics: LinkStatistics,
        video_ids: list[str] | None = None
    ) -> ScanSession:
        session = await self.get(session_id)
        _ensure_not_terminal(session.status, session_id)

        self._apply_counts(session, processed_videos, videos_with_links, statistics, video_ids)
        session.progress = compute_progress(session.processedVideos, session.totalVideos, session.progress)
        await self._save(session)
        return session

    async def complete(
        self,
        session_id: str,
        processed_videos: int,
        videos_with_links: int,
        statistics: LinkStatistics,
        video_ids: list[str] | None = None
    ) -> ScanSession:
        session = await self.get(session_id)
        _ensure_not_terminal(session.status, session_id)

        self._apply_counts(session, processed_videos, videos_with_links, statistics, video_ids)
        session.status = ScanStatus.COMPLETED
        session.progress = 100
        session.completedAt = utc_now_iso()
        await self._save(session)
        logger.info(
            f"[Session] 완료: {session_id} "
            f"(영상 {session.processedVideos}/{session.totalVideos}, 링크 {session.statistics.totalLinks}개)"
        )
        return session

    async def fail(self, session_id: str, error: str) -> ScanSession:
        session = await self.get(session_id)
        _ensure_not_terminal(session.status, session_id)

        session.status = ScanStatus.FAILED
        session.error = error
        session.completedAt = utc_now_iso()
        await self._save(session)
        logger.error(f"[Session] 실패: {session_id} - {error}")
        return session

    @staticmethod
    def _apply_counts(
        session: ScanSession,
        processed_videos: int,
        videos_with_links: int,
        statistics: LinkStatistics,
        video_ids: list[str] | None
    ) -> None:
        session.processedVideos = min(processed_videos, session.totalVideos)
        session.videosWithLinks = videos_with_links
        session.statistics = statistics.model_copy()
        if video_ids is not None:
            # 순서 유지 중복 제거
            session.videoIds = list(dict.fromkeys(video_ids))

    async def _save(self, session: ScanSession) -> None:
        await self.store.put(SCAN_SESSIONS, session.sessionId, session.model_dump(mode="json"))


class ScanJobTracker:
    """비동기 스캔 작업 레코드 관리"""

    def __init__(self, store: DocumentStore):
        self.store = store

    async def create_job(
        self,
        user_id: str,
        kind: Literal["videos", "channel"],
        payload: dict[str, Any],
        job_id: str | None = None,
        session_id: str | None = None
    ) -> ScanJob:
        job = ScanJob(
            jobId=job_id or generate_id("job"),
            sessionId=session_id,
            userId=user_id,
            kind=kind,
            status=ScanStatus.QUEUED,
            payload=payload,
            createdAt=utc_now_iso()
        )
        await self._save(job)
        logger.info(f"[Job] 대기열 등록: {job.jobId} ({kind})")
        return job

    async def get(self, job_id: str) -> ScanJob:
        """
        작업 조회 (부수 효과 없음)

        Raises:
            JobNotFoundError: 작업이 없을 때
        """
        document = await self.store.get(SCAN_JOBS, job_id)
        if document is None:
            raise JobNotFoundError(f"Job {job_id} not found")
        return ScanJob.model_validate(document)

    async def start(self, job_id: str) -> ScanJob:
        """
        워커가 작업을 가져감 (재전달 시 processing -> processing 허용)

        Raises:
            ScanStateError: 이미 종료된 작업일 때
        """
        job = await self.get(job_id)
        _ensure_not_terminal(job.status, job_id)

        job.status = ScanStatus.PROCESSING
        job.attempts += 1
        if job.startedAt is None:
            job.startedAt = utc_now_iso()
        await self._save(job)
        return job

    async def update_progress(
        self,
        job_id: str,
        processed: int,
        total: int,
        session_id: str | None = None
    ) -> ScanJob:
        job = await self.get(job_id)
        _ensure_not_terminal(job.status, job_id)

        job.progress = compute_progress(processed, total, job.progress)
        if session_id is not None:
            job.sessionId = session_id
        await self._save(job)
        return job

    async def complete(self, job_id: str, result: dict[str, Any]) -> ScanJob:
        job = await self.get(job_id)
        _ensure_not_terminal(job.status, job_id)

        job.status = ScanStatus.COMPLETED
        job.progress = 100
        job.result = result
        job.sessionId = result.get("sessionId", job.sessionId)
        job.completedAt = utc_now_iso()
        await self._save(job)
        logger.info(f"[Job] 완료: {job_id}")
        return job

    async def fail(self, job_id: str, error: str) -> ScanJob:
        job = await self.get(job_id)
        _ensure_not_terminal(job.status, job_id)

        job.status = ScanStatus.FAILED
        job.error = error
        job.failedAt = utc_now_iso()
        await self._save(job)
        logger.error(f"[Job] 실패: {job_id} - {error}")
        return job

    async def _save(self, job: ScanJob) -> None:
        await self.store.put(SCAN_JOBS, job.jobId, job.model_dump(mode="json"))
