"""linkguard.services.scan_queue
프로세스 내 비동기 스캔 작업 큐

- enqueue된 작업은 정확히 한 워커에게 전달됩니다.
- 핸들러가 예외를 던지면 지수 백오프(backoff_seconds * 2^(attempt-1)) 후 재전달합니다.
- max_attempts번 모두 실패하면 on_exhausted(job_id, error)를 호출합니다.
- 4xx CustomError(잘못된 입력, 요금제 한도 등)는 다시 실행해도 같은 결과이므로 바로 on_exhausted로 넘깁니다.
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable

from linkguard.core.exceptions import CustomError

logger = logging.getLogger(__name__)

JobHandler = Callable[[str, dict[str, Any], int], Awaitable[None]]
ExhaustedHandler = Callable[[str, Exception], Awaitable[None]]


class ScanQueue:
    """asyncio.Queue 기반 작업 큐 + 워커 태스크"""

    def __init__(
        self,
        handler: JobHandler,
        on_exhausted: ExhaustedHandler,
        max_attempts: int = 3,
        backoff_seconds: float = 5.0,
        worker_count: int = 1
    ):
        self.handler = handler
        self.on_exhausted = on_exhausted
        self.max_attempts = max(1, max_attempts)
        self.backoff_seconds = backoff_seconds
        self.worker_count = max(1, worker_count)

        self._queue: asyncio.Queue[tuple[str, dict[str, Any], int]] = asyncio.Queue()
        self._workers: list[asyncio.Task] = []
        self._pending_retries: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return bool(self._workers)

    def backoff_delay(self, attempt: int) -> float:
        """attempt번째 실패 후 다음 전달까지 대기 시간 (초)"""
        return self.backoff_seconds * (2 ** (attempt - 1))

    @staticmethod
    def is_retryable(error: Exception) -> bool:
        return not (isinstance(error, CustomError) and error.status_code < 500)

    async def start(self) -> None:
        if self._workers:
            return
        self._workers = [
            asyncio.create_task(self._worker(f"scan-worker-{index}"))
            for index in range(self.worker_count)
        ]
        logger.info(f"[Queue] 워커 {self.worker_count}개 시작")

    async def stop(self) -> None:
        tasks = [*self._workers, *self._pending_retries]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._workers = []
        self._pending_retries.clear()
        logger.info("[Queue] 워커 종료")

    async def enqueue(self, job_id: str, payload: dict[str, Any]) -> None:
        await self._queue.put((job_id, payload, 1))
        logger.info(f"[Queue] 작업 등록: {job_id} (대기 {self._queue.qsize()}개)")

    async def join(self) -> None:
        """대기 중/재시도 예약된 작업이 모두 끝날 때까지 대기"""
        while True:
            await self._queue.join()
            if not self._pending_retries:
                return
            await asyncio.gather(*list(self._pending_retries), return_exceptions=True)

    async def _worker(self, name: str) -> None:
        while True:
            job_id, payload, attempt = await self._queue.get()
            try:
                logger.info(f"[Queue] {name} 작업 시작: {job_id} (시도 {attempt}/{self.max_attempts})")
                await self.handler(job_id, payload, attempt)

            except Exception as error:
                if not self.is_retryable(error):
                    logger.error(f"[Queue] 재시도 불가 오류, 작업 종료: {job_id} - {error}")
                    await self._notify_exhausted(job_id, error)
                elif attempt < self.max_attempts:
                    delay = self.backoff_delay(attempt)
                    logger.warning(f"[Queue] 작업 실패, {delay:.1f}초 후 재시도: {job_id} - {error}")
                    self._schedule_retry(job_id, payload, attempt + 1, delay)
                else:
                    logger.error(f"[Queue] 재시도 횟수 초과: {job_id} - {error}")
                    await self._notify_exhausted(job_id, error)

            finally:
                self._queue.task_done()

    def _schedule_retry(self, job_id: str, payload: dict[str, Any], attempt: int, delay: float) -> None:
        task = asyncio.create_task(self._redeliver(job_id, payload, attempt, delay))
        self._pending_retries.add(task)
        task.add_done_callback(self._pending_retries.discard)

    async def _redeliver(self, job_id: str, payload: dict[str, Any], attempt: int, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._queue.put((job_id, payload, attempt))

    async def _notify_exhausted(self, job_id: str, error: Exception) -> None:
        try:
            await self.on_exhausted(job_id, error)
        except Exception:
            logger.exception(f"[Queue] 실패 처리 중 오류: {job_id}")
