import asyncio

import pytest

from linkguard.core.exceptions import InputError
from linkguard.services.scan_queue import ScanQueue


def test_backoff_delay_is_exponential():
    queue = ScanQueue(handler=None, on_exhausted=None, backoff_seconds=5.0)

    assert [queue.backoff_delay(attempt) for attempt in (1, 2, 3)] == [5.0, 10.0, 20.0]


@pytest.mark.asyncio
async def test_each_job_is_delivered_once_on_success():
    delivered = []

    async def handler(job_id, payload, attempt):
        delivered.append((job_id, payload["n"], attempt))

    async def on_exhausted(job_id, error):
        raise AssertionError("should not be called")

    queue = ScanQueue(handler, on_exhausted, worker_count=2)
    await queue.start()
    for index in range(4):
        await queue.enqueue(f"job_{index}", {"n": index})
    await asyncio.wait_for(queue.join(), timeout=2)
    await queue.stop()

    assert sorted(delivered) == [(f"job_{index}", index, 1) for index in range(4)]
    assert not queue.running


@pytest.mark.asyncio
async def test_failed_job_is_redelivered_until_success():
    attempts = []

    async def handler(job_id, payload, attempt):
        attempts.append(attempt)
        if attempt < 2:
            raise RuntimeError("transient")

    exhausted = []

    async def on_exhausted(job_id, error):
        exhausted.append(job_id)

    queue = ScanQueue(handler, on_exhausted, max_attempts=3, backoff_seconds=0)
    await queue.start()
    await queue.enqueue("job_retry", {})
    await asyncio.wait_for(queue.join(), timeout=2)
    await queue.stop()

    assert attempts == [1, 2]
    assert exhausted == []


@pytest.mark.asyncio
async def test_exhausted_job_reports_last_error():
    attempts = []

    async def handler(job_id, payload, attempt):
        attempts.append(attempt)
        raise RuntimeError(f"boom {attempt}")

    exhausted = []

    async def on_exhausted(job_id, error):
        exhausted.append((job_id, str(error)))

    queue = ScanQueue(handler, on_exhausted, max_attempts=3, backoff_seconds=0)
    await queue.start()
    await queue.enqueue("job_fail", {})
    await asyncio.wait_for(queue.join(), timeout=2)
    await queue.stop()

    assert attempts == [1, 2, 3]
    assert exhausted == [("job_fail", "boom 3")]


@pytest.mark.asyncio
async def test_input_errors_fail_immediately_without_redelivery():
    attempts = []

    async def handler(job_id, payload, attempt):
        attempts.append(attempt)
        raise InputError("Invalid date: not-a-date")

    exhausted = []

    async def on_exhausted(job_id, error):
        exhausted.append((job_id, str(error)))

    queue = ScanQueue(handler, on_exhausted, max_attempts=3, backoff_seconds=5.0)
    await queue.start()
    await queue.enqueue("job_bad_input", {})
    await asyncio.wait_for(queue.join(), timeout=2)
    await queue.stop()

    assert attempts == [1]
    assert exhausted == [("job_bad_input", "Invalid date: not-a-date")]


@pytest.mark.asyncio
async def test_worker_survives_a_failing_exhaustion_hook():
    handled = []

    async def handler(job_id, payload, attempt):
        if job_id == "bad":
            raise RuntimeError("bad job")
        handled.append(job_id)

    async def on_exhausted(job_id, error):
        raise RuntimeError("store unavailable")

    queue = ScanQueue(handler, on_exhausted, max_attempts=1, backoff_seconds=0)
    await queue.start()
    await queue.enqueue("bad", {})
    await queue.enqueue("good", {})
    await asyncio.wait_for(queue.join(), timeout=2)
    await queue.stop()

    assert handled == ["good"]
