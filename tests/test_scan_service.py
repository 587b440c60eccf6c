from types import SimpleNamespace

import pytest

from linkguard.core.config import Settings
from linkguard.core.exceptions import InputError, PlanLimitExceeded, UpstreamMetadataError
from linkguard.models.link_models import LinkResult, LinkStatus
from linkguard.models.scan_models import ScanStatus
from linkguard.models.scan_request import ScanQueuedResponse, ScanRequest
from linkguard.services.document_store import CHANNELS, SCAN_SESSIONS, USERS, VIDEO_SCANS, InMemoryDocumentStore
from linkguard.services.scan_service import ScanService
from linkguard.services.youtube_client import ApiKeyRotator, VideoDetails


VIDEO_DESCRIPTIONS = {
    "vid1": "Gear: https://ok.example.com and https://gone.example.com.",
    "vid2": "Thanks for watching!",
}


def fake_youtube(channel_videos=None, channel_error=None):
    async def get_video_details(video_id):
        if video_id not in VIDEO_DESCRIPTIONS:
            return None
        return VideoDetails(video_id=video_id, title=f"Title {video_id}", description=VIDEO_DESCRIPTIONS[video_id])

    async def list_channel_videos(channel_id, max_results=50, start_date=None, end_date=None):
        if channel_error is not None:
            raise channel_error
        return (channel_videos or [])[:max_results]

    return SimpleNamespace(get_video_details=get_video_details, list_channel_videos=list_channel_videos)


def fake_prober():
    async def probe(url, is_tolerant=None):
        if "gone" in url:
            return LinkResult(url=url, status=LinkStatus.BROKEN, statusCode=404)
        return LinkResult(url=url, status=LinkStatus.WORKING, statusCode=200)

    async def check_links(urls, concurrency=10):
        return [await probe(url) for url in urls]

    return SimpleNamespace(probe=probe, check_links=check_links)


def fake_queue():
    enqueued = []

    async def enqueue(job_id, payload):
        enqueued.append((job_id, payload))

    return SimpleNamespace(enqueue=enqueue, enqueued=enqueued)


def make_service(youtube=None, queue=None, **overrides):
    settings = Settings(**{"CHANNEL_SWEEP_DELAY_SECONDS": 0, "LINK_CONCURRENCY": 4, **overrides})
    store = InMemoryDocumentStore()
    service = ScanService(store, youtube or fake_youtube(), fake_prober(), settings, queue=queue)
    return service, store


def watch_url(video_id):
    return f"https://www.youtube.com/watch?v={video_id}"


@pytest.mark.asyncio
async def test_sync_video_scan_returns_full_result_and_persists_reports():
    service, store = make_service()

    result = await service.run_scan(ScanRequest(
        userId="user_1",
        mode="sync",
        sessionName="Weekly check",
        videoUrls=[watch_url("vid1"), watch_url("vid2"), watch_url("unknown")],
    ))

    assert result.success is True
    assert result.scannedVideos == 3
    assert result.videosWithLinks == 1
    assert result.statistics.totalLinks == 2
    assert result.statistics.brokenLinks == 1
    assert [link.url for link in result.results[0].links] == ["https://ok.example.com", "https://gone.example.com"]

    session = await service.sessions.get(result.sessionId)
    assert session.status == ScanStatus.COMPLETED
    assert session.progress == 100
    assert session.processedVideos == session.totalVideos == 3
    assert session.videoIds == ["vid1"]
    assert session.sessionName == "Weekly check"
    assert session.enforcedPlanId == "free"

    stored = await store.get(VIDEO_SCANS, "vid1")
    assert stored["sessionId"] == result.sessionId
    assert stored["userId"] == "user_1"

    session_results = await service.get_session_results(result.sessionId)
    assert [report.videoId for report in session_results.results] == ["vid1"]


@pytest.mark.asyncio
async def test_rejects_requests_without_valid_video_urls():
    service, _ = make_service()

    with pytest.raises(InputError):
        await service.run_scan(ScanRequest(userId="user_1", mode="sync", videoUrls=["https://example.com/page"]))


@pytest.mark.asyncio
async def test_bulk_scan_over_plan_limit_is_rejected_before_work():
    service, store = make_service()

    with pytest.raises(PlanLimitExceeded):
        await service.run_scan(ScanRequest(
            userId="user_1",
            mode="sync",
            videoUrls=[watch_url(f"v{index}") for index in range(11)],
        ))

    assert await store.query(SCAN_SESSIONS) == []


@pytest.mark.asyncio
async def test_scan_quota_is_enforced_per_user():
    service, store = make_service()
    request = ScanRequest(userId="user_1", mode="sync", videoUrls=[watch_url("vid2")])

    await service.run_scan(request)
    await service.run_scan(request)

    with pytest.raises(PlanLimitExceeded):
        await service.run_scan(request)


@pytest.mark.asyncio
async def test_sync_mode_is_limited_in_size():
    service, store = make_service(SYNC_SCAN_MAX_VIDEOS=2)
    await store.put(USERS, "user_pro", {"planId": "pro"})

    with pytest.raises(InputError):
        await service.run_scan(ScanRequest(
            userId="user_pro",
            mode="sync",
            videoUrls=[watch_url("a"), watch_url("b"), watch_url("c")],
        ))


@pytest.mark.asyncio
async def test_async_scan_is_queued_then_executed_by_worker():
    queue = fake_queue()
    service, _ = make_service(queue=queue)

    queued = await service.run_scan(ScanRequest(userId="user_1", videoUrls=[watch_url("vid1")]))

    assert isinstance(queued, ScanQueuedResponse)
    assert queued.status == ScanStatus.QUEUED
    job_id, payload = queue.enqueued[0]
    assert job_id == queued.jobId
    assert (await service.get_job_status(job_id)).status == ScanStatus.QUEUED

    await service.execute_job(job_id, payload, 1)

    status = await service.get_job_status(job_id)
    assert status.status == ScanStatus.COMPLETED
    assert status.progress == 100
    assert status.result["scannedVideos"] == 1
    assert status.result["statistics"]["brokenLinks"] == 1
    assert status.sessionId == status.result["sessionId"]

    session = await service.sessions.get(status.sessionId)
    assert session.jobId == job_id


@pytest.mark.asyncio
async def test_async_channel_job_failure_is_recorded_verbatim():
    queue = fake_queue()
    error = UpstreamMetadataError("All YouTube API keys have exceeded their quota", upstream_status=403)
    service, _ = make_service(youtube=fake_youtube(channel_error=error), queue=queue)

    queued = await service.run_scan(ScanRequest(userId="user_1", channelId="UC123"))
    job_id, payload = queue.enqueued[0]

    with pytest.raises(UpstreamMetadataError):
        await service.execute_job(job_id, payload, 1)
    await service.fail_job(job_id, error)

    status = await service.get_job_status(queued.jobId)
    assert status.status == ScanStatus.FAILED
    assert status.error == "All YouTube API keys have exceeded their quota"

    session = await service.sessions.get(status.sessionId)
    assert session.status == ScanStatus.FAILED
    assert session.error == status.error


@pytest.mark.asyncio
async def test_async_requests_count_against_scan_quota_when_queued():
    queue = fake_queue()
    service, store = make_service(queue=queue)
    request = ScanRequest(userId="free_user", videoUrls=[watch_url("vid1")])

    await service.run_scan(request)
    await service.run_scan(request)

    with pytest.raises(PlanLimitExceeded):
        await service.run_scan(request)

    assert len(queue.enqueued) == 2
    sessions = await store.query(SCAN_SESSIONS, userId="free_user")
    assert [session["status"] for session in sessions] == ["queued", "queued"]


@pytest.mark.asyncio
async def test_redelivered_job_reuses_its_session():
    videos = [VideoDetails(video_id="c1", title="One", description="https://ok.example.com")]
    listings = []

    async def list_channel_videos(channel_id, max_results=50, start_date=None, end_date=None):
        listings.append(channel_id)
        if len(listings) == 1:
            raise UpstreamMetadataError("API 오류: 500", upstream_status=500)
        return videos

    youtube = SimpleNamespace(get_video_details=None, list_channel_videos=list_channel_videos)
    queue = fake_queue()
    service, store = make_service(youtube=youtube, queue=queue)

    queued = await service.run_scan(ScanRequest(userId="user_1", channelId="UC123"))
    job_id, payload = queue.enqueued[0]

    with pytest.raises(UpstreamMetadataError):
        await service.execute_job(job_id, payload, 1)
    await service.execute_job(job_id, payload, 2)

    sessions = await store.query(SCAN_SESSIONS, userId="user_1")
    assert len(sessions) == 1
    assert sessions[0]["status"] == "completed"
    assert sessions[0]["jobId"] == queued.jobId
    assert sessions[0]["totalVideos"] == 1

    status = await service.get_job_status(queued.jobId)
    assert status.status == ScanStatus.COMPLETED
    assert status.sessionId == sessions[0]["sessionId"]


@pytest.mark.asyncio
async def test_channel_scan_updates_channel_summary():
    videos = [
        VideoDetails(video_id="c1", title="One", description="https://gone.example.com"),
        VideoDetails(video_id="c2", title="Two", description="nothing"),
    ]
    service, store = make_service(youtube=fake_youtube(channel_videos=videos))
    await store.put(USERS, "user_pro", {"planId": "pro"})
    await store.put(CHANNELS, "doc_1", {"channelName": "My channel", "totalScans": 4})

    result = await service.run_scan(ScanRequest(
        userId="user_pro",
        mode="sync",
        channelId="UC123",
        channelName="My channel",
        channelDocId="doc_1",
        videoCount=10,
    ))

    assert result.scannedVideos == 2
    assert result.results[0].videoUrl == "https://www.youtube.com/watch?v=c1"

    channel = await store.get(CHANNELS, "doc_1")
    assert channel["channelName"] == "My channel"
    assert channel["totalScans"] == 5
    assert channel["brokenLinks"] == 1
    assert channel["lastScanResults"]["sessionId"] == result.sessionId
    assert channel["lastScanResults"]["videosWithLinks"] == 1


@pytest.mark.asyncio
async def test_sweep_channels_continues_past_failures(monkeypatch):
    videos = [VideoDetails(video_id="c1", title="One", description="https://ok.example.com")]
    service, store = make_service(youtube=fake_youtube(channel_videos=videos))
    await store.put(USERS, "user_pro", {"planId": "pro"})

    calls = []
    listing = service.youtube.list_channel_videos

    async def flaky_listing(channel_id, **kwargs):
        calls.append(channel_id)
        if channel_id == "UC-broken":
            raise UpstreamMetadataError("API 오류: 500", upstream_status=500)
        return await listing(channel_id, **kwargs)

    monkeypatch.setattr(service.youtube, "list_channel_videos", flaky_listing)

    results = await service.sweep_channels([
        ScanRequest(userId="user_pro", channelId="UC-broken"),
        ScanRequest(userId="user_pro", channelId="UC-ok"),
    ])

    assert calls == ["UC-broken", "UC-ok"]
    assert len(results) == 1
    assert results[0].statistics.workingLinks == 1


@pytest.mark.asyncio
async def test_check_links_wraps_prober_results():
    service, _ = make_service()

    response = await service.check_links(["https://ok.example.com", "https://gone.example.com"])

    assert response.success is True
    assert [result.status for result in response.results] == [LinkStatus.WORKING, LinkStatus.BROKEN]


def test_api_key_status_is_masked():
    youtube = SimpleNamespace(rotator=ApiKeyRotator(["AIzaSyFirstKey0001", "AIzaSySecondKey002"]))
    service, _ = make_service(youtube=youtube)

    status = service.api_key_status()

    assert [entry["key"] for entry in status] == ["AI**************01", "AI**************02"]
    assert [entry["active"] for entry in status] == [True, False]
    assert not any(entry["exhausted"] for entry in status)
