from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from linkguard.apis.scan_router import get_scan_service
from linkguard.core.exceptions import JobNotFoundError, PlanLimitExceeded, SessionNotFoundError
from linkguard.main import app
from linkguard.models import (
    LinkCheckResponse,
    LinkResult,
    LinkStatistics,
    LinkStatus,
    ScanQueuedResponse,
    ScanResultPayload,
    ScanStatus,
    ScanStatusResponse,
)


class FakeScanService:
    def __init__(self):
        self.requests = []

    async def run_scan(self, request):
        self.requests.append(request)
        if request.userId == "over_limit":
            raise PlanLimitExceeded("Bulk scan size exceeds plan limit")
        if request.mode == "async":
            return ScanQueuedResponse(jobId="job_1")
        return ScanResultPayload(
            sessionId="session_1",
            scannedVideos=1,
            videosWithLinks=0,
            statistics=LinkStatistics(),
            scannedAt="2024-01-01T00:00:00+00:00",
        )

    async def get_job_status(self, job_id):
        if job_id != "job_1":
            raise JobNotFoundError(f"Job {job_id} not found")
        return ScanStatusResponse(jobId=job_id, status=ScanStatus.PROCESSING, progress=40)

    async def get_session_results(self, session_id):
        raise SessionNotFoundError(f"Scan session {session_id} not found")

    async def check_links(self, urls):
        return LinkCheckResponse(results=[
            LinkResult(url=url, status=LinkStatus.WORKING, statusCode=200) for url in urls
        ])

    async def sweep_channels(self, requests):
        self.requests.extend(requests)
        return [
            ScanResultPayload(
                sessionId=f"session_{request.channelId}",
                scannedVideos=2,
                videosWithLinks=1,
                statistics=LinkStatistics(),
                scannedAt="2024-01-01T00:00:00+00:00",
            )
            for request in requests
            if request.channelId != "UC-broken"
        ]

    def api_key_status(self):
        return [{"key": "AI****99", "exhausted": False, "active": True}]


@pytest.fixture
def client():
    service = FakeScanService()
    app.dependency_overrides[get_scan_service] = lambda: service
    yield SimpleNamespace(http=TestClient(app), service=service)
    app.dependency_overrides.clear()


def test_sync_scan_returns_full_result(client):
    response = client.http.post("/api/scan", json={
        "userId": "user_1",
        "mode": "sync",
        "videoUrls": ["https://youtu.be/abc"],
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["sessionId"] == "session_1"
    assert body["statistics"]["totalLinks"] == 0


def test_async_scan_returns_job_id(client):
    response = client.http.post("/api/scan", json={"userId": "user_1", "channelId": "UC123"})

    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "jobId": "job_1",
        "status": "queued",
        "message": "Scan job queued successfully. The scan will continue in the background.",
    }
    assert client.service.requests[0].kind == "channel"


@pytest.mark.parametrize(
    "payload",
    [
        {"videoUrls": ["https://youtu.be/abc"]},
        {"userId": "user_1"},
        {"userId": "user_1", "videoUrls": ["https://youtu.be/abc"], "channelId": "UC123"},
        {"userId": "user_1", "channelId": "UC123", "mode": "later"},
        {"userId": "user_1", "channelId": "UC123", "startDate": "not-a-date"},
        {"userId": "user_1", "channelId": "UC123", "startDate": "2024-03-01", "endDate": "2024-01-01"},
    ],
)
def test_malformed_scan_request_is_400(client, payload):
    response = client.http.post("/api/scan", json=payload)

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Invalid request"
    assert client.service.requests == []


def test_plan_limit_is_403(client):
    response = client.http.post("/api/scan", json={"userId": "over_limit", "videoUrls": ["https://youtu.be/abc"]})

    assert response.status_code == 403
    assert response.json() == {
        "success": False,
        "error": "Plan limit exceeded",
        "message": "Bulk scan size exceeds plan limit",
    }


def test_scan_status_lookup(client):
    response = client.http.get("/api/scan-status", params={"jobId": "job_1"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "processing"
    assert body["progress"] == 40


def test_unknown_job_is_404(client):
    response = client.http.get("/api/scan-status", params={"jobId": "job_404"})

    assert response.status_code == 404
    assert response.json()["success"] is False


def test_scan_status_requires_job_id(client):
    assert client.http.get("/api/scan-status").status_code == 400


def test_unknown_session_is_404(client):
    response = client.http.get("/api/scan-sessions/session_missing")

    assert response.status_code == 404
    assert response.json()["error"] == "Session not found"


def test_check_links_endpoint(client):
    response = client.http.post("/api/check-links", json={"urls": ["https://ok.example.com"]})

    assert response.status_code == 200
    assert response.json()["results"] == [
        {"url": "https://ok.example.com", "status": "working", "statusCode": 200, "errorNote": None}
    ]
    assert client.http.post("/api/check-links", json={"urls": []}).status_code == 400


def test_health_reports_key_status_and_process_time(client):
    response = client.http.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "youtubeKeys": [{"key": "AI****99", "exhausted": False, "active": True}],
    }
    assert "X-Process-Time" in response.headers


def test_auto_scan_runs_channels_and_reports_counts(client):
    response = client.http.post("/api/auto-scan/run", json={"channels": [
        {"userId": "user_1", "channelId": "UC-broken"},
        {"userId": "user_1", "channelId": "UC-ok", "videoCount": 20},
    ]})

    assert response.status_code == 200
    body = response.json()
    assert body["requestedChannels"] == 2
    assert body["scannedChannels"] == 1
    assert body["results"][0]["sessionId"] == "session_UC-ok"
    assert [request.channelId for request in client.service.requests] == ["UC-broken", "UC-ok"]


@pytest.mark.parametrize(
    "payload",
    [
        {"channels": []},
        {"channels": [{"userId": "user_1", "videoUrls": ["https://youtu.be/abc"]}]},
    ],
)
def test_auto_scan_rejects_non_channel_entries(client, payload):
    response = client.http.post("/api/auto-scan/run", json=payload)

    assert response.status_code == 400
    assert client.service.requests == []
