"""linkguard.services.youtube_client
YouTube Data API v3 클라이언트 (영상 메타데이터 / 채널 업로드 목록)

여러 API 키를 순환 사용합니다.
- 403 응답(할당량 초과)이면 해당 키를 24시간 소진 처리하고 다음 키로 재요청
- 모든 키가 소진되었거나 키가 없으면 UpstreamMetadataError
"""
import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Protocol

import httpx

from linkguard.core.exceptions import InputError, UpstreamMetadataError
from linkguard.models.scan_request import parse_iso_datetime
from linkguard.utils.common import http_get_json, mask_sensitive_data

logger = logging.getLogger(__name__)

KEY_RESET_SECONDS = 24 * 60 * 60
PLAYLIST_PAGE_SIZE = 50  # playlistItems 최대 페이지 크기


@dataclass
class VideoDetails:
    """영상 메타데이터"""
    video_id: str
    title: str
    description: str = ""
    published_at: Optional[str] = None


class VideoMetadataProvider(Protocol):
    async def get_video_details(self, video_id: str) -> VideoDetails | None:
        ...


class ApiKeyRotator:
    """YouTube API 키 순환 관리"""

    def __init__(
        self,
        keys: Iterable[str],
        reset_after_seconds: float = KEY_RESET_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        self.keys = [key for key in keys if key]
        self.reset_after_seconds = reset_after_seconds
        self._clock = clock
        self._exhausted_at: dict[str, float] = {}
        self._index = 0

    def current_key(self) -> str:
        """
        사용 가능한 키 반환 (소진 후 24시간이 지난 키는 복구)

        Raises:
            UpstreamMetadataError: 키가 없거나 모두 소진되었을 때
        """
        if not self.keys:
            raise UpstreamMetadataError("No YouTube API keys configured")

        now = self._clock()
        for key, exhausted_at in list(self._exhausted_at.items()):
            if now - exhausted_at >= self.reset_after_seconds:
                del self._exhausted_at[key]
                logger.info(f"[YouTube] API 키 복구: {mask_sensitive_data(key)}")

        for offset in range(len(self.keys)):
            index = (self._index + offset) % len(self.keys)
            if self.keys[index] not in self._exhausted_at:
                self._index = index
                return self.keys[index]

        raise UpstreamMetadataError("All YouTube API keys have exceeded their quota", upstream_status=403)

    def mark_exhausted(self, key: str) -> None:
        self._exhausted_at[key] = self._clock()
        self._index = (self.keys.index(key) + 1) % len(self.keys)
        logger.warning(
            f"[YouTube] API 키 할당량 초과: {mask_sensitive_data(key)} "
            f"(남은 키 {len(self.keys) - len(self._exhausted_at)}개)"
        )

    def status(self) -> list[dict[str, Any]]:
        """키별 상태 (GET /api/health 응답용, 키는 마스킹)"""
        return [
            {
                "key": mask_sensitive_data(key),
                "exhausted": key in self._exhausted_at,
                "active": index == self._index,
            }
            for index, key in enumerate(self.keys)
        ]


def _parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise InputError(f"Invalid date: {value}")


def _within_range(published_at: str | None, start: datetime | None, end: datetime | None) -> bool:
    if start is None and end is None:
        return True
    published = _parse_datetime(published_at)
    if published is None:
        return False
    if start is not None and published < start:
        return False
    if end is not None and published > end:
        return False
    return True


class YouTubeClient:
    """YouTube Data API 호출"""

    def __init__(
        self,
        api_keys: Iterable[str],
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        self.rotator = ApiKeyRotator(api_keys)
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _request(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        """
        키를 순환하며 API 호출

        Raises:
            UpstreamMetadataError: 403 외의 API 오류 또는 모든 키 소진
        """
        while True:
            key = self.rotator.current_key()
            try:
                return await http_get_json(
                    f"{self.base_url}/{endpoint}",
                    params={**params, "key": key},
                    timeout=self.timeout,
                    transport=self._transport
                )
            except UpstreamMetadataError as error:
                if error.upstream_status != 403:
                    raise
                self.rotator.mark_exhausted(key)

    async def get_video_details(self, video_id: str) -> VideoDetails | None:
        """
        영상 제목/설명/게시일 조회

        Args:
            video_id: YouTube 영상 ID

        Returns:
            VideoDetails | None: 영상이 없으면 None
        """
        data = await self._request("videos", {"part": "snippet", "id": video_id})
        items = data.get("items") or []
        if not items:
            logger.warning(f"[YouTube] 영상 없음: {video_id}")
            return None

        snippet = items[0].get("snippet", {})
        return VideoDetails(
            video_id=video_id,
            title=snippet.get("title", ""),
            description=snippet.get("description", ""),
            published_at=snippet.get("publishedAt")
        )

    async def get_uploads_playlist_id(self, channel_id: str) -> str:
        """
        채널의 업로드 재생목록 ID 조회

        Raises:
            InputError: 채널이 없거나 업로드 재생목록이 없을 때
        """
        data = await self._request("channels", {"part": "contentDetails", "id": channel_id})
        items = data.get("items") or []
        playlist_id = (
            items[0].get("contentDetails", {}).get("relatedPlaylists", {}).get("uploads")
            if items else None
        )
        if not playlist_id:
            raise InputError(f"Could not find uploads playlist for channel {channel_id}")
        return playlist_id

    async def list_channel_videos(
        self,
        channel_id: str,
        max_results: int = 50,
        start_date: str | None = None,
        end_date: str | None = None
    ) -> list[VideoDetails]:
        """
        채널 업로드 영상 목록 (최신순, 게시일 범위 필터)

        Args:
            channel_id: YouTube 채널 ID
            max_results: 최대 영상 수
            start_date: 게시일 하한 (ISO 8601, 포함)
            end_date: 게시일 상한 (ISO 8601, 포함)

        Returns:
            list[VideoDetails]: 최대 max_results개의 영상
        """
        playlist_id = await self.get_uploads_playlist_id(channel_id)
        start = _parse_datetime(start_date)
        end = _parse_datetime(end_date)

        videos: list[VideoDetails] = []
        page_token: str | None = None
        while len(videos) < max_results:
            params: dict[str, Any] = {
                "part": "snippet",
                "playlistId": playlist_id,
                "maxResults": min(PLAYLIST_PAGE_SIZE, max_results - len(videos)),
            }
            if page_token:
                params["pageToken"] = page_token

            data = await self._request("playlistItems", params)
            items = data.get("items") or []
            if not items:
                break

            for item in items:
                snippet = item.get("snippet", {})
                video_id = snippet.get("resourceId", {}).get("videoId")
                if not video_id or not _within_range(snippet.get("publishedAt"), start, end):
                    continue
                videos.append(VideoDetails(
                    video_id=video_id,
                    title=snippet.get("title", ""),
                    description=snippet.get("description", ""),
                    published_at=snippet.get("publishedAt")
                ))

            page_token = data.get("nextPageToken")
            if not page_token:
                break

        logger.info(f"[YouTube] 채널 영상 {len(videos[:max_results])}개 조회: {channel_id}")
        return videos[:max_results]
