"""linkguard.utils.url_classifier
URL 분류 유틸리티 - 관용 플랫폼 판별 및 YouTube 영상 ID 추출
"""
import re
from typing import Iterable
from urllib.parse import urlparse

# 호스트 앞에서 제거할 서브도메인 라벨
STRIPPED_HOST_PREFIXES = ("www.", "app.")

VIDEO_ID_PATTERN = re.compile(r'(?:v=|/videos/|embed/|youtu\.be/|/v/|/shorts/|watch\?v=|&v=)([^#&?/]*)')


class PlatformClassifier:
    """
    관용 플랫폼(tolerant platform) 판별기

    소셜 네트워크, 단축 URL, 이커머스, 스크린샷 도구처럼 자동화 클라이언트에
    4xx를 돌려주지만 실제 브라우저로는 접근 가능한 호스트인지 판단합니다.
    """

    def __init__(self, domains: Iterable[str]):
        self.domains = tuple(domain.lower() for domain in domains)

    @staticmethod
    def normalize_host(url: str) -> str | None:
        """
        URL에서 호스트를 추출해 소문자로 바꾸고 www./app. 접두사를 제거

        Returns:
            str | None: 정규화된 호스트, 파싱 실패 시 None
        """
        try:
            host = urlparse(url).hostname
        except ValueError:
            return None
        if not host:
            return None

        host = host.lower()
        stripped = True
        while stripped:
            stripped = False
            for prefix in STRIPPED_HOST_PREFIXES:
                if host.startswith(prefix):
                    host = host[len(prefix):]
                    stripped = True
        return host

    def classify(self, url: str) -> bool:
        """
        관용 플랫폼 여부 판별

        서브도메인/국가별 TLD까지 잡기 위해 완전 일치가 아닌 부분 문자열 포함 검사를 합니다.

        Args:
            url: 검사할 URL

        Returns:
            bool: 관용 플랫폼이면 True (파싱 실패 시 항상 False)
        """
        host = self.normalize_host(url)
        if not host:
            return False
        return any(domain in host for domain in self.domains)


def extract_video_id(video_url: str) -> str | None:
    """
    YouTube 영상 URL에서 영상 ID 추출

    지원 패턴: watch?v=, youtu.be/, embed/, /v/, /shorts/, /videos/

    Args:
        video_url: YouTube 영상 URL

    Returns:
        str | None: 영상 ID, 추출 실패 시 None
    """
    match = VIDEO_ID_PATTERN.search(video_url or "")
    if match and match.group(1):
        return match.group(1)
    return None


def is_http_url(url: str) -> bool:
    """http(s) 스킴과 호스트가 있는 URL인지 확인"""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)
