"""linkguard.services.link_prober
단일 URL 네트워크 검사 및 판정

검사 흐름:
1. GET 요청 (브라우저 User-Agent, 리다이렉트 수동 추적, 시도당 15초 제한)
2. 관용 플랫폼이면 타임아웃/네트워크 오류/5xx에 한해 최대 2회 재시도 (2초 고정 대기)
3. 최종 상태 코드를 플랫폼 관용 여부에 따라 working/warning/broken으로 판정
"""
import asyncio
import logging
from dataclasses import dataclass

import httpx

from linkguard.core.config import Settings
from linkguard.core.exceptions import ProbeHTTPError, ProbeNetworkError, ProbeTimeout
from linkguard.models.link_models import LinkResult, LinkStatus
from linkguard.utils.url_classifier import PlatformClassifier, is_http_url

logger = logging.getLogger(__name__)


DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
    "Accept-Encoding": "gzip, deflate, br",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
    "Cache-Control": "no-cache",
}

TIMEOUT_STATUS_CODE = 408
NETWORK_ERROR_STATUS_CODE = 0

# 관용 플랫폼이어도 실제로 사라진 리소스
GONE_CODES = {404, 410}


@dataclass(frozen=True)
class ProbeSettings:
    """링크 검사 정책"""
    timeout_seconds: float = 15.0
    max_retries: int = 2
    retry_delay_seconds: float = 2.0
    max_redirects: int = 10

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProbeSettings":
        return cls(
            timeout_seconds=settings.PROBE_TIMEOUT_SECONDS,
            max_retries=settings.PROBE_MAX_RETRIES,
            retry_delay_seconds=settings.PROBE_RETRY_DELAY_SECONDS,
            max_redirects=settings.PROBE_MAX_REDIRECTS,
        )


def classify_status_code(status_code: int, is_tolerant: bool) -> LinkStatus:
    """
    HTTP 상태 코드 판정 (재시도 정책 적용 후의 최종 코드 기준)

    | 코드          | 일반      | 관용 플랫폼 |
    |---------------|-----------|-------------|
    | 2xx           | working   | working     |
    | 3xx           | warning   | warning     |
    | 400/403/405/429 | broken  | warning     |
    | 404/410       | broken    | broken      |
    | 기타 4xx      | broken    | warning     |
    | 5xx           | warning   | warning     |
    """
    if 200 <= status_code < 300:
        return LinkStatus.WORKING
    if 400 <= status_code < 500:
        if not is_tolerant or status_code in GONE_CODES:
            return LinkStatus.BROKEN
        return LinkStatus.WARNING
    # 1xx, 3xx, 5xx
    return LinkStatus.WARNING


class LinkProber:
    """단일 URL 검사기 (검사 호출 사이에 상태를 공유하지 않음)"""

    def __init__(
        self,
        classifier: PlatformClassifier,
        probe_settings: ProbeSettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None
    ):
        self.classifier = classifier
        self.settings = probe_settings or ProbeSettings()
        self._transport = transport

    async def probe(self, url: str, is_tolerant: bool | None = None) -> LinkResult:
        """
        URL 하나를 검사해 판정 결과를 반환합니다. 네트워크 오류는 예외가 아닌 판정으로 돌려줍니다.

        Args:
            url: 검사할 URL
            is_tolerant: 관용 플랫폼 여부 (None이면 분류기로 판별)

        Returns:
            LinkResult: 판정 결과
        """
        if is_tolerant is None:
            is_tolerant = self.classifier.classify(url)

        # 재시도는 관용 플랫폼에만 적용
        max_attempts = 1 + (self.settings.max_retries if is_tolerant else 0)
        outcome: LinkResult | None = None

        for attempt in range(1, max_attempts + 1):
            try:
                status_code = await self._attempt(url)
                return LinkResult(
                    url=url,
                    status=classify_status_code(status_code, is_tolerant),
                    statusCode=status_code
                )

            except ProbeTimeout:
                outcome = LinkResult(
                    url=url,
                    status=LinkStatus.WARNING,
                    statusCode=TIMEOUT_STATUS_CODE,
                    errorNote="Timeout"
                )
                reason = "타임아웃"

            except ProbeNetworkError as error:
                outcome = LinkResult(
                    url=url,
                    status=LinkStatus.WARNING if is_tolerant else LinkStatus.BROKEN,
                    statusCode=NETWORK_ERROR_STATUS_CODE,
                    errorNote=str(error)
                )
                reason = "네트워크 오류"

            except ProbeHTTPError as error:
                outcome = LinkResult(
                    url=url,
                    status=LinkStatus.WARNING,
                    statusCode=error.status_code,
                    errorNote=str(error)
                )
                reason = f"서버 오류 {error.status_code}"

            if attempt < max_attempts:
                logger.info(f"[Probe] {reason}, 재시도 ({attempt}/{self.settings.max_retries}): {url}")
                await asyncio.sleep(self.settings.retry_delay_seconds)

        logger.info(f"[Probe] 최종 판정 {outcome.status.value} ({outcome.statusCode}): {url}")
        return outcome

    async def _attempt(self, url: str) -> int:
        """
        GET 요청 1회 (전체 시도에 timeout_seconds 마감 적용)

        Returns:
            int: 최종 상태 코드 (5xx 제외)

        Raises:
            ProbeTimeout: 마감 시간 초과
            ProbeNetworkError: DNS/연결/URL 형식 오류
            ProbeHTTPError: 5xx 응답
        """
        try:
            status_code = await asyncio.wait_for(
                self._fetch_status(url),
                timeout=self.settings.timeout_seconds
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            raise ProbeTimeout(url)
        except (httpx.RequestError, httpx.InvalidURL, ValueError) as error:
            # 호스트 없는 URL(http:// 등)은 httpx가 ValueError로 거절
            raise ProbeNetworkError(str(error) or type(error).__name__)

        if status_code >= 500:
            raise ProbeHTTPError(status_code)
        return status_code

    async def _fetch_status(self, url: str) -> int:
        """
        리다이렉트를 따라가며 최종 상태 코드 반환

        리다이렉트 한도를 넘으면 마지막 3xx 코드를 그대로 반환합니다.
        응답 본문은 읽지 않습니다.
        """
        async with httpx.AsyncClient(
            headers=DEFAULT_HEADERS,
            timeout=self.settings.timeout_seconds,
            follow_redirects=False,
            transport=self._transport
        ) as client:
            request = client.build_request("GET", url)
            for _ in range(self.settings.max_redirects + 1):
                response = await client.send(request, stream=True)
                await response.aclose()

                if response.next_request is None:
                    break
                request = response.next_request

            return response.status_code

    async def check_links(self, urls: list[str], concurrency: int = 10) -> list[LinkResult]:
        """
        임의 URL 목록을 병렬 검사 (요청 순서 유지)

        http(s) URL 형식이 아니면 검사하지 않고 warning/0으로 판정합니다.

        Args:
            urls: 검사할 URL 리스트
            concurrency: 동시 검사 수

        Returns:
            list[LinkResult]: URL별 판정 결과
        """
        semaphore = asyncio.Semaphore(max(1, concurrency))

        async def bounded_probe(url: str) -> LinkResult:
            if not is_http_url(url):
                return LinkResult(
                    url=url,
                    status=LinkStatus.WARNING,
                    statusCode=NETWORK_ERROR_STATUS_CODE,
                    errorNote="Invalid URL format"
                )
            async with semaphore:
                return await self.probe(url)

        return list(await asyncio.gather(*(bounded_probe(url) for url in urls)))
