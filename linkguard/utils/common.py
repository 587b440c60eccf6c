"""linkguard.utils.common
공통 유틸리티 (외부 API JSON 호출, 로그 마스킹, 시각)
"""
import logging
from datetime import datetime, timezone
from typing import Any

import httpx

from linkguard.core.exceptions import UpstreamMetadataError

logger = logging.getLogger(__name__)

METADATA_HTTP_TIMEOUT = 10.0  # 메타데이터 API 기본 타임아웃 (초)


async def http_get_json(
    url: str,
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    timeout: float = METADATA_HTTP_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None
) -> dict[str, Any]:
    """
    메타데이터 API GET 호출

    호출 실패는 모두 UpstreamMetadataError로 바꿔서 던집니다.
    응답 코드가 있는 실패는 upstream_status에 코드를 담습니다 (키 순환 판단용).

    Args:
        url: 요청 URL
        params: 쿼리 파라미터 (API 키 포함 가능, 로그에는 남기지 않음)
        headers: 추가 요청 헤더
        timeout: 초 단위 타임아웃
        transport: httpx 전송 계층 (테스트에서 MockTransport 주입)

    Returns:
        dict: 파싱된 JSON 본문
    """
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url, params=params, headers=headers)
        response.raise_for_status()
        return response.json()

    except httpx.TimeoutException:
        logger.error(f"[HTTP] 타임아웃 ({timeout}초): {url}")
        raise UpstreamMetadataError(f"Metadata request timed out after {timeout}s")

    except httpx.HTTPStatusError as error:
        status = error.response.status_code
        logger.error(f"[HTTP] 응답 오류 {status}: {url}")
        raise UpstreamMetadataError(f"Metadata API error: {status}", upstream_status=status)

    except httpx.RequestError as error:
        logger.error(f"[HTTP] 연결 실패: {url} - {error}")
        raise UpstreamMetadataError("Metadata API connection failed")


def mask_sensitive_data(data: str, show_chars: int = 2) -> str:
    """
    API 키처럼 로그에 그대로 남기면 안 되는 값을 가림

    Examples:
        >>> mask_sensitive_data("AIzaSyExampleKey99")
        'AI**************99'
    """
    if not data or len(data) <= show_chars * 2:
        return "****"
    hidden = len(data) - show_chars * 2
    return f"{data[:show_chars]}{'*' * hidden}{data[-show_chars:]}"


def utc_now_iso() -> str:
    """현재 UTC 시각 (ISO 8601)"""
    return datetime.now(timezone.utc).isoformat()
