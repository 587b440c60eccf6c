"""linkguard.services.document_store
스캔 결과/세션/작업을 저장하는 문서 저장소

컬렉션/문서 ID 구조
- videoScans/{videoId}       : 영상별 최신 링크 리포트 (재스캔 시 덮어씀)
- scanSessions/{sessionId}   : 스캔 세션 집계
- scanJobs/{jobId}           : 비동기 작업 상태
- users/{userId}             : 사용자 (planId)
- channels/{channelDocId}    : 채널 스캔 요약
"""
import asyncio
import copy
from typing import Any, Protocol

VIDEO_SCANS = "videoScans"
SCAN_SESSIONS = "scanSessions"
SCAN_JOBS = "scanJobs"
USERS = "users"
CHANNELS = "channels"


class DocumentStore(Protocol):
    """문서 저장소 인터페이스 (단일 문서 upsert + 동등 조건 조회)"""

    async def put(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        ...

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        ...

    async def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        ...


class InMemoryDocumentStore:
    """
    프로세스 메모리 기반 저장소

    읽기/쓰기 모두 깊은 복사로 주고받아 호출자가 저장된 문서를 직접 바꿀 수 없습니다.
    """

    def __init__(self):
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def put(self, collection: str, doc_id: str, data: dict[str, Any], merge: bool = False) -> None:
        """
        문서 저장

        Args:
            collection: 컬렉션 이름
            doc_id: 문서 ID
            data: 문서 본문
            merge: True면 기존 문서에 필드 단위로 병합
        """
        async with self._lock:
            documents = self._collections.setdefault(collection, {})
            if merge and doc_id in documents:
                documents[doc_id].update(copy.deepcopy(data))
            else:
                documents[doc_id] = copy.deepcopy(data)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        document = self._collections.get(collection, {}).get(doc_id)
        return copy.deepcopy(document) if document is not None else None

    async def query(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        """필드 값이 모두 일치하는 문서 목록 (저장 순서)"""
        return [
            copy.deepcopy(document)
            for document in self._collections.get(collection, {}).values()
            if all(document.get(field) == value for field, value in filters.items())
        ]
