"""linkguard.services.plan_policy
요금제별 스캔 한도 확인 (작업 시작 전 사전 검사)

| 요금제     | 채널 스캔 최대 영상 | 영상 일괄 스캔 최대 | 누적 스캔 횟수 |
|------------|---------------------|---------------------|----------------|
| free       | 50                  | 10                  | 2              |
| basic      | 1000                | 1000                | 무제한         |
| pro        | 2000                | 2000                | 무제한         |
| enterprise | 무제한              | 무제한              | 무제한         |
"""
import logging
from dataclasses import dataclass
from typing import Optional

from linkguard.core.exceptions import PlanLimitExceeded
from linkguard.services.document_store import SCAN_SESSIONS, USERS, DocumentStore

logger = logging.getLogger(__name__)

DEFAULT_PLAN_ID = "free"


@dataclass(frozen=True)
class PlanPolicy:
    """요금제 한도 (None은 무제한)"""
    plan_id: str
    max_videos_per_scan: Optional[int]
    max_bulk_videos_per_run: Optional[int]
    max_scans: Optional[int]


PLAN_POLICIES: dict[str, PlanPolicy] = {
    "free": PlanPolicy("free", 50, 10, 2),
    "basic": PlanPolicy("basic", 1000, 1000, None),
    "pro": PlanPolicy("pro", 2000, 2000, None),
    "enterprise": PlanPolicy("enterprise", None, None, None),
}


async def resolve_plan(store: DocumentStore, user_id: str) -> PlanPolicy:
    """users/{userId}.planId로 요금제 조회 (사용자/요금제가 없으면 free)"""
    user = await store.get(USERS, user_id)
    plan_id = (user or {}).get("planId") or DEFAULT_PLAN_ID
    policy = PLAN_POLICIES.get(plan_id)
    if policy is None:
        logger.warning(f"[Plan] 알 수 없는 요금제 {plan_id}, free로 처리: {user_id}")
        policy = PLAN_POLICIES[DEFAULT_PLAN_ID]
    return policy


def enforce_bulk_limit(policy: PlanPolicy, video_count: int) -> None:
    """
    영상 일괄 스캔 개수 확인

    Raises:
        PlanLimitExceeded: 요금제의 일괄 스캔 한도를 넘을 때
    """
    limit = policy.max_bulk_videos_per_run
    if limit is not None and video_count > limit:
        raise PlanLimitExceeded(
            f"Bulk scan size exceeds plan limit ({video_count} > {limit} on {policy.plan_id} plan)"
        )


async def enforce_scan_quota(store: DocumentStore, user_id: str, policy: PlanPolicy) -> None:
    """
    누적 스캔 횟수 확인

    Raises:
        PlanLimitExceeded: 요금제의 스캔 횟수를 모두 사용했을 때
    """
    if policy.max_scans is None:
        return
    used = len(await store.query(SCAN_SESSIONS, userId=user_id))
    if used >= policy.max_scans:
        raise PlanLimitExceeded(
            f"Scan limit reached for your plan ({used}/{policy.max_scans} on {policy.plan_id} plan)"
        )


def cap_channel_video_count(policy: PlanPolicy, requested: int) -> int:
    """채널 스캔 요청 영상 수를 요금제 한도로 제한"""
    limit = policy.max_videos_per_scan
    if limit is not None and requested > limit:
        logger.info(f"[Plan] 채널 스캔 영상 수 제한: {requested} -> {limit} ({policy.plan_id})")
        return limit
    return requested
