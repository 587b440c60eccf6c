"""linkguard.core.exceptions
서비스 공통 예외 정의

CustomError를 상속한 예외는 main의 예외 핸들러에서
{"success": false, "error": ..., "message": ...} 형태의 응답으로 변환됩니다.
"""


class CustomError(Exception):
    """서비스 공통 예외 (message + HTTP 상태 코드)"""
    status_code: int = 500
    error: str = "Internal error"

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputError(CustomError):
    """요청 필드 누락/형식 오류 (재시도 없이 즉시 반환)"""
    status_code = 400
    error = "Invalid request"


class PlanLimitExceeded(CustomError):
    """요금제 한도 초과 (작업 시작 전 거절)"""
    status_code = 403
    error = "Plan limit exceeded"


class JobNotFoundError(CustomError):
    status_code = 404
    error = "Job not found"


class SessionNotFoundError(CustomError):
    status_code = 404
    error = "Session not found"


class ScanStateError(CustomError):
    """종료 상태(completed/failed)에서 벗어나는 전이 시도"""
    status_code = 409
    error = "Invalid scan state transition"


class UpstreamMetadataError(CustomError):
    """영상 메타데이터 제공자(YouTube API) 호출 실패"""
    status_code = 502
    error = "Upstream metadata error"

    def __init__(self, message: str, upstream_status: int | None = None):
        super().__init__(message)
        self.upstream_status = upstream_status


class JobExecutionError(CustomError):
    """워커 내부에서 복구 불가능한 예외"""
    status_code = 500
    error = "Job execution failed"


# =============================================
# 링크 검사 내부 예외 (probe() 밖으로 나가지 않음)
# =============================================
class ProbeTimeout(Exception):
    pass


class ProbeNetworkError(Exception):
    pass


class ProbeHTTPError(Exception):
    """5xx 응답 (재시도 대상)"""

    def __init__(self, status_code: int):
        super().__init__(f"Server error {status_code}")
        self.status_code = status_code
