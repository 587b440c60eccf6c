"""linkguard.core.config
.env 파일에서 API 키와 스캔 정책 값을 할당합니다.
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


# 자동화 클라이언트에 4xx를 돌려주지만 실제 브라우저로는 접근 가능한 플랫폼 목록
DEFAULT_TOLERANT_DOMAINS = [
    # 소셜 미디어
    "facebook.com", "fb.com", "twitter.com", "x.com", "instagram.com",
    "linkedin.com", "youtube.com", "youtu.be", "tiktok.com", "snapchat.com",
    "pinterest.com", "reddit.com", "tumblr.com", "whatsapp.com",
    "t.me", "telegram.org", "telegram.me",
    # URL 단축 서비스
    "goo.gl", "bit.ly", "t.co", "ow.ly", "tinyurl.com", "buff.ly",
    # 이커머스
    "amazon.com", "amzn.to", "flipkart.com", "ebay.com", "meesho.com",
    # 스크린샷/이미지 도구
    "prntscr.com", "lightshot.com", "imgur.com", "gyazo.com",
]


class Settings(BaseSettings):
    ENVIRONMENT: str = "dev"  # dev: 로컬, prod: 서버환경
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "/var/log/linkguard"

    # YouTube Data API (쉼표로 구분된 여러 키 지원)
    YOUTUBE_API_KEYS: str = ""
    YOUTUBE_API_BASE: str = "https://www.googleapis.com/youtube/v3"
    YOUTUBE_HTTP_TIMEOUT: float = 10.0

    # 링크 검사 정책
    PROBE_TIMEOUT_SECONDS: float = 15.0
    PROBE_MAX_RETRIES: int = 2
    PROBE_RETRY_DELAY_SECONDS: float = 2.0
    PROBE_MAX_REDIRECTS: int = 10
    TOLERANT_DOMAINS: list[str] = DEFAULT_TOLERANT_DOMAINS

    # 스캔 실행 정책
    LINK_CONCURRENCY: int = 10  # 비동기 모드에서 영상당 병렬 링크 검사 수
    SYNC_SCAN_MAX_VIDEOS: int = 50  # 동기 모드 허용 최대 영상 수
    CHANNEL_SWEEP_DELAY_SECONDS: float = 5.0

    # 작업 큐 정책
    SCAN_WORKER_COUNT: int = 1
    JOB_MAX_ATTEMPTS: int = 3
    JOB_BACKOFF_SECONDS: float = 5.0

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def youtube_api_keys(self) -> list[str]:
        """쉼표로 구분된 YOUTUBE_API_KEYS 값을 리스트로 변환"""
        return [key.strip() for key in self.YOUTUBE_API_KEYS.split(",") if key.strip()]


settings = Settings()
