"""linkguard.core.logging
루트 로거 구성 (콘솔 + prod 환경 일별 로테이션 파일)
"""
import logging
import sys
from pathlib import Path
from logging.handlers import TimedRotatingFileHandler
from linkguard.core.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
LOG_RETENTION_DAYS = 30


def _rotating_file_handler(path: Path, formatter: logging.Formatter, level: int | None = None) -> TimedRotatingFileHandler:
    """자정마다 교체되는 파일 핸들러"""
    handler = TimedRotatingFileHandler(
        filename=str(path),
        when='midnight',
        backupCount=LOG_RETENTION_DAYS,
        encoding='utf-8'
    )
    handler.setFormatter(formatter)
    if level is not None:
        handler.setLevel(level)
    return handler


def setup_logging(log_level: str | None = None):
    """
    루트 로거 초기화 (여러 번 호출해도 핸들러가 중복되지 않음)

    Args:
        log_level: DEBUG/INFO/WARNING/ERROR/CRITICAL, None이면 settings.LOG_LEVEL
    """
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level or settings.LOG_LEVEL)
    root_logger.handlers.clear()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    # 링크 검사마다 찍히는 요청 로그는 너무 많음
    logging.getLogger("httpx").setLevel(logging.WARNING)

    environment = settings.ENVIRONMENT.lower()
    if environment != 'prod':
        logging.info(f"[Logging] 콘솔 로그만 사용 (환경: {environment})")
        return

    log_dir = Path(settings.LOG_DIR)
    log_dir.mkdir(parents=True, exist_ok=True)
    root_logger.addHandler(_rotating_file_handler(log_dir / 'linkguard.log', formatter))
    root_logger.addHandler(_rotating_file_handler(log_dir / 'linkguard.error.log', formatter, logging.ERROR))
    logging.info(f"[Logging] 파일 로그 활성화: {log_dir} (보관 {LOG_RETENTION_DAYS}일)")
