import logging
import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from kubekorea.common.exceptions import ConfigurationError

load_dotenv()

DEVELOPMENT_SECRET = "development-secret-key"

ENVIRONMENTS = ("development", "production", "test")


def parse_bool(value: Optional[str], default: bool = False) -> bool:
    if not value:
        return default
    return value.strip().lower() == "true"


def parse_int(value: Optional[str], default: int) -> int:
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def parse_float(value: Optional[str], default: float) -> float:
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        return default


def parse_str(value: Optional[str], default: str) -> str:
    return value or default


def parse_list(value: Optional[str], default: List[str]) -> List[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseModel):
    environment: str = "development"

    # API 설정
    api_base_url: str = "http://localhost:3001"
    api_timeout: float = 10.0
    api_retries: int = 3
    api_retry_delay: float = 1.0
    enable_api: bool = False
    use_local_storage: bool = True

    # 인증 설정
    auth_secret: str = DEVELOPMENT_SECRET
    auth_token_ttl: int = 24 * 60 * 60
    github_client_id: Optional[str] = None
    github_client_secret: Optional[str] = None
    admin_emails: List[str] = Field(default_factory=lambda: ["admin@example.com"])

    # 저장소 / 캐시
    database_url: str = "sqlite:///kubekorea.sqlite3"
    cache_ttl: float = 5 * 60
    cache_max_entries: int = 512

    app_name: str = "Kubernetes Korea"
    app_version: str = "1.0.0"

    def is_development(self) -> bool:
        return self.environment == "development"

    def is_production(self) -> bool:
        return self.environment == "production"

    def is_test(self) -> bool:
        return self.environment == "test"

    def get_log_level(self) -> int:
        if self.is_production():
            return logging.ERROR
        if self.is_test():
            # test 환경은 로그를 남기지 않음
            return logging.CRITICAL + 1
        return logging.DEBUG


def load_settings() -> Settings:
    """
    환경 변수에서 설정을 읽어 Settings 객체를 만든다.
    값이 없거나 파싱에 실패하면 기본값을 사용한다.
    """
    environment = parse_str(os.getenv("APP_ENV"), "development")
    if environment not in ENVIRONMENTS:
        environment = "development"

    default_base_url = (
        "https://api.kubernetes-community.com"
        if environment == "production"
        else "http://localhost:3001"
    )

    return Settings(
        environment=environment,
        api_base_url=parse_str(os.getenv("API_BASE_URL"), default_base_url),
        api_timeout=parse_float(os.getenv("API_TIMEOUT"), 10.0),
        api_retries=parse_int(os.getenv("API_RETRIES"), 3),
        api_retry_delay=parse_float(os.getenv("API_RETRY_DELAY"), 1.0),
        enable_api=parse_bool(os.getenv("ENABLE_API"), False),
        use_local_storage=parse_bool(os.getenv("USE_LOCAL_STORAGE"), True),
        auth_secret=parse_str(os.getenv("AUTH_SECRET"), DEVELOPMENT_SECRET),
        auth_token_ttl=parse_int(os.getenv("AUTH_TOKEN_TTL"), 24 * 60 * 60),
        github_client_id=os.getenv("GITHUB_ID"),
        github_client_secret=os.getenv("GITHUB_SECRET"),
        admin_emails=parse_list(os.getenv("ADMIN_EMAILS"), ["admin@example.com"]),
        database_url=parse_str(os.getenv("DATABASE_URL"), "sqlite:///kubekorea.sqlite3"),
        cache_ttl=parse_float(os.getenv("CACHE_TTL"), 5 * 60),
        cache_max_entries=parse_int(os.getenv("CACHE_MAX_ENTRIES"), 512),
        app_name=parse_str(os.getenv("APP_NAME"), "Kubernetes Korea"),
        app_version=parse_str(os.getenv("APP_VERSION"), "1.0.0"),
    )


def validate_settings(settings: Settings) -> Settings:
    if settings.enable_api and not settings.api_base_url:
        raise ConfigurationError("ENABLE_API가 true이면 API_BASE_URL이 필요합니다.")

    # 운영 환경에서만 시크릿 검증
    if settings.is_production():
        if not settings.auth_secret or settings.auth_secret == DEVELOPMENT_SECRET:
            raise ConfigurationError("운영 환경에서는 AUTH_SECRET을 반드시 설정해야 합니다.")

    return settings


def is_feature_enabled(feature: str) -> bool:
    return parse_bool(os.getenv(f"FEATURE_{feature.upper()}"), False)


def configure_logging(settings: Settings) -> None:
    logger = logging.getLogger("kubekorea")
    logger.setLevel(settings.get_log_level())
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s [%(name)s] %(message)s"
        ))
        logger.addHandler(handler)

    if settings.is_development():
        logger.debug(
            "환경 설정: env=%s api_base_url=%s enable_api=%s use_local_storage=%s",
            settings.environment,
            settings.api_base_url,
            settings.enable_api,
            settings.use_local_storage,
        )
