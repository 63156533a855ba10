import logging
from dataclasses import dataclass
from typing import Optional

import httpx
from sqlalchemy.orm import sessionmaker

from kubekorea.client.api_client import ApiClient
from kubekorea.client.auth_api import AuthApi
from kubekorea.client.error_handler import ErrorHandler
from kubekorea.client.posts_api import PostsApi
from kubekorea.client.users_api import UsersApi
from kubekorea.common.cache import TTLCache
from kubekorea.core.config import Settings, configure_logging, load_settings, validate_settings
from kubekorea.rdb.client import create_session_factory
from kubekorea.services.data_service import HybridDataService
from kubekorea.services.data_source import FallbackPolicy
from kubekorea.services.local_store import LocalStore

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """
    애플리케이션 시작 시 한 번 만들어 필요한 곳에 전달하는 객체 묶음.
    테스트에서는 서로 격리된 컨텍스트를 여러 개 만들 수 있다.
    """
    settings: Settings
    cache: TTLCache
    store: LocalStore
    api_client: ApiClient
    error_handler: ErrorHandler
    posts_api: PostsApi
    users_api: UsersApi
    auth_api: AuthApi
    data_service: HybridDataService

    async def aclose(self) -> None:
        await self.api_client.aclose()


def create_context(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    cache: Optional[TTLCache] = None,
) -> AppContext:
    settings = validate_settings(settings or load_settings())
    configure_logging(settings)

    cache = cache or TTLCache(default_ttl=settings.cache_ttl, max_entries=settings.cache_max_entries)
    store = LocalStore(session_factory or create_session_factory(settings.database_url))
    store.migrate_legacy_follow_keys()

    api_client = ApiClient.from_settings(settings, transport=transport)
    error_handler = ErrorHandler.from_settings(settings)
    posts_api = PostsApi(api_client)
    users_api = UsersApi(api_client)
    auth_api = AuthApi(api_client)

    data_service = HybridDataService(
        store=store,
        cache=cache,
        policy=FallbackPolicy.from_settings(settings),
        posts_api=posts_api,
        users_api=users_api,
        auth_api=auth_api,
        error_handler=error_handler,
        admin_emails=settings.admin_emails,
    )

    logger.debug("컨텍스트 생성 완료: env=%s", settings.environment)

    return AppContext(
        settings=settings,
        cache=cache,
        store=store,
        api_client=api_client,
        error_handler=error_handler,
        posts_api=posts_api,
        users_api=users_api,
        auth_api=auth_api,
        data_service=data_service,
    )
