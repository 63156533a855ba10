import logging
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

from kubekorea.client.error_handler import EnhancedError, ErrorContext, ErrorHandler
from kubekorea.common.cache import TTLCache
from kubekorea.schemas.response import PageInfo, PaginatedResponse

logger = logging.getLogger(__name__)

T = TypeVar("T")
V = TypeVar("V")


def _to_enhanced(error_handler: ErrorHandler, error: Exception, context: ErrorContext) -> EnhancedError:
    if isinstance(error, EnhancedError):
        return error
    return error_handler.enhance(error, context)


class ApiData(Generic[T]):
    """
    비동기 로더 결과를 data/loading/error 상태로 들고 있는 객체.
    cache_key가 있으면 캐시를 먼저 보고, 없으면 with_retry로 로드한다.
    로드 실패는 예외 대신 error에 EnhancedError로 남는다.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[Any]],
        error_handler: ErrorHandler,
        cache: Optional[TTLCache] = None,
        cache_key: Optional[str] = None,
        cache_ttl: Optional[float] = None,
        retry: bool = True,
        max_retries: int = 3,
        transform: Optional[Callable[[Any], T]] = None,
    ):
        self._loader = loader
        self._error_handler = error_handler
        self._cache = cache
        self._cache_key = cache_key
        self._cache_ttl = cache_ttl
        self._max_retries = max_retries if retry else 0
        self._transform = transform

        self.data: Optional[T] = None
        self.loading = False
        self.error: Optional[EnhancedError] = None

    def _apply(self, raw: Any) -> T:
        return self._transform(raw) if self._transform else raw

    async def load(self) -> Optional[T]:
        if self._cache is not None and self._cache_key:
            cached = self._cache.get(self._cache_key)
            if cached is not None:
                self.data = self._apply(cached)
                return self.data
        return await self.refresh()

    async def refresh(self) -> Optional[T]:
        self.loading = True
        self.error = None
        context = ErrorContext(operation="api_data_load")

        try:
            result = await self._error_handler.with_retry(self._loader, context, self._max_retries)
            self.data = self._apply(result)
            if self._cache is not None and self._cache_key:
                self._cache.set(self._cache_key, result, self._cache_ttl)
        except Exception as e:
            self.error = _to_enhanced(self._error_handler, e, context)
            logger.warning("데이터 로드 실패: %s", self.error.user_message)
        finally:
            self.loading = False

        return self.data

    def mutate(self, value: Optional[T]) -> None:
        """낙관적 업데이트용으로 data를 직접 바꾼다"""
        self.data = value
        if value is not None and self._cache is not None and self._cache_key:
            self._cache.set(self._cache_key, value, self._cache_ttl)


class PaginatedApiData(Generic[T]):
    """
    loader(page, limit)로 한 페이지씩 불러오는 ApiData.
    캐시 키는 <cache_key>_<page>_<limit> 형태로 페이지마다 따로 둔다.
    """

    def __init__(
        self,
        loader: Callable[[int, int], Awaitable[Any]],
        error_handler: ErrorHandler,
        cache: Optional[TTLCache] = None,
        cache_key: Optional[str] = None,
        cache_ttl: Optional[float] = None,
        retry: bool = True,
        max_retries: int = 3,
        transform: Optional[Callable[[Any], T]] = None,
        initial_page: int = 1,
        initial_limit: int = 10,
    ):
        self._loader = loader
        self._error_handler = error_handler
        self._cache = cache
        self._cache_key = cache_key
        self._cache_ttl = cache_ttl
        self._max_retries = max_retries if retry else 0
        self._transform = transform

        self.page = initial_page
        self.limit = initial_limit
        self.data: List[T] = []
        self.pagination: Optional[PageInfo] = None
        self.loading = False
        self.error: Optional[EnhancedError] = None

    @property
    def page_cache_key(self) -> Optional[str]:
        if not self._cache_key:
            return None
        return f"{self._cache_key}_{self.page}_{self.limit}"

    def _apply(self, result: Any) -> None:
        if isinstance(result, PaginatedResponse):
            items, pagination = list(result.data), result.pagination
        else:
            items, pagination = list(result or []), None
        if self._transform:
            items = [self._transform(item) for item in items]
        self.data = items
        self.pagination = pagination

    async def load(self) -> List[T]:
        key = self.page_cache_key
        if self._cache is not None and key:
            cached = self._cache.get(key)
            if cached is not None:
                self._apply(cached)
                return self.data
        return await self.refresh()

    async def refresh(self) -> List[T]:
        self.loading = True
        self.error = None
        page, limit = self.page, self.limit
        context = ErrorContext(operation="api_paginated_data_load", data={"page": page, "limit": limit})

        try:
            result = await self._error_handler.with_retry(
                lambda: self._loader(page, limit), context, self._max_retries
            )
            self._apply(result)
            key = self.page_cache_key
            if self._cache is not None and key:
                self._cache.set(key, result, self._cache_ttl)
        except Exception as e:
            self.error = _to_enhanced(self._error_handler, e, context)
            logger.warning("페이지 데이터 로드 실패: %s", self.error.user_message)
        finally:
            self.loading = False

        return self.data

    async def set_page(self, page: int) -> List[T]:
        self.page = page
        return await self.load()

    async def set_limit(self, limit: int) -> List[T]:
        # 페이지 크기를 바꾸면 첫 페이지로
        self.limit = limit
        self.page = 1
        return await self.load()


class ApiMutation(Generic[V, T]):
    """
    생성/수정/삭제 요청 래퍼. 성공하면 지정한 캐시 키와 패턴을 무효화한다.
    실패하면 EnhancedError를 error에 남기고 다시 발생시킨다.
    """

    def __init__(
        self,
        mutation: Callable[[V], Awaitable[T]],
        error_handler: ErrorHandler,
        cache: Optional[TTLCache] = None,
        on_success: Optional[Callable[[T, V], None]] = None,
        on_error: Optional[Callable[[EnhancedError, V], None]] = None,
        on_settled: Optional[Callable[[Optional[T], Optional[EnhancedError], V], None]] = None,
        optimistic_update: Optional[Callable[[V], None]] = None,
        invalidate_keys: Optional[List[str]] = None,
        invalidate_patterns: Optional[List[str]] = None,
    ):
        self._mutation = mutation
        self._error_handler = error_handler
        self._cache = cache
        self._on_success = on_success
        self._on_error = on_error
        self._on_settled = on_settled
        self._optimistic_update = optimistic_update
        self._invalidate_keys = list(invalidate_keys or [])
        self._invalidate_patterns = list(invalidate_patterns or [])

        self.data: Optional[T] = None
        self.loading = False
        self.error: Optional[EnhancedError] = None

    async def mutate(self, variables: V) -> T:
        self.loading = True
        self.error = None

        if self._optimistic_update:
            self._optimistic_update(variables)

        try:
            result = await self._mutation(variables)
        except Exception as e:
            self.error = _to_enhanced(
                self._error_handler, e, ErrorContext(operation="api_mutation", data=variables)
            )
            if self._on_error:
                self._on_error(self.error, variables)
            if self._on_settled:
                self._on_settled(None, self.error, variables)
            if self.error is e:
                raise
            raise self.error from e
        finally:
            self.loading = False

        self.data = result
        if self._cache is not None:
            for key in self._invalidate_keys:
                self._cache.invalidate(key)
            for pattern in self._invalidate_patterns:
                self._cache.invalidate_pattern(pattern)

        if self._on_success:
            self._on_success(result, variables)
        if self._on_settled:
            self._on_settled(result, None, variables)
        return result

    def reset(self) -> None:
        self.data = None
        self.error = None
        self.loading = False
