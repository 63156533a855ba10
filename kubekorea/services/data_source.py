import inspect
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from kubekorea.client.error_handler import ErrorContext, ErrorHandler
from kubekorea.common.exceptions import DataServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DataSource(ABC, Generic[T]):
    """
    하나의 도메인 작업을 원격(API)과 로컬 저장소 두 경로로 수행하는 전략.
    """

    operation: str = "operation"
    error_message: str = "Operation failed"

    @abstractmethod
    async def try_remote(self) -> T:
        ...

    @abstractmethod
    async def try_local(self) -> T:
        ...


class CallableDataSource(DataSource[T]):
    """원격/로컬 호출을 함수 두 개로 받는 DataSource. 로컬 함수는 동기 함수여도 된다."""

    def __init__(
        self,
        operation: str,
        remote: Callable[[], Any],
        local: Callable[[], Any],
        error_message: Optional[str] = None,
    ):
        self.operation = operation
        self._remote = remote
        self._local = local
        self.error_message = error_message or f"Failed to {operation.replace('_', ' ')}"

    @staticmethod
    async def _call(fn: Callable[[], Any]) -> Any:
        result = fn()
        if inspect.isawaitable(result):
            result = await result
        return result

    async def try_remote(self) -> T:
        return await self._call(self._remote)

    async def try_local(self) -> T:
        return await self._call(self._local)


@dataclass
class FallbackPolicy:
    use_api: bool = False
    fallback_to_local: bool = True

    @classmethod
    def from_settings(cls, settings) -> "FallbackPolicy":
        return cls(use_api=settings.enable_api, fallback_to_local=settings.use_local_storage)


async def resolve(
    source: DataSource[T],
    policy: FallbackPolicy,
    error_handler: Optional[ErrorHandler] = None,
) -> T:
    """
    정책에 따라 원격 경로를 먼저 시도하고 실패하면 로컬 경로로 대체합니다.

    - use_api가 False면 로컬만 사용
    - 원격 실패 + fallback 허용: 로컬 결과 반환, 로컬도 실패하면 DataServiceError
    - 원격 실패 + fallback 불가: 원격 에러를 그대로 발생
    두 경로 사이의 원자성은 보장하지 않는다.
    """
    if not policy.use_api:
        return await source.try_local()

    try:
        return await source.try_remote()
    except Exception as remote_error:
        if error_handler is not None:
            error_handler.log_error(remote_error, ErrorContext(operation=source.operation))
        logger.debug(
            "API 호출 실패 (%s), %s",
            source.operation,
            "로컬 저장소로 대체" if policy.fallback_to_local else "에러 전달",
        )

        if not policy.fallback_to_local:
            raise

        try:
            return await source.try_local()
        except Exception as local_error:
            if error_handler is not None:
                error_handler.log_error(local_error, ErrorContext(operation=f"{source.operation}_fallback"))
            raise DataServiceError(
                f"{source.error_message}: Both API and localStorage failed"
            ) from local_error
