import asyncio
import inspect
import logging
from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, List, Optional, TypeVar

import httpx
from pydantic import ValidationError as PydanticValidationError

from kubekorea.client.api_client import CANCELLED, NETWORK_ERROR, TIMEOUT, ApiError
from kubekorea.common.exceptions import (
    AuthenticationRequiredError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from kubekorea.common.messages import ERROR_TYPE_MESSAGES
from kubekorea.common.utils import now_iso

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


class ErrorType(str, Enum):
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    CANCELLED = "CANCELLED"
    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"
    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    RATE_LIMIT = "RATE_LIMIT"
    SERVER_ERROR = "SERVER_ERROR"
    UNKNOWN = "UNKNOWN"


RETRYABLE_TYPES = (
    ErrorType.NETWORK,
    ErrorType.TIMEOUT,
    ErrorType.SERVER_ERROR,
    ErrorType.RATE_LIMIT,
)


@dataclass
class ErrorContext:
    operation: str
    user_id: Optional[str] = None
    data: Any = None
    timestamp: str = field(default_factory=now_iso)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ErrorHandlerConfig:
    enable_logging: bool = False
    enable_retry: bool = True
    max_retries: int = 3
    retry_delay: float = 1.0
    enable_fallback: bool = True
    show_user_friendly_messages: bool = True


@dataclass
class BatchFailure(Generic[T]):
    item: T
    error: Exception


@dataclass
class BatchResult(Generic[T, R]):
    results: List[R] = field(default_factory=list)
    errors: List[BatchFailure] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


class EnhancedError(Exception):
    """분류 결과, 사용자 메시지, 재시도 가능 여부를 함께 담은 에러"""

    def __init__(
        self,
        original_error: BaseException,
        error_type: ErrorType,
        context: ErrorContext,
        can_retry: bool = False,
        user_message: Optional[str] = None,
    ):
        message = str(original_error) or "Unknown error occurred"
        super().__init__(message)
        self.message = message
        self.original_error = original_error
        self.error_type = error_type
        self.context = context
        self.can_retry = can_retry
        self.user_message = user_message or ERROR_TYPE_MESSAGES[error_type.value]

    @classmethod
    def from_api_error(cls, api_error: ApiError, context: ErrorContext) -> "EnhancedError":
        return cls(api_error, classify_error(api_error), context)

    def to_dict(self) -> dict:
        return {
            "name": "EnhancedError",
            "message": self.message,
            "userMessage": self.user_message,
            "errorType": self.error_type.value,
            "context": self.context.to_dict(),
            "canRetry": self.can_retry,
            "timestamp": now_iso(),
        }


def _classify_api_error(error: ApiError) -> ErrorType:
    if error.code == TIMEOUT:
        return ErrorType.TIMEOUT
    if error.code == CANCELLED:
        return ErrorType.CANCELLED
    if error.status == 0 or error.code == NETWORK_ERROR:
        return ErrorType.NETWORK

    status = error.status
    if status == 401:
        return ErrorType.AUTHENTICATION
    if status == 403:
        return ErrorType.AUTHORIZATION
    if status == 404:
        return ErrorType.NOT_FOUND
    if status == 409:
        return ErrorType.CONFLICT
    if status in (400, 422):
        return ErrorType.VALIDATION
    if status == 429:
        return ErrorType.RATE_LIMIT
    if status is not None and status >= 500:
        return ErrorType.SERVER_ERROR
    return ErrorType.UNKNOWN


def classify_error(error: BaseException) -> ErrorType:
    if isinstance(error, EnhancedError):
        return error.error_type
    if isinstance(error, ApiError):
        return _classify_api_error(error)
    if isinstance(error, (ValidationError, PydanticValidationError)):
        return ErrorType.VALIDATION
    if isinstance(error, AuthenticationRequiredError):
        return ErrorType.AUTHENTICATION
    if isinstance(error, PermissionDeniedError):
        return ErrorType.AUTHORIZATION
    if isinstance(error, NotFoundError):
        return ErrorType.NOT_FOUND
    if isinstance(error, asyncio.CancelledError):
        return ErrorType.CANCELLED
    if isinstance(error, (httpx.TimeoutException, asyncio.TimeoutError)):
        return ErrorType.TIMEOUT
    if isinstance(error, (httpx.TransportError, ConnectionError)):
        return ErrorType.NETWORK
    return ErrorType.UNKNOWN


async def _maybe_await(value):
    if inspect.isawaitable(value):
        return await value
    return value


class ErrorHandler:
    """
    에러 분류, 로깅, 재시도, fallback 처리를 담당합니다.
    """

    def __init__(self, config: Optional[ErrorHandlerConfig] = None):
        self.config = config or ErrorHandlerConfig()

    @classmethod
    def from_settings(cls, settings) -> "ErrorHandler":
        return cls(ErrorHandlerConfig(
            enable_logging=settings.is_development(),
            max_retries=settings.api_retries,
            retry_delay=settings.api_retry_delay,
        ))

    def classify_error(self, error: BaseException) -> ErrorType:
        return classify_error(error)

    def is_retryable(self, error_type: ErrorType) -> bool:
        return error_type in RETRYABLE_TYPES

    def get_user_friendly_message(self, error_type: ErrorType, original_message: Optional[str] = None) -> str:
        friendly = ERROR_TYPE_MESSAGES[error_type.value]
        if self.config.show_user_friendly_messages:
            return friendly
        return original_message or friendly

    def enhance(
        self,
        error: BaseException,
        context: ErrorContext,
        error_type: Optional[ErrorType] = None,
        can_retry: bool = False,
    ) -> EnhancedError:
        error_type = error_type or self.classify_error(error)
        return EnhancedError(
            error,
            error_type,
            context,
            can_retry=can_retry,
            user_message=self.get_user_friendly_message(error_type, str(error)),
        )

    def log_error(self, error: BaseException, context: ErrorContext) -> None:
        if not self.config.enable_logging:
            return

        error_type = self.classify_error(error)
        status = getattr(error, "status", None)
        code = getattr(error, "code", None)

        if error_type in (ErrorType.SERVER_ERROR, ErrorType.UNKNOWN):
            logger.error(
                "심각한 오류 [%s] %s: %s (status=%s, code=%s)",
                error_type.value, context.operation, error, status, code,
            )
        else:
            logger.warning(
                "API 오류 [%s] %s: %s (status=%s, code=%s)",
                error_type.value, context.operation, error, status, code,
            )

    async def handle_error(
        self,
        error: BaseException,
        context: ErrorContext,
        fallback: Optional[Callable[[], Any]] = None,
    ) -> Any:
        """
        에러를 분류하고 처리합니다.

        - 재시도 가능한 에러: can_retry=True인 EnhancedError 발생 (재시도는 호출하는 곳에서 처리)
        - fallback이 있으면 fallback 결과 반환, fallback도 실패하면 그 에러로 EnhancedError 발생
        - 그 외: EnhancedError 발생
        """
        error_type = self.classify_error(error)
        self.log_error(error, context)

        if self.config.enable_retry and self.is_retryable(error_type):
            raise self.enhance(error, context, error_type, can_retry=True) from error

        if self.config.enable_fallback and fallback is not None:
            try:
                return await _maybe_await(fallback())
            except Exception as fallback_error:
                self.log_error(fallback_error, replace(context, operation=f"{context.operation}_fallback"))
                raise self.enhance(fallback_error, context) from fallback_error

        raise self.enhance(error, context, error_type) from error

    async def with_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        context: ErrorContext,
        max_retries: Optional[int] = None,
    ) -> T:
        """
        재시도 가능한 에러일 때만 지수 백오프로 재시도합니다.
        총 시도 횟수는 max_retries + 1이며 마지막 에러는 그대로 다시 발생시킵니다.
        """
        retries = self.config.max_retries if max_retries is None else max_retries
        attempt = 1

        while True:
            try:
                return await operation()
            except Exception as error:
                error_type = self.classify_error(error)
                if attempt > retries or not self.is_retryable(error_type):
                    raise

                if self.config.enable_logging:
                    logger.warning("재시도 %d/%d: %s", attempt, retries, context.operation)

                await asyncio.sleep(self.config.retry_delay * (2 ** (attempt - 1)))
                attempt += 1

    async def handle_batch_operation(
        self,
        items: List[T],
        operation: Callable[[T], Awaitable[R]],
        context: ErrorContext,
    ) -> BatchResult:
        """항목별로 실행하고 실패한 항목은 모아서 반환합니다. 중간에 멈추지 않습니다."""
        result: BatchResult = BatchResult()

        for item in items:
            try:
                result.results.append(await operation(item))
            except Exception as error:
                result.errors.append(BatchFailure(item=item, error=error))
                self.log_error(error, replace(
                    context,
                    operation=f"{context.operation}_batch_item",
                    data=item,
                ))

        return result


def service_error_context(service: str, method: str, data: Any = None, user_id: Optional[str] = None) -> ErrorContext:
    return ErrorContext(operation=f"{service}_{method}", user_id=user_id, data=data)
