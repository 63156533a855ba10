import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from kubekorea.client.utils import build_url
from kubekorea.schemas.response import ApiResponse

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
DEFAULT_RETRIES = 3
DEFAULT_RETRY_DELAY = 1.0

NETWORK_ERROR = "NETWORK_ERROR"
TIMEOUT = "TIMEOUT"
CANCELLED = "CANCELLED"


class ApiError(Exception):
    """HTTP 호출 실패를 나타내는 에러. status 0은 응답을 받지 못한 경우"""

    def __init__(
        self,
        message: str,
        status: Optional[int] = None,
        code: Optional[str] = None,
        response: Any = None,
    ):
        super().__init__(message)
        self.message = message
        self.status = status
        self.code = code
        self.response = response

    @classmethod
    def from_response(cls, response: httpx.Response, data: Any = None) -> "ApiError":
        message = None
        code = None
        if isinstance(data, dict):
            message = data.get("message") or data.get("error")
            code = data.get("code")
        if not message:
            message = f"HTTP {response.status_code}: {response.reason_phrase}"
        return cls(message, response.status_code, code, data)

    @classmethod
    def network(cls, message: str = "Network error occurred") -> "ApiError":
        return cls(message, 0, NETWORK_ERROR)

    @classmethod
    def timeout(cls, message: str = "Request timeout") -> "ApiError":
        return cls(message, 0, TIMEOUT)

    @classmethod
    def cancelled(cls, message: str = "Request cancelled") -> "ApiError":
        return cls(message, 0, CANCELLED)

    def __repr__(self) -> str:
        return f"ApiError(message={self.message!r}, status={self.status!r}, code={self.code!r})"


class ApiClient:
    """
    httpx.AsyncClient 위의 얇은 래퍼.

    - 요청별 타임아웃 (기본 10초)
    - cancel_event(asyncio.Event)로 호출자가 요청을 취소
    - 네트워크 오류, 타임아웃, 5xx 응답은 retries 횟수만큼 추가 재시도 (선형 백오프)
    - 응답은 항상 ApiResponse로 반환
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        retries: int = DEFAULT_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.retries = retries
        self.retry_delay = retry_delay
        self.headers: Dict[str, str] = {"Content-Type": "application/json"}
        if headers:
            self.headers.update(headers)
        self._client = httpx.AsyncClient(transport=transport)

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "ApiClient":
        return cls(
            base_url=settings.api_base_url,
            timeout=settings.api_timeout,
            retries=settings.api_retries,
            retry_delay=settings.api_retry_delay,
            headers={"X-Client-Version": settings.app_version},
            transport=transport,
        )

    def _should_retry(self, error: ApiError, attempt: int) -> bool:
        if attempt > self.retries:
            return False
        if error.code == CANCELLED:
            return False
        return (
            error.code in (NETWORK_ERROR, TIMEOUT)
            or (error.status is not None and error.status >= 500)
        )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    @staticmethod
    async def _wait_cancellable(send, cancel_event: asyncio.Event) -> httpx.Response:
        request_task = asyncio.ensure_future(send)
        cancel_task = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {request_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
            )
            if request_task in done:
                return request_task.result()
            raise ApiError.cancelled()
        finally:
            for task in (request_task, cancel_task):
                if not task.done():
                    task.cancel()

    async def _execute(
        self,
        method: str,
        url: str,
        body: Any,
        headers: Optional[Dict[str, str]],
        timeout: float,
        cancel_event: Optional[asyncio.Event],
    ) -> ApiResponse:
        if cancel_event is not None and cancel_event.is_set():
            raise ApiError.cancelled()

        merged_headers = {**self.headers, **(headers or {})}
        send = asyncio.wait_for(
            self._client.request(
                method,
                url,
                headers=merged_headers,
                json=body,
                timeout=timeout,
            ),
            timeout,
        )

        try:
            if cancel_event is None:
                response = await send
            else:
                response = await self._wait_cancellable(send, cancel_event)
        except ApiError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise ApiError.timeout() from e
        except httpx.TransportError as e:
            raise ApiError.network(str(e) or "Network error occurred") from e
        except httpx.HTTPError as e:
            raise ApiError(str(e)) from e

        data = self._decode(response)

        if not response.is_success:
            raise ApiError.from_response(response, data)

        # 서버가 ApiResponse 형태로 응답한 경우 그대로 사용
        if isinstance(data, dict) and "success" in data:
            return ApiResponse.model_validate(data)

        return ApiResponse(success=True, data=data)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        params: Optional[Dict[str, Any]] = None,
        body: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Optional[float] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ApiResponse:
        url = build_url(self.base_url, endpoint, params)
        request_timeout = timeout or self.timeout
        attempt = 1

        while True:
            try:
                return await self._execute(method, url, body, headers, request_timeout, cancel_event)
            except ApiError as error:
                if not self._should_retry(error, attempt):
                    raise
                logger.debug(
                    "요청 재시도 %d/%d: %s %s (%s)",
                    attempt, self.retries, method, url, error.message,
                )
                await asyncio.sleep(self.retry_delay * attempt)
                attempt += 1

    async def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None, **kwargs) -> ApiResponse:
        return await self.request(endpoint, method="GET", params=params, **kwargs)

    async def post(self, endpoint: str, body: Any = None, **kwargs) -> ApiResponse:
        return await self.request(endpoint, method="POST", body=body, **kwargs)

    async def put(self, endpoint: str, body: Any = None, **kwargs) -> ApiResponse:
        return await self.request(endpoint, method="PUT", body=body, **kwargs)

    async def patch(self, endpoint: str, body: Any = None, **kwargs) -> ApiResponse:
        return await self.request(endpoint, method="PATCH", body=body, **kwargs)

    async def delete(self, endpoint: str, **kwargs) -> ApiResponse:
        return await self.request(endpoint, method="DELETE", **kwargs)

    # 인증 토큰 설정
    def set_auth_token(self, token: str) -> None:
        self.headers["Authorization"] = f"Bearer {token}"

    # 인증 토큰 제거
    def remove_auth_token(self) -> None:
        self.headers.pop("Authorization", None)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
