import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from kubekorea.api import endpoints
from kubekorea.client.error_handler import classify_error
from kubekorea.client.github_client import GitHubOAuthError
from kubekorea.common.exceptions import (
    AuthenticationRequiredError,
    CommunityError,
    DataServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from kubekorea.core.context import AppContext, create_context

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (AuthenticationRequiredError, 401),
    (PermissionDeniedError, 403),
    (NotFoundError, 404),
    (DataServiceError, 503),
)


def _status_for(exc: Exception) -> int:
    for error_class, status in STATUS_BY_ERROR:
        if isinstance(exc, error_class):
            return status
    return 500


async def community_error_handler(request: Request, exc: CommunityError) -> JSONResponse:
    status = _status_for(exc)
    if status >= 500:
        logger.error("요청 처리 실패 %s %s: %s", request.method, request.url.path, exc)

    body = {"success": False, "error": classify_error(exc).value, "message": str(exc)}
    if isinstance(exc, ValidationError):
        body["errors"] = exc.messages
    return JSONResponse(status_code=status, content=body)


async def github_oauth_error_handler(request: Request, exc: GitHubOAuthError) -> JSONResponse:
    logger.warning("GitHub OAuth 실패: %s", exc)
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "AUTHENTICATION", "message": str(exc)},
    )


def create_app(
    context: Optional[AppContext] = None,
    github_transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    FastAPI 앱 생성. context가 없으면 lifespan에서 환경 설정으로 만든다.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = getattr(app.state, "context", None) is None
        if owned:
            app.state.context = create_context()
        try:
            yield
        finally:
            if owned:
                await app.state.context.aclose()
                app.state.context = None

    app = FastAPI(title="Kubernetes Korea API", lifespan=lifespan)
    app.state.context = context
    app.state.github_transport = github_transport

    app.add_exception_handler(CommunityError, community_error_handler)
    app.add_exception_handler(GitHubOAuthError, github_oauth_error_handler)
    app.include_router(endpoints.router)
    return app


app = create_app()
