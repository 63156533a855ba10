from typing import Optional

from fastapi import Depends, Header, Request

from kubekorea.api.auth import decode_session_token, parse_bearer, user_from_claims
from kubekorea.common.exceptions import AuthenticationRequiredError
from kubekorea.core.context import AppContext
from kubekorea.schemas.user import User
from kubekorea.services.data_service import HybridDataService


def get_context(request: Request) -> AppContext:
    return request.app.state.context


def get_optional_user(
    authorization: Optional[str] = Header(default=None),
    context: AppContext = Depends(get_context),
) -> Optional[User]:
    token = parse_bearer(authorization)
    if token is None:
        return None

    claims = decode_session_token(token, context.settings)
    # 저장된 프로필이 있으면 최신 정보 사용
    return context.store.get_user(claims["sub"]) or user_from_claims(claims)


def get_current_user(user: Optional[User] = Depends(get_optional_user)) -> User:
    if user is None:
        raise AuthenticationRequiredError("이 작업")
    return user


def get_service(
    user: Optional[User] = Depends(get_optional_user),
    context: AppContext = Depends(get_context),
) -> HybridDataService:
    # 서버는 자기 자신을 호출하지 않도록 로컬 저장소만 사용
    return context.data_service.for_user(user, local_only=True)
