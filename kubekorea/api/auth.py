import time
from typing import Any, Dict, Optional

import jwt

from kubekorea.common.exceptions import AuthenticationRequiredError
from kubekorea.common.messages import ERROR_MESSAGES
from kubekorea.core.config import Settings
from kubekorea.schemas.user import User

ALGORITHM = "HS256"


def create_session_token(user: User, access_token: Optional[str], settings: Settings) -> str:
    """
    세션 JWT 토큰 생성 (auth_token_ttl 초 동안 유효)
    GitHub access token과 사용자명을 claim으로 담는다.
    """
    now = int(time.time())
    payload = {
        "sub": user.id,
        "accessToken": access_token,
        "githubUsername": user.github_username,
        "name": user.name,
        "email": user.email,
        "image": user.image,
        "iat": now,
        "exp": now + settings.auth_token_ttl,
    }
    return jwt.encode(payload, settings.auth_secret, algorithm=ALGORITHM)


def decode_session_token(token: str, settings: Settings) -> Dict[str, Any]:
    try:
        return jwt.decode(token, settings.auth_secret, algorithms=[ALGORITHM])
    except jwt.PyJWTError as e:
        raise AuthenticationRequiredError(message=ERROR_MESSAGES["INVALID_TOKEN"]) from e


def user_from_claims(claims: Dict[str, Any]) -> User:
    return User(
        id=claims["sub"],
        email=claims.get("email") or "",
        name=claims.get("name") or "",
        image=claims.get("image"),
        github_username=claims.get("githubUsername"),
    )


def parse_bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()
