import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from kubekorea.schemas.user import User

logger = logging.getLogger(__name__)

BASE_URL = "https://api.github.com"
OAUTH_URL = "https://github.com/login/oauth"
OAUTH_SCOPE = "read:user user:email"


class GitHubOAuthError(Exception):
    pass


def get_headers(access_token: str):
    return {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/vnd.github+json"
    }


def build_authorize_url(client_id: str, redirect_uri: Optional[str] = None, state: Optional[str] = None) -> str:
    """
    GitHub OAuth 인증 페이지 URL 생성
    """
    params = {"client_id": client_id, "scope": OAUTH_SCOPE}
    if redirect_uri:
        params["redirect_uri"] = redirect_uri
    if state:
        params["state"] = state
    return f"{OAUTH_URL}/authorize?{urlencode(params)}"


async def exchange_code_for_token(
    code: str,
    client_id: str,
    client_secret: str,
    client: httpx.AsyncClient,
) -> str:
    """
    OAuth 콜백의 code를 access token으로 교환합니다.
    """
    res = await client.post(
        f"{OAUTH_URL}/access_token",
        data={"client_id": client_id, "client_secret": client_secret, "code": code},
        headers={"Accept": "application/json"},
    )
    res.raise_for_status()

    data = res.json()
    access_token = data.get("access_token")
    if not access_token:
        raise GitHubOAuthError(data.get("error_description") or data.get("error") or "access token 발급 실패")

    logger.debug("GitHub access token 발급 완료")
    return access_token


async def fetch_user_email(access_token: str, client: httpx.AsyncClient) -> Optional[str]:
    """
    사용자의 primary 이메일을 조회합니다. 없을 경우 None을 반환합니다.
    """
    try:
        res = await client.get(f"{BASE_URL}/user/emails", headers=get_headers(access_token))
        res.raise_for_status()
    except httpx.HTTPStatusError as e:
        logger.warning("GitHub 이메일 조회 실패: %s", e.response.status_code)
        return None

    emails = res.json()
    for entry in emails:
        if entry.get("primary"):
            return entry.get("email")
    return emails[0].get("email") if emails else None


async def fetch_user_profile(access_token: str, client: httpx.AsyncClient) -> User:
    """
    GitHub 사용자 정보를 조회해 커뮤니티 User로 변환합니다.
    공개 이메일이 없으면 /user/emails에서 primary 이메일을 찾습니다.
    """
    res = await client.get(f"{BASE_URL}/user", headers=get_headers(access_token))
    res.raise_for_status()
    profile = res.json()

    email = profile.get("email") or await fetch_user_email(access_token, client) or ""

    return User(
        id=f"github-{profile['id']}",
        email=email,
        name=profile.get("name") or profile.get("login") or "",
        image=profile.get("avatar_url"),
        github_username=profile.get("login"),
        bio=profile.get("bio"),
    )
