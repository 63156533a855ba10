from typing import Any, Optional

from kubekorea.client.api_client import ApiClient
from kubekorea.common.constants import API_AUTH


class AuthApi:
    """세션/OAuth REST 엔드포인트 래퍼"""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_current_user(self) -> Any:
        response = await self.client.get(f"{API_AUTH}/me")
        return response.data

    async def logout(self) -> None:
        await self.client.post(f"{API_AUTH}/logout")
        self.client.remove_auth_token()

    async def get_github_auth_url(self, state: Optional[str] = None) -> Optional[str]:
        response = await self.client.get(f"{API_AUTH}/oauth/github/url", {"state": state})
        data = response.data or {}
        return data.get("url")

    async def handle_github_callback(self, code: str, state: Optional[str] = None) -> Any:
        """
        OAuth 콜백을 처리하고 발급된 세션 토큰을 클라이언트에 설정합니다.
        """
        response = await self.client.get(
            f"{API_AUTH}/callback/github", {"code": code, "state": state}
        )
        session = response.data or {}
        if session.get("token"):
            self.client.set_auth_token(session["token"])
        return session

    async def delete_account(self) -> None:
        await self.client.delete(f"{API_AUTH}/account")
        self.client.remove_auth_token()
