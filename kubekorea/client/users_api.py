from typing import Any, Dict, Optional

from kubekorea.client.api_client import ApiClient
from kubekorea.common.constants import API_SEARCH, API_USERS


class UsersApi:
    """사용자/팔로우 REST 엔드포인트 래퍼"""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_users(self, options: Optional[Dict[str, Any]] = None) -> Any:
        options = options or {}
        params = {
            "page": options.get("page"),
            "limit": options.get("limit"),
            "search": options.get("search") or None,
            "sortBy": options.get("sort_by"),
            "sortOrder": options.get("sort_order"),
        }
        response = await self.client.get(API_USERS, params)
        return response.data

    async def get_user(self, user_id: str) -> Any:
        response = await self.client.get(f"{API_USERS}/{user_id}")
        return response.data

    async def get_current_user(self) -> Any:
        response = await self.client.get(f"{API_USERS}/me")
        return response.data

    async def update_user(self, user_id: str, updates: Dict[str, Any]) -> Any:
        response = await self.client.patch(f"{API_USERS}/{user_id}", updates)
        return response.data

    async def update_user_bio(self, user_id: str, bio: str) -> Any:
        response = await self.client.patch(f"{API_USERS}/{user_id}", {"bio": bio})
        return response.data

    async def search_users(self, query: str, options: Optional[Dict[str, Any]] = None) -> Any:
        options = options or {}
        params = {
            "q": query,
            "page": options.get("page"),
            "limit": options.get("limit"),
            "sortBy": options.get("sort_by"),
            "sortOrder": options.get("sort_order"),
        }
        response = await self.client.get(f"{API_SEARCH}/users", params)
        return response.data

    async def get_user_stats(self, user_id: str) -> Any:
        response = await self.client.get(f"{API_USERS}/{user_id}/stats")
        return response.data

    # 팔로우
    async def get_follow_relation(self, user_id: str) -> Any:
        response = await self.client.get(f"{API_USERS}/{user_id}/follow")
        return response.data

    async def follow_user(self, target_user_id: str) -> Any:
        response = await self.client.post(f"{API_USERS}/{target_user_id}/follow")
        return response.data

    async def unfollow_user(self, target_user_id: str) -> Any:
        response = await self.client.delete(f"{API_USERS}/{target_user_id}/follow")
        return response.data

    async def get_followers(self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> Any:
        response = await self.client.get(
            f"{API_USERS}/{user_id}/followers", {"page": page, "limit": limit}
        )
        return response.data

    async def get_following(self, user_id: str, page: Optional[int] = None, limit: Optional[int] = None) -> Any:
        response = await self.client.get(
            f"{API_USERS}/{user_id}/following", {"page": page, "limit": limit}
        )
        return response.data

    async def check_follow_status(self, user_id: str, target_user_id: str) -> bool:
        relation = await self.get_follow_relation(user_id) or {}
        return target_user_id in relation.get("following", [])
