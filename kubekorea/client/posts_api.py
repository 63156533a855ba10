from typing import Any, Dict, List, Optional

from kubekorea.client.api_client import ApiClient
from kubekorea.common.constants import API_POSTS, API_SEARCH, API_USERS


class PostsApi:
    """게시글/댓글 REST 엔드포인트 래퍼. ApiResponse의 data만 반환합니다."""

    def __init__(self, client: ApiClient):
        self.client = client

    async def get_posts(self, options: Optional[Dict[str, Any]] = None) -> Any:
        options = options or {}
        params = {
            "page": options.get("page", 1),
            "limit": options.get("limit", 10),
            "category": options.get("category"),
            "author": options.get("author"),
            "sortBy": options.get("sort_by"),
            "sortOrder": options.get("sort_order"),
            "search": options.get("search") or None,
            "tags": options.get("tags") or None,
        }
        response = await self.client.get(API_POSTS, params)
        return response.data

    async def get_post(self, post_id: str) -> Any:
        response = await self.client.get(f"{API_POSTS}/{post_id}")
        return response.data

    async def create_post(self, post_data: Dict[str, Any]) -> Any:
        response = await self.client.post(API_POSTS, post_data)
        return response.data

    async def update_post(self, post_id: str, updates: Dict[str, Any]) -> Any:
        response = await self.client.patch(f"{API_POSTS}/{post_id}", updates)
        return response.data

    async def delete_post(self, post_id: str) -> None:
        await self.client.delete(f"{API_POSTS}/{post_id}")

    async def toggle_like(self, post_id: str) -> Any:
        response = await self.client.post(f"{API_POSTS}/{post_id}/like")
        return response.data

    async def toggle_pin(self, post_id: str) -> Any:
        response = await self.client.post(f"{API_POSTS}/{post_id}/pin")
        return response.data

    async def get_posts_by_user(self, user_id: str, options: Optional[Dict[str, Any]] = None) -> Any:
        options = options or {}
        params = {
            "page": options.get("page", 1),
            "limit": options.get("limit", 10),
            "sortBy": options.get("sort_by"),
            "sortOrder": options.get("sort_order"),
        }
        response = await self.client.get(f"{API_USERS}/{user_id}/posts", params)
        return response.data

    async def search_posts(self, query: str, options: Optional[Dict[str, Any]] = None) -> Any:
        options = options or {}
        params = {
            "q": query,
            "page": options.get("page", 1),
            "limit": options.get("limit", 10),
            "category": options.get("category"),
            "sortBy": options.get("sort_by"),
            "sortOrder": options.get("sort_order"),
            "tags": options.get("tags") or None,
            "author": options.get("author"),
        }
        response = await self.client.get(f"{API_SEARCH}/posts", params)
        return response.data

    # 댓글
    async def get_comments(self, post_id: str) -> List[Any]:
        response = await self.client.get(f"{API_POSTS}/{post_id}/comments")
        return response.data or []

    async def create_comment(self, post_id: str, comment_data: Dict[str, Any]) -> Any:
        response = await self.client.post(f"{API_POSTS}/{post_id}/comments", comment_data)
        return response.data

    async def update_comment(self, post_id: str, comment_id: str, content: str) -> Any:
        response = await self.client.patch(
            f"{API_POSTS}/{post_id}/comments/{comment_id}",
            {"content": content},
        )
        return response.data

    async def delete_comment(self, post_id: str, comment_id: str) -> None:
        await self.client.delete(f"{API_POSTS}/{post_id}/comments/{comment_id}")
