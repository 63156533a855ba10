from typing import List, Optional

from pydantic import field_validator

from kubekorea.schemas.base import CamelModel
from kubekorea.schemas.user import User


class Comment(CamelModel):
    id: str
    content: str
    author: User
    post_id: Optional[str] = None
    # 대댓글이면 부모 댓글 ID
    parent_id: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None
    likes: List[str] = []
    # 최상위 댓글에만 존재 (1단계 중첩)
    replies: List["Comment"] = []


Comment.model_rebuild()


class Post(CamelModel):
    id: str
    title: str
    content: str
    category: str
    tags: List[str] = []
    author: User
    created_at: str
    updated_at: Optional[str] = None
    likes: List[str] = []
    comments: List[Comment] = []
    status: str = "published"
    pinned: bool = False


class CreatePostForm(CamelModel):
    title: str
    content: str
    category: str
    tags: List[str] = []
    status: str = "published"


class UpdatePostForm(CamelModel):
    title: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    status: Optional[str] = None


class CreateCommentForm(CamelModel):
    content: str
    post_id: str
    parent_id: Optional[str] = None


class UpdateCommentForm(CamelModel):
    content: str


class PostsQuery(CamelModel):
    page: Optional[int] = None
    limit: Optional[int] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    author: Optional[str] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None

    @field_validator("category")
    @classmethod
    def _all_means_no_filter(cls, value: Optional[str]) -> Optional[str]:
        # "all"은 카테고리 필터 없음
        return None if value == "all" else value


class SearchQuery(CamelModel):
    query: str
    category: Optional[str] = None
    tags: Optional[List[str]] = None
    author: Optional[str] = None
    sort_by: str = "createdAt"
    sort_order: str = "desc"

    @field_validator("category")
    @classmethod
    def _all_means_no_filter(cls, value: Optional[str]) -> Optional[str]:
        return None if value == "all" else value


class CommentBody(CamelModel):
    content: str
    parent_id: Optional[str] = None
