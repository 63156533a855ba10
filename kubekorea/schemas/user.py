from typing import List, Optional

from kubekorea.schemas.base import CamelModel


class User(CamelModel):
    id: str
    email: str = ""
    name: str = ""
    image: Optional[str] = None
    github_username: Optional[str] = None
    bio: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class FollowRelation(CamelModel):
    user_id: str
    followers: List[str] = []
    following: List[str] = []


class UserStats(CamelModel):
    total_posts: int = 0
    total_comments: int = 0
    total_likes: int = 0
    total_followers: int = 0
    total_following: int = 0


class UpdateUserForm(CamelModel):
    name: Optional[str] = None
    bio: Optional[str] = None
    image: Optional[str] = None


class UsersQuery(CamelModel):
    page: Optional[int] = None
    limit: Optional[int] = None
    search: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
