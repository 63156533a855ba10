import math
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar, Union

from kubekorea.common.utils import parse_iso
from kubekorea.schemas.post import Comment, CreateCommentForm, CreatePostForm, Post, UpdatePostForm
from kubekorea.schemas.response import PageInfo, PaginatedResponse
from kubekorea.schemas.user import FollowRelation, UpdateUserForm, User, UserStats

T = TypeVar("T")


def _first(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return default


def normalize_date(value: Union[str, datetime, None]) -> Optional[str]:
    """날짜를 UTC ISO 8601 문자열(밀리초, Z 접미사)로 정규화"""
    if value is None or value == "":
        return None
    parsed = value if isinstance(value, datetime) else parse_iso(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m-%dT%H:%M:%S.") + f"{parsed.microsecond // 1000:03d}Z"


def normalize_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return list(value) if isinstance(value, (list, tuple)) else [value]


def user_from_api(data: Dict[str, Any]) -> User:
    data = data or {}
    return User(
        id=str(_first(data, "id", "_id", "email", default="")),
        email=_first(data, "email", default=""),
        name=_first(data, "name", "displayName", default=""),
        image=_first(data, "image", "avatar", "profileImage"),
        github_username=_first(data, "githubUsername", "github_username"),
        bio=_first(data, "bio", "description"),
        created_at=normalize_date(_first(data, "createdAt", "created_at", "joinedAt")),
        updated_at=normalize_date(_first(data, "updatedAt", "updated_at")),
    )


def comment_from_api(data: Dict[str, Any]) -> Comment:
    return Comment(
        id=str(_first(data, "id", "_id")),
        content=_first(data, "content", default=""),
        author=user_from_api(_first(data, "author", "user", default={})),
        post_id=_first(data, "postId", "post_id", "post"),
        parent_id=_first(data, "parentId", "parent_id", "parent"),
        created_at=normalize_date(_first(data, "createdAt", "created_at")) or "",
        updated_at=normalize_date(_first(data, "updatedAt", "updated_at")),
        likes=normalize_list(_first(data, "likes", "likedBy")),
        replies=[comment_from_api(reply) for reply in data.get("replies") or []],
    )


def post_from_api(data: Dict[str, Any]) -> Post:
    return Post(
        id=str(_first(data, "id", "_id")),
        title=_first(data, "title", default=""),
        content=_first(data, "content", default=""),
        category=_first(data, "category", default="discussion"),
        tags=normalize_list(data.get("tags")),
        author=user_from_api(_first(data, "author", "user", default={})),
        created_at=normalize_date(_first(data, "createdAt", "created_at")) or "",
        updated_at=normalize_date(_first(data, "updatedAt", "updated_at")),
        likes=normalize_list(_first(data, "likes", "likedBy")),
        comments=[comment_from_api(comment) for comment in data.get("comments") or []],
        status=_first(data, "status", default="published"),
        pinned=bool(data.get("pinned", False)),
    )


def stats_from_api(data: Dict[str, Any]) -> UserStats:
    data = data or {}
    return UserStats(
        total_posts=_first(data, "totalPosts", "postsCount", "posts", default=0),
        total_comments=_first(data, "totalComments", "commentsCount", "comments", default=0),
        total_likes=_first(data, "totalLikes", "likesCount", "likes", default=0),
        total_followers=_first(data, "totalFollowers", "followersCount", "followers", default=0),
        total_following=_first(data, "totalFollowing", "followingCount", "following", default=0),
    )


def follow_from_api(data: Dict[str, Any], user_id: Optional[str] = None) -> FollowRelation:
    data = data or {}
    return FollowRelation(
        user_id=str(_first(data, "userId", "user_id", "user", default=user_id or "")),
        followers=normalize_list(data.get("followers")),
        following=normalize_list(data.get("following")),
    )


def paginated_from_api(data: Any, item_transformer: Callable[[Dict[str, Any]], T]) -> PaginatedResponse:
    """
    서버마다 다른 페이지네이션 응답 형태를 PaginatedResponse로 맞춘다.
    data/items/results, pagination/meta, currentPage/pageSize/perPage 등을 허용한다.
    """
    if isinstance(data, list):
        items = data
        meta: Dict[str, Any] = {}
    else:
        data = data or {}
        items = _first(data, "data", "items", "results", default=[])
        meta = _first(data, "pagination", "meta", default={})

    page = _first(meta, "page", "currentPage", default=1)
    limit = _first(meta, "limit", "pageSize", "perPage", default=max(len(items), 1))
    total = _first(meta, "total", "totalCount", default=len(items))
    total_pages = _first(meta, "totalPages", "pageCount", default=math.ceil(total / limit) if limit else 1)

    return PaginatedResponse(
        data=[item_transformer(item) for item in items],
        pagination=PageInfo(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=_first(meta, "hasNext", "hasNextPage", default=page < total_pages),
            has_prev=_first(meta, "hasPrev", "hasPrevPage", default=page > 1),
        ),
    )


def post_create_to_api(form: CreatePostForm) -> Dict[str, Any]:
    return {
        "title": form.title,
        "content": form.content,
        "category": form.category,
        "tags": form.tags,
        "status": form.status,
    }


def post_update_to_api(form: UpdatePostForm) -> Dict[str, Any]:
    return form.to_json_dict()


def comment_create_to_api(form: CreateCommentForm) -> Dict[str, Any]:
    return form.to_json_dict()


def user_update_to_api(form: UpdateUserForm) -> Dict[str, Any]:
    return form.to_json_dict()


def error_from_api(data: Any) -> Dict[str, Optional[str]]:
    """서버 에러 응답을 message/code/field 형태로 변환"""
    if isinstance(data, str):
        return {"message": data, "code": None, "field": None}
    data = data or {}
    if data.get("message"):
        return {
            "message": data["message"],
            "code": _first(data, "code", "error_code"),
            "field": _first(data, "field", "property"),
        }
    if data.get("error"):
        return {"message": data["error"], "code": _first(data, "code", "error_code"), "field": None}
    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        return {
            "message": _first(first, "message", "msg", default="Validation error"),
            "code": None,
            "field": _first(first, "field", "path", "property"),
        }
    return {"message": "An unexpected error occurred", "code": "UNKNOWN_ERROR", "field": None}
