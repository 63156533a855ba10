import math
from typing import Iterable, List, Optional, Sequence, TypeVar

from kubekorea.common.utils import parse_iso, strip_html
from kubekorea.schemas.post import Post
from kubekorea.schemas.response import PageInfo, PaginatedResponse
from kubekorea.schemas.user import User

T = TypeVar("T")


def paginate(items: Sequence[T], page: int = 1, limit: int = 10) -> PaginatedResponse:
    """
    목록을 page/limit 기준으로 잘라 PaginatedResponse로 반환합니다.
    """
    page = max(page, 1)
    limit = max(limit, 1)
    start = (page - 1) * limit
    end = start + limit
    total = len(items)

    return PaginatedResponse(
        data=list(items[start:end]),
        pagination=PageInfo(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
            has_next=end < total,
            has_prev=page > 1,
        ),
    )


def get_page_range(current_page: int, total_pages: int, max_visible: int = 5) -> List[int]:
    """페이지 네비게이션에 노출할 페이지 번호 목록"""
    half = max_visible // 2
    start = max(current_page - half, 1)
    end = min(start + max_visible - 1, total_pages)

    if end - start + 1 < max_visible:
        start = max(end - max_visible + 1, 1)

    return list(range(start, end + 1))


def get_display_name(user: User) -> str:
    if user.name:
        return user.name
    if user.github_username:
        return user.github_username
    return user.email.split("@")[0]


def matches_query(text: Optional[str], query: Optional[str]) -> bool:
    # 빈 검색어는 모든 항목과 일치
    if not query or not query.strip():
        return True
    return query.lower() in (text or "").lower()


def filter_posts(posts: Iterable[Post], query: Optional[str], category: Optional[str] = None) -> List[Post]:
    result = []
    for post in posts:
        matched = (
            matches_query(post.title, query)
            or matches_query(strip_html(post.content), query)
            or any(matches_query(tag, query) for tag in post.tags)
            or matches_query(get_display_name(post.author), query)
        )
        if matched and (not category or category == "all" or post.category == category):
            result.append(post)
    return result


def filter_users(users: Iterable[User], query: Optional[str]) -> List[User]:
    return [
        user for user in users
        if matches_query(get_display_name(user), query)
        or matches_query(user.email, query)
        or (user.bio and matches_query(user.bio, query))
    ]


def filter_by_tags(posts: Iterable[Post], tags: Sequence[str]) -> List[Post]:
    """모든 태그를 포함하는 게시글만 남긴다 (대소문자 무시)"""
    if not tags:
        return list(posts)
    wanted = [tag.lower() for tag in tags]
    result = []
    for post in posts:
        post_tags = {tag.lower() for tag in post.tags}
        if all(tag in post_tags for tag in wanted):
            result.append(post)
    return result


def collect_tags(posts: Iterable[Post]) -> List[str]:
    return sorted({tag for post in posts for tag in post.tags})


def toggle_tag(active: Sequence[str], tag: str) -> List[str]:
    if tag in active:
        return [t for t in active if t != tag]
    return [*active, tag]


def _created_at(post: Post) -> float:
    return parse_iso(post.created_at).timestamp()


def like_count(post: Post) -> int:
    return len(post.likes)


def comment_count(post: Post) -> int:
    return len(post.comments)


def popularity_score(post: Post) -> int:
    return like_count(post) * 2 + comment_count(post)


def sort_posts(posts: Iterable[Post], sort_by: str = "latest") -> List[Post]:
    """
    고정글을 최신순으로 맨 위에 두고, 나머지는 정렬 모드에 따라 정렬합니다.

    - latest: 작성일 내림차순
    - popular: 좋아요*2 + 댓글 수 내림차순
    - commented: 댓글 수 내림차순
    - unanswered: 댓글 없는 글 먼저, 그 안에서는 최신순
    """
    posts = list(posts)
    pinned = sorted((p for p in posts if p.pinned), key=_created_at, reverse=True)
    regular = [p for p in posts if not p.pinned]

    if sort_by == "latest":
        regular.sort(key=_created_at, reverse=True)
    elif sort_by == "popular":
        regular.sort(key=popularity_score, reverse=True)
    elif sort_by == "commented":
        regular.sort(key=comment_count, reverse=True)
    elif sort_by == "unanswered":
        regular.sort(key=_created_at, reverse=True)
        regular.sort(key=lambda p: comment_count(p) > 0)

    return pinned + regular


def sort_by_field(posts: Iterable[Post], field: str = "createdAt", order: str = "desc") -> List[Post]:
    """API 정렬 파라미터(sortBy/sortOrder) 기준 정렬"""
    keys = {
        "createdAt": _created_at,
        "likes": like_count,
        "comments": comment_count,
    }
    key = keys.get(field, _created_at)
    return sorted(posts, key=key, reverse=(order != "asc"))
